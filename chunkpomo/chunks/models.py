"""Chunk and task records."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum

from ..timer.session import PomodoroSession


class ChunkStatus(Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    PAUSED = "paused"


class Priority(Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


@dataclass
class Task:
    """A unit of work estimated in pomodoros.

    Only ``completed`` ever changes, when a work session carrying this
    task's id completes.
    """

    id: str
    title: str
    description: str = ""
    estimated_pomodoros: int = 1
    priority: Priority = Priority.MEDIUM
    completed: bool = False
    chunk_id: str = ""

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "estimatedPomodoros": self.estimated_pomodoros,
            "priority": self.priority.value,
            "completed": self.completed,
            "chunkId": self.chunk_id,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Task":
        return cls(
            id=str(data["id"]),
            title=str(data.get("title", "")),
            description=str(data.get("description", "")),
            estimated_pomodoros=int(data.get("estimatedPomodoros", 1)),
            priority=Priority(data.get("priority", Priority.MEDIUM.value)),
            completed=bool(data.get("completed", False)),
            chunk_id=str(data.get("chunkId") or ""),
        )


@dataclass
class Chunk:
    """A multi-hour focus block holding tasks and completed sessions."""

    id: str
    start_time: datetime
    duration: int  # minutes
    end_time: datetime | None = None
    tasks: list[Task] = field(default_factory=list)
    sessions: list[PomodoroSession] = field(default_factory=list)
    status: ChunkStatus = ChunkStatus.ACTIVE

    @property
    def is_active(self) -> bool:
        return self.status == ChunkStatus.ACTIVE

    def completed_work_sessions(self) -> int:
        return sum(1 for s in self.sessions if s.is_work and s.completed)

    def estimated_pomodoros(self) -> int:
        return sum(t.estimated_pomodoros for t in self.tasks)

    def copy(self) -> "Chunk":
        return replace(
            self,
            tasks=[replace(t) for t in self.tasks],
            sessions=[s.copy() for s in self.sessions],
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "startTime": self.start_time.isoformat(),
            "duration": self.duration,
            "endTime": self.end_time.isoformat() if self.end_time else None,
            "tasks": [t.to_dict() for t in self.tasks],
            "pomodoroSessions": [s.to_dict() for s in self.sessions],
            "status": self.status.value,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Chunk":
        end = data.get("endTime")
        return cls(
            id=str(data["id"]),
            start_time=datetime.fromisoformat(data["startTime"]),
            duration=int(data["duration"]),
            end_time=datetime.fromisoformat(end) if end else None,
            tasks=[Task.from_dict(t) for t in data.get("tasks", [])],
            sessions=[
                PomodoroSession.from_dict(s)
                for s in data.get("pomodoroSessions", [])
            ],
            status=ChunkStatus(data.get("status", ChunkStatus.ACTIVE.value)),
        )
