"""Statistics rollups.

Everything here is a pure function of the persisted collections
(session history, chunk history, task list).  Nothing is counted
incrementally, so the numbers can't drift from the records.
"""

from __future__ import annotations

from dataclasses import dataclass, asdict
from datetime import date, datetime


@dataclass(frozen=True)
class Statistics:
    total_sessions: int = 0
    completed_work_sessions: int = 0
    total_chunks: int = 0
    completed_chunks: int = 0
    total_tasks: int = 0
    completed_tasks: int = 0
    last_updated: datetime | None = None

    def to_dict(self) -> dict:
        data = asdict(self)
        return {
            "totalSessions": data["total_sessions"],
            "completedWorkSessions": data["completed_work_sessions"],
            "totalChunks": data["total_chunks"],
            "completedChunks": data["completed_chunks"],
            "totalTasks": data["total_tasks"],
            "completedTasks": data["completed_tasks"],
            "lastUpdated": (
                self.last_updated.isoformat() if self.last_updated else None
            ),
        }


def _is_completed_work(record: dict) -> bool:
    return record.get("type") == "work" and bool(record.get("completed"))


def compute_statistics(
    sessions: list[dict],
    chunks: list[dict],
    tasks: list[dict],
    *,
    now: datetime | None = None,
) -> Statistics:
    return Statistics(
        total_sessions=len(sessions),
        completed_work_sessions=sum(1 for s in sessions if _is_completed_work(s)),
        total_chunks=len(chunks),
        completed_chunks=sum(1 for c in chunks if c.get("status") == "completed"),
        total_tasks=len(tasks),
        completed_tasks=sum(1 for t in tasks if t.get("completed")),
        last_updated=now or datetime.now(),
    )


def todays_sessions(sessions: list[dict], today: date | None = None) -> list[dict]:
    today = today or date.today()
    result = []
    for record in sessions:
        try:
            started = datetime.fromisoformat(record["startTime"]).date()
        except (KeyError, TypeError, ValueError):
            continue
        if started == today:
            result.append(record)
    return result


def productivity_score(sessions: list[dict]) -> int:
    """Percentage of recorded work sessions that completed."""
    work = [s for s in sessions if s.get("type") == "work"]
    if not work:
        return 0
    return round(sum(1 for s in work if s.get("completed")) / len(work) * 100)
