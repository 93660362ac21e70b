"""Command line front end: python -m chunkpomo <command>.

Every invocation restores the in-flight session first, so ``pause``,
``stop`` and friends act on a session started by an earlier ``run``.
"""

from __future__ import annotations

import argparse
import logging
import signal
import sys
from pathlib import Path

from PyQt6.QtCore import QCoreApplication

from .chunks.coordinator import ChunkCoordinator
from .chunks.models import Priority
from .database.db import init_db
from .errors import ChunkPomoError
from .settings import DEFAULT_CHUNK_MINUTES
from .timer.session import session_type_display_name


def _cmd_status(coordinator: ChunkCoordinator, args, app) -> int:
    session = coordinator.current_session()
    if session is None:
        print("No active session.")
    else:
        state = "paused" if coordinator.is_session_paused() else "running"
        print(
            f"{session_type_display_name(session.type)} session {state}, "
            f"{coordinator.formatted_remaining_time()} left"
        )
    chunk = coordinator.current_chunk()
    if chunk is not None:
        print(
            f"Chunk {chunk.id}: {chunk.completed_work_sessions()}"
            f"/{coordinator.expected_pomodoros_for_chunk()} pomodoros"
        )
    print(f"Next: {session_type_display_name(coordinator.next_session_type())}")
    return 0


def _cmd_stats(coordinator: ChunkCoordinator, args, app) -> int:
    stats = coordinator.statistics()
    print(f"Sessions:       {stats.total_sessions}")
    print(f"Work completed: {stats.completed_work_sessions}")
    print(f"Chunks:         {stats.completed_chunks}/{stats.total_chunks}")
    print(f"Tasks:          {stats.completed_tasks}/{stats.total_tasks}")
    print(f"Storage:        {coordinator.store.storage_usage()} bytes")
    return 0


def _cmd_chunk(coordinator: ChunkCoordinator, args, app) -> int:
    chunk = coordinator.start_new_chunk(args.duration)
    print(f"Started chunk {chunk.id} ({chunk.duration} min)")
    return 0


def _cmd_task(coordinator: ChunkCoordinator, args, app) -> int:
    task = coordinator.add_task(
        args.title,
        description=args.description,
        estimated_pomodoros=args.estimate,
        priority=args.priority,
    )
    print(task.id)
    return 0


def _cmd_run(coordinator: ChunkCoordinator, args, app) -> int:
    """Run one session to completion inside a Qt event loop."""
    if coordinator.is_session_paused():
        coordinator.resume_session()
    elif not coordinator.is_session_active():
        if args.task:
            coordinator.start_work_session(args.task)
        else:
            coordinator.start_next_session()

    session = coordinator.current_session()
    print(f"{session_type_display_name(session.type)} session started.")

    coordinator.tick.connect(
        lambda _s, _r, formatted: print(f"\r{formatted}", end="", flush=True)
    )
    coordinator.session_completed.connect(lambda _s: app.quit())
    coordinator.session_stopped.connect(lambda _s: app.quit())
    coordinator.chunk_completed.connect(
        lambda c: print(f"\nChunk complete: {c.completed_work_sessions()} pomodoros")
    )

    def _interrupt(*_):
        # Pause so the next ``run`` can pick the session up again.
        if coordinator.is_session_running():
            coordinator.pause_session()
        app.quit()

    signal.signal(signal.SIGINT, _interrupt)
    app.exec()
    print()
    return 0


def _cmd_pause(coordinator: ChunkCoordinator, args, app) -> int:
    coordinator.pause_session()
    return 0


def _cmd_resume(coordinator: ChunkCoordinator, args, app) -> int:
    coordinator.resume_session()
    return 0


def _cmd_stop(coordinator: ChunkCoordinator, args, app) -> int:
    coordinator.stop_session()
    return 0


def _cmd_skip(coordinator: ChunkCoordinator, args, app) -> int:
    coordinator.skip_session()
    return 0


def _cmd_export(coordinator: ChunkCoordinator, args, app) -> int:
    data = coordinator.export_data()
    if args.file:
        Path(args.file).write_text(data + "\n", encoding="utf-8")
    else:
        print(data)
    return 0


def _cmd_import(coordinator: ChunkCoordinator, args, app) -> int:
    coordinator.import_data(Path(args.file).read_text(encoding="utf-8"))
    print("Import complete.")
    return 0


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="chunkpomo", description=__doc__)
    parser.add_argument("-v", "--verbose", action="store_true")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("status").set_defaults(handler=_cmd_status)
    sub.add_parser("stats").set_defaults(handler=_cmd_stats)

    p = sub.add_parser("chunk", help="start a new chunk")
    p.add_argument("--duration", type=int, default=DEFAULT_CHUNK_MINUTES,
                   help="minutes (default %(default)s)")
    p.set_defaults(handler=_cmd_chunk)

    p = sub.add_parser("task", help="add a task to the current chunk")
    p.add_argument("title")
    p.add_argument("--description", default="")
    p.add_argument("--estimate", type=int, default=1)
    p.add_argument("--priority", choices=[x.value for x in Priority],
                   default=Priority.MEDIUM.value)
    p.set_defaults(handler=_cmd_task)

    p = sub.add_parser("run", help="run the next session")
    p.add_argument("--task", help="task id for a work session")
    p.set_defaults(handler=_cmd_run)

    for name, handler in (
        ("pause", _cmd_pause), ("resume", _cmd_resume),
        ("stop", _cmd_stop), ("skip", _cmd_skip),
    ):
        sub.add_parser(name).set_defaults(handler=handler)

    p = sub.add_parser("export", help="write all data as JSON")
    p.add_argument("file", nargs="?")
    p.set_defaults(handler=_cmd_export)

    p = sub.add_parser("import", help="load data written by export")
    p.add_argument("file")
    p.set_defaults(handler=_cmd_import)
    return parser


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    init_db()

    app = QCoreApplication.instance() or QCoreApplication(sys.argv[:1])
    app.setApplicationName("ChunkPomo")

    coordinator = ChunkCoordinator()
    try:
        coordinator.initialize()
        return args.handler(coordinator, args, app)
    except (ChunkPomoError, ValueError) as exc:
        print(f"chunkpomo: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
