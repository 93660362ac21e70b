"""ChunkPomo: pomodoro sessions grouped into multi-hour focus chunks."""

__version__ = "0.1.0"
