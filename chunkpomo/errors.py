"""Exception types raised by the ChunkPomo core.

Operation errors (conflicts, missing sessions, bad imports) are raised
straight to the caller.  ``StorageError`` and ``PermissionDenied`` also
travel over the coordinator's ``error`` signal when they happen as a
side effect of a transition that already took place.
"""


class ChunkPomoError(Exception):
    """Base class for every error raised by ChunkPomo."""


class SessionConflict(ChunkPomoError):
    """A session was started while another one is active."""


class NoActiveSession(ChunkPomoError):
    """Pause / resume / stop / skip with no session in the right state."""


class ChunkConflict(ChunkPomoError):
    """A chunk was started while another one is active."""


class CorruptState(ChunkPomoError):
    """A persisted record is missing fields required for restoration."""


class InvalidFormat(ChunkPomoError):
    """Import data is not valid JSON or not a JSON object."""


class PermissionDenied(ChunkPomoError):
    """A notification was shown before permission was granted."""


class StorageError(ChunkPomoError):
    """The persistent store failed to read or write a key."""
