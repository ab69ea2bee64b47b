"""Input layer - Note stream sources for replaying sessions."""

from .stream import NoteStream, NoteStreamLoader

__all__ = [
    "NoteStream",
    "NoteStreamLoader",
]
