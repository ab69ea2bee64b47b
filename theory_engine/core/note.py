"""Note name helpers - the fundamental unit of the incoming note stream."""

import re
import warnings
from typing import Iterable, List, Optional

import librosa
from librosa.util.exceptions import ParameterError

from .constants import PITCH_NAMES

_OCTAVE_PATTERN = re.compile(r"[-+]?\d+")


def strip_octave(note: str) -> str:
    """Drop octave digits from a note name (e.g., 'C#4' -> 'C#')."""
    return _OCTAVE_PATTERN.sub("", note.strip())


def note_to_pitch_class(note: str) -> Optional[int]:
    """
    Get pitch class (0-11, where 0=C) of a note name.

    Accepts sharps, flats and unicode accidentals, with or without octave.

    Returns:
        Pitch class, or None if the name can't be parsed
    """
    name = strip_octave(note)
    if not name:
        return None
    try:
        # librosa assumes octave 0 when none is given; only the class matters
        return int(librosa.note_to_midi(name)) % 12
    except ParameterError:
        return None


def pitch_class_name(pitch_class: int) -> str:
    """Get the display name for a pitch class (e.g., 1 -> 'C#')."""
    return PITCH_NAMES[pitch_class % 12]


def normalize_note_history(notes: Iterable[str]) -> List[int]:
    """
    Convert a note name stream into pitch classes.

    Unparseable names are skipped with a warning instead of failing the
    whole snapshot.
    """
    pitch_classes = []
    skipped = []

    for note in notes:
        pc = note_to_pitch_class(note) if isinstance(note, str) else None
        if pc is None:
            skipped.append(note)
            continue
        pitch_classes.append(pc)

    if skipped:
        warnings.warn(f"Skipped {len(skipped)} unrecognized note name(s): {skipped[:5]}")

    return pitch_classes
