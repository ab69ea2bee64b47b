"""Engine memory - the state carried from one inference call to the next.

TheoryMemory is an immutable value: the engine and the editing helpers
always return a new instance. It serializes to plain dicts/lists/strings/
numbers and restores from possibly incomplete or legacy snapshots by
merging defaults into every missing or malformed field.
"""

import re
import warnings
from dataclasses import asdict, dataclass, fields, replace
from typing import Any, Callable, Dict, Optional, Tuple

from .constants import DEFAULT_KEY, DEFAULT_KEY_CONFIDENCE, DEFAULT_SCALE
from .note import note_to_pitch_class, pitch_class_name


@dataclass(frozen=True)
class Recommendation:
    """A human-facing suggestion (scale, note, chord, progression or form)."""

    id: str
    type: str
    label: str
    reason: str
    confidence: float

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Recommendation":
        return cls(
            id=str(data["id"]),
            type=str(data["type"]),
            label=str(data["label"]),
            reason=str(data.get("reason", "")),
            confidence=float(data["confidence"]),
        )


@dataclass(frozen=True)
class ChordTimelineEvent:
    """A committed progression entry."""

    index: int
    chord: str
    confidence: float

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ChordTimelineEvent":
        return cls(
            index=int(data["index"]),
            chord=str(data["chord"]),
            confidence=float(data["confidence"]),
        )


@dataclass(frozen=True)
class FormPattern:
    """A repeating chord-sequence signature."""

    label: str
    signature: str  # e.g., "C-Am-F-G"
    length: int
    occurrences: int

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FormPattern":
        return cls(
            label=str(data["label"]),
            signature=str(data["signature"]),
            length=int(data["length"]),
            occurrences=int(data["occurrences"]),
        )


@dataclass(frozen=True)
class CompressedSection:
    """A labeled, repeat-counted block of bars."""

    id: str
    label: str
    bars: Tuple[str, ...]
    repeat_count: int = 1

    @property
    def expanded_length(self) -> int:
        """Number of bars this section covers once repeats are unrolled."""
        return len(self.bars) * self.repeat_count

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CompressedSection":
        bars = tuple(str(bar) for bar in data["bars"])
        if not bars:
            raise ValueError("section without bars")
        return cls(
            id=str(data["id"]),
            label=str(data["label"]),
            bars=bars,
            repeat_count=max(1, int(data.get("repeat_count", data.get("repeatCount", 1)))),
        )


@dataclass(frozen=True)
class TheoryMemory:
    """Everything the engine carries forward between calls."""

    # Stable context
    stable_key: str = DEFAULT_KEY
    stable_scale: str = DEFAULT_SCALE
    key_confidence: float = DEFAULT_KEY_CONFIDENCE
    last_key_change_at: float = 0.0

    # Progression
    progression: Tuple[str, ...] = ()
    chord_timeline: Tuple[ChordTimelineEvent, ...] = ()
    form_patterns: Tuple[FormPattern, ...] = ()
    current_form_label: Optional[str] = None

    # Bars and sections
    detected_bars: Tuple[str, ...] = ()
    detected_bar_count: int = 0
    expanded_bars: Tuple[str, ...] = ()
    compressed_sections: Tuple[CompressedSection, ...] = ()

    # Debounce state
    last_processed_note_count: int = 0
    last_processed_tail: str = ""
    pending_chord: Optional[str] = None
    pending_chord_votes: int = 0

    # Recommendation cache
    last_recommendation_at: float = 0.0
    recommendation_signature: str = ""
    cached_recommendations: Tuple[Recommendation, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a plain structured value for persistence."""
        return _plain(asdict(self))

    @classmethod
    def from_dict(cls, data: Any) -> "TheoryMemory":
        """
        Restore memory from a persisted snapshot.

        Missing fields take their defaults; malformed fields are replaced by
        defaults with a warning. camelCase keys from older snapshots are
        accepted, as is the legacy ``formSheetBars`` field.
        """
        if not isinstance(data, dict):
            warnings.warn(f"Ignoring memory snapshot of type {type(data).__name__}; using defaults")
            return cls()

        normalized = {_snake_case(str(key)): value for key, value in data.items()}
        if "expanded_bars" not in normalized and "form_sheet_bars" in normalized:
            normalized["expanded_bars"] = normalized["form_sheet_bars"]

        values = {}
        for f in fields(cls):
            if f.name not in normalized:
                continue
            if normalized[f.name] is None and f.name not in _OPTIONAL_FIELDS:
                continue
            try:
                values[f.name] = _FIELD_PARSERS[f.name](normalized[f.name])
            except (TypeError, ValueError, KeyError, AttributeError):
                warnings.warn(f"Malformed memory field '{f.name}'; using default")

        return replace(cls(), **values)


def _snake_case(name: str) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", "_", name).lower()


def _plain(value: Any) -> Any:
    if isinstance(value, dict):
        return {key: _plain(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(item) for item in value]
    return value


def _as_str(value: Any) -> str:
    if not isinstance(value, str):
        raise TypeError(f"expected str, got {type(value).__name__}")
    return value


def _as_key_root(value: Any) -> str:
    pitch_class = note_to_pitch_class(_as_str(value))
    if pitch_class is None:
        raise ValueError(f"unknown key root {value!r}")
    return pitch_class_name(pitch_class)


def _as_optional_str(value: Any) -> Optional[str]:
    return None if value is None else _as_str(value)


def _as_float(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TypeError(f"expected number, got {type(value).__name__}")
    return float(value)


def _as_int(value: Any) -> int:
    return int(_as_float(value))


def _as_str_tuple(value: Any) -> Tuple[str, ...]:
    if not isinstance(value, (list, tuple)):
        raise TypeError(f"expected list, got {type(value).__name__}")
    return tuple(_as_str(item) for item in value)


def _records(record_type: Any) -> Callable[[Any], Tuple[Any, ...]]:
    def parse(value: Any) -> Tuple[Any, ...]:
        if not isinstance(value, (list, tuple)):
            raise TypeError(f"expected list, got {type(value).__name__}")
        return tuple(record_type.from_dict(item) for item in value)

    return parse


_OPTIONAL_FIELDS = {"current_form_label", "pending_chord"}

_FIELD_PARSERS: Dict[str, Callable[[Any], Any]] = {
    "stable_key": _as_key_root,
    "stable_scale": _as_str,
    "key_confidence": _as_float,
    "last_key_change_at": _as_float,
    "progression": _as_str_tuple,
    "chord_timeline": _records(ChordTimelineEvent),
    "form_patterns": _records(FormPattern),
    "current_form_label": _as_optional_str,
    "detected_bars": _as_str_tuple,
    "detected_bar_count": _as_int,
    "expanded_bars": _as_str_tuple,
    "compressed_sections": _records(CompressedSection),
    "last_processed_note_count": _as_int,
    "last_processed_tail": _as_str,
    "pending_chord": _as_optional_str,
    "pending_chord_votes": _as_int,
    "last_recommendation_at": _as_float,
    "recommendation_signature": _as_str,
    "cached_recommendations": _records(Recommendation),
}
