"""Core types, constants and configuration for the theory engine."""

from .note import (
    strip_octave,
    note_to_pitch_class,
    pitch_class_name,
    normalize_note_history,
)
from .constants import (
    PITCH_NAMES,
    SCALE_INTERVALS,
    DETECTABLE_SCALES,
    DEFAULT_KEY,
    DEFAULT_SCALE,
    NO_CHORD,
)
from .config import (
    TheoryConfig,
    KeyRankingConfig,
    ScaleStabilityConfig,
    ChordConfig,
    ProgressionConfig,
    FormPatternConfig,
    CompressionConfig,
    RecommendationConfig,
    hold_window_ms,
)
from .memory import (
    TheoryMemory,
    Recommendation,
    ChordTimelineEvent,
    FormPattern,
    CompressedSection,
)

__all__ = [
    # Notes
    "strip_octave",
    "note_to_pitch_class",
    "pitch_class_name",
    "normalize_note_history",
    # Constants
    "PITCH_NAMES",
    "SCALE_INTERVALS",
    "DETECTABLE_SCALES",
    "DEFAULT_KEY",
    "DEFAULT_SCALE",
    "NO_CHORD",
    # Config
    "TheoryConfig",
    "KeyRankingConfig",
    "ScaleStabilityConfig",
    "ChordConfig",
    "ProgressionConfig",
    "FormPatternConfig",
    "CompressionConfig",
    "RecommendationConfig",
    "hold_window_ms",
    # Memory
    "TheoryMemory",
    "Recommendation",
    "ChordTimelineEvent",
    "FormPattern",
    "CompressedSection",
]
