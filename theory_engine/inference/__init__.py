"""Inference layer - Musical understanding of a live note stream.

This layer builds higher-level musical understanding from notes:
- Key/scale ranking and the sticky current key
- Chord inference with extensions and a normalized form symbol
- Debounced progression tracking
- Form patterns and learned next chords
- Cached recommendations

Pipeline: Notes -> Key -> Chord -> Progression -> Form -> Recommendations
"""

from .key import (
    KeyCandidateRanker,
    ScaleStabilizer,
    ScaleCandidate,
    StableContext,
    KeySettings,
    KeyMode,
    get_scale_notes,
)
from .chords import (
    ChordInferencer,
    ChordCandidate,
    ChordGuess,
    ParsedChord,
    parse_chord_symbol,
    form_symbol_for,
)
from .progression import ProgressionAccumulator, ProgressionState, tail_fingerprint
from .structure import FormPatternMiner, NextChordPrediction, section_label
from .recommendations import (
    RecommendationBuilder,
    RecommendationCache,
    Turnaround,
    detect_turnaround,
)

__all__ = [
    # Key detection
    "KeyCandidateRanker",
    "ScaleStabilizer",
    "ScaleCandidate",
    "StableContext",
    "KeySettings",
    "KeyMode",
    "get_scale_notes",
    # Chord inference
    "ChordInferencer",
    "ChordCandidate",
    "ChordGuess",
    "ParsedChord",
    "parse_chord_symbol",
    "form_symbol_for",
    # Progression
    "ProgressionAccumulator",
    "ProgressionState",
    "tail_fingerprint",
    # Structure
    "FormPatternMiner",
    "NextChordPrediction",
    "section_label",
    # Recommendations
    "RecommendationBuilder",
    "RecommendationCache",
    "Turnaround",
    "detect_turnaround",
]
