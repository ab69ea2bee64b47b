"""Tuning parameters for the theory engine.

Every weight, margin and threshold used by the inference stages lives here
as a named dataclass field, so hosts can tune behavior without touching the
algorithms. Defaults reproduce the reference behavior.
"""

from dataclasses import dataclass, field, fields
from typing import Any, Dict, Optional, Tuple


@dataclass
class KeyRankingConfig:
    """Configuration for key/scale candidate ranking.

    Attributes:
        window: Number of most recent notes considered (default: 64)
        in_scale_weight: Score per in-scale note occurrence (default: 1.25)
        out_of_scale_weight: Penalty per out-of-scale occurrence (default: 1.45)
        tonic_weight: Score per occurrence of the root itself (default: 0.8)
        cadence_boost: Bonus when the last note is the root (default: 0.75)
        min_confidence: Lower clamp for candidate confidence (default: 0.05)
    """

    window: int = 64
    in_scale_weight: float = 1.25
    out_of_scale_weight: float = 1.45
    tonic_weight: float = 0.8
    cadence_boost: float = 0.75
    min_confidence: float = 0.05


@dataclass
class ScaleStabilityConfig:
    """Configuration for the sticky key decision.

    Attributes:
        retain_margin: Score margin a challenger needs over the stable key
        switch_bonus: Confidence a challenger needs above the stable confidence
        override_margin: Margin that may break through the hold window
        override_confidence_bonus: Extra confidence required to override
        min_hold_ms: Hold window floor for slow or unknown tempo
        hold_bars: Hold window length in bars
        confidence_blend: Weight of the old confidence when the key is confirmed
        confidence_decay: Multiplier applied when a challenger is rejected
        confidence_floor: Lowest confidence reached by decay
    """

    retain_margin: float = 3.8
    switch_bonus: float = 0.18
    override_margin: float = 8.5
    override_confidence_bonus: float = 0.2
    min_hold_ms: float = 20000.0
    hold_bars: float = 10.0
    confidence_blend: float = 0.7
    confidence_decay: float = 0.98
    confidence_floor: float = 0.35


@dataclass
class ChordConfig:
    """Configuration for windowed chord inference."""

    window: int = 10
    hit_weight: float = 0.95
    root_bonus: float = 0.6
    multi_hit_bonus: float = 0.25
    score_scale: float = 3.2
    min_confidence: float = 0.1
    max_confidence: float = 0.98


@dataclass
class ProgressionConfig:
    """Configuration for the debounced progression accumulator."""

    vote_threshold: int = 2
    min_confidence: float = 0.42
    max_length: int = 64
    timeline_length: int = 64
    max_detected_bars: int = 512
    tail_length: int = 10


@dataclass
class FormPatternConfig:
    """Configuration for form pattern mining and next-chord prediction."""

    pattern_lengths: Tuple[int, ...] = (4, 3, 2)
    min_occurrences: int = 2
    max_patterns: int = 6
    next_chord_bases: Tuple[int, ...] = (3, 2, 1)
    separator: str = "-"


@dataclass
class CompressionConfig:
    """Configuration for repeat-aware bar compression.

    Similarity weights score a pair of bars; thresholds decide whether a
    chunk reuses an existing section template; score weights rank the
    candidate section sizes against each other.
    """

    preferred_sizes: Tuple[int, ...] = (8, 12, 14, 16, 4, 20, 24)
    min_size: int = 4
    max_size: int = 24
    exact_size_below: int = 8

    # Bar similarity table
    exact_match: float = 1.0
    same_token: float = 0.9
    same_root_quality: float = 0.76
    same_root: float = 0.64
    same_quality: float = 0.42
    length_mismatch_penalty: float = 0.35

    # Template matching thresholds
    strict_threshold: float = 0.82
    regular_threshold: float = 0.78
    loose_threshold: float = 0.73
    loose_size: int = 12

    # Candidate size scoring
    coverage_weight: float = 2.2
    similarity_weight: float = 1.25
    remainder_weight: float = 0.45
    size_preference: float = 0.12
    preferred_range: Tuple[int, int] = (8, 16)
    unique_section_weight: float = 0.015
    short_section_penalty: float = 0.06
    max_simple_sections: int = 6
    complexity_penalty: float = 0.05


@dataclass
class RecommendationConfig:
    """Configuration for recommendation building and caching."""

    min_hold_ms: float = 16000.0
    hold_bars: float = 12.0
    max_items: int = 12


@dataclass
class TheoryConfig:
    """Bundle of all stage configurations."""

    key_ranking: KeyRankingConfig = field(default_factory=KeyRankingConfig)
    stability: ScaleStabilityConfig = field(default_factory=ScaleStabilityConfig)
    chords: ChordConfig = field(default_factory=ChordConfig)
    progression: ProgressionConfig = field(default_factory=ProgressionConfig)
    form_patterns: FormPatternConfig = field(default_factory=FormPatternConfig)
    compression: CompressionConfig = field(default_factory=CompressionConfig)
    recommendations: RecommendationConfig = field(default_factory=RecommendationConfig)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "TheoryConfig":
        """
        Build a config from a nested dict, e.g. a parsed JSON file.

        Unknown sections or keys raise ValueError so typos don't go unnoticed.
        """
        config = cls()
        for section_name, values in (data or {}).items():
            if section_name not in {f.name for f in fields(cls)}:
                raise ValueError(f"Unknown config section: {section_name}")
            section = getattr(config, section_name)
            _apply_overrides(section, values or {})
        return config


def _apply_overrides(section: Any, values: Dict[str, Any]) -> None:
    """Apply key/value overrides to a config dataclass in place."""
    known = {f.name: f for f in fields(section)}
    for key, value in values.items():
        if key not in known:
            raise ValueError(f"Unknown option '{key}' for {type(section).__name__}")
        current = getattr(section, key)
        if isinstance(current, tuple) and isinstance(value, list):
            value = tuple(value)
        setattr(section, key, value)


def hold_window_ms(bpm: Optional[float], hold_bars: float, min_hold_ms: float, beats_per_bar: int = 4) -> float:
    """
    Tempo-scaled hold window.

    Returns:
        max(min_hold_ms, beat length * beats_per_bar * hold_bars), or the floor
        when tempo is unknown
    """
    if not bpm or bpm <= 0:
        return min_hold_ms
    beat_ms = 60000.0 / bpm
    return max(min_hold_ms, beat_ms * beats_per_bar * hold_bars)
