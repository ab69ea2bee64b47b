"""Key detection - Rank candidate scales and hold a sticky current key.

Implements live key tracking with:
- Histogram scoring of every root x scale type against recent notes
- Tonic and cadence weighting
- Hysteresis (score margin + confidence bonus) before switching keys
- Tempo-scaled hold window after each key change
- Manual override and auto-switch lock for the host
"""

import numpy as np
from typing import List, Optional, Sequence
from dataclasses import dataclass, field
from enum import Enum

from ..core import PITCH_NAMES, SCALE_INTERVALS, DETECTABLE_SCALES, note_to_pitch_class
from ..core.config import KeyRankingConfig, ScaleStabilityConfig, hold_window_ms
from ..core.constants import BEATS_PER_BAR


class KeyMode(Enum):
    """How the stable key is chosen."""
    AUTO = "auto"
    MANUAL = "manual"


@dataclass
class ScaleCandidate:
    """A candidate key/scale with its score."""
    root: str
    scale: str
    score: float
    confidence: float
    pitch_classes: List[int] = field(default_factory=list)

    @property
    def name(self) -> str:
        return f"{self.root} {self.scale}"


@dataclass
class StableContext:
    """The sticky key decision carried in memory."""
    key: str
    scale: str
    confidence: float
    last_change_at: float = 0.0

    @property
    def name(self) -> str:
        return f"{self.key} {self.scale}"


@dataclass
class KeySettings:
    """Host controls for key tracking.

    Attributes:
        mode: AUTO to follow the note stream, MANUAL to pin manual_key/manual_scale
        manual_key: Root used in manual mode
        manual_scale: Scale type used in manual mode
        auto_key_change: When False, auto mode never switches away from the stable key
    """
    mode: KeyMode = KeyMode.AUTO
    manual_key: str = "C"
    manual_scale: str = "major"
    auto_key_change: bool = True


def get_scale_notes(root: str, scale: str) -> List[int]:
    """
    Get the pitch classes (0-11) that belong to a scale.

    Args:
        root: Root note (e.g., "C", "G")
        scale: Scale type ("major", "dorian", etc.)

    Returns:
        List of pitch classes in the scale, in scale-degree order
    """
    root_pc = note_to_pitch_class(root)
    root_idx = 0 if root_pc is None else root_pc
    intervals = SCALE_INTERVALS.get(scale, SCALE_INTERVALS["major"])
    return [(root_idx + interval) % 12 for interval in intervals]


class KeyCandidateRanker:
    """Score every root x scale type against a recent pitch-class histogram."""

    def __init__(
        self,
        config: Optional[KeyRankingConfig] = None,
        scale_types: Sequence[str] = tuple(DETECTABLE_SCALES),
    ):
        """
        Initialize KeyCandidateRanker.

        Args:
            config: Ranking weights
            scale_types: Scale types to test for every root (order breaks ties)
        """
        self.config = config or KeyRankingConfig()
        self.scale_types = list(scale_types)

    def rank(self, pitch_classes: Sequence[int]) -> List[ScaleCandidate]:
        """
        Rank all candidates for a pitch-class history, highest score first.

        Args:
            pitch_classes: Note history as pitch classes, most recent last

        Returns:
            Sorted candidates; empty when there is no history
        """
        recent = list(pitch_classes)[-self.config.window:]
        if not recent:
            return []

        histogram = np.bincount(np.asarray(recent, dtype=int) % 12, minlength=12).astype(float)
        total = histogram.sum()
        latest = recent[-1]

        candidates = []
        for root_idx, root in enumerate(PITCH_NAMES):
            for scale in self.scale_types:
                scale_pcs = get_scale_notes(root, scale)
                mask = np.zeros(12, dtype=bool)
                mask[scale_pcs] = True

                in_scale = histogram[mask].sum()
                out_scale = total - in_scale
                tonic_weight = histogram[root_idx]
                cadence = self.config.cadence_boost if latest == root_idx else 0.0

                score = (
                    in_scale * self.config.in_scale_weight
                    - out_scale * self.config.out_of_scale_weight
                    + tonic_weight * self.config.tonic_weight
                    + cadence
                )
                confidence = float(np.clip(
                    (in_scale - out_scale * 0.5) / total,
                    self.config.min_confidence,
                    1.0,
                ))
                candidates.append(ScaleCandidate(root, scale, float(score), confidence, scale_pcs))

        # Stable sort keeps root/scale order among equal scores
        candidates.sort(key=lambda c: c.score, reverse=True)
        return candidates


class ScaleStabilizer:
    """Turn ranked candidates into a sticky, non-flickering current key.

    Raw per-snapshot winners oscillate between closely scored keys; a
    challenger only takes over when it clears both a score margin and a
    confidence bonus, and (short of a decisive override) not within the
    hold window that follows the previous change.
    """

    def __init__(self, config: Optional[ScaleStabilityConfig] = None):
        self.config = config or ScaleStabilityConfig()

    def hold_window(self, bpm: Optional[float]) -> float:
        """Hold window in ms after a key change, scaled to the tempo."""
        return hold_window_ms(bpm, self.config.hold_bars, self.config.min_hold_ms, BEATS_PER_BAR)

    def decide(
        self,
        candidates: List[ScaleCandidate],
        previous: StableContext,
        now_ms: float,
        bpm: Optional[float] = None,
        settings: Optional[KeySettings] = None,
    ) -> StableContext:
        """
        Produce the next stable context.

        Args:
            candidates: Ranked candidates (highest first)
            previous: Current stable context
            now_ms: Current time in milliseconds
            bpm: Tempo estimate, or None when unknown
            settings: Host key controls

        Returns:
            New StableContext (never undefined; falls back to previous)
        """
        settings = settings or KeySettings()
        cfg = self.config

        if settings.mode == KeyMode.MANUAL:
            changed = (settings.manual_key, settings.manual_scale) != (previous.key, previous.scale)
            return StableContext(
                key=settings.manual_key,
                scale=settings.manual_scale,
                confidence=1.0,
                last_change_at=now_ms if changed else previous.last_change_at,
            )

        if not candidates:
            return previous

        top = candidates[0]
        matching = next(
            (c for c in candidates if c.root == previous.key and c.scale == previous.scale),
            None,
        )

        if top.root == previous.key and top.scale == previous.scale:
            return StableContext(
                key=previous.key,
                scale=previous.scale,
                confidence=self._blend(previous.confidence, top.confidence),
                last_change_at=previous.last_change_at,
            )

        if not settings.auto_key_change:
            confidence = previous.confidence
            if matching is not None:
                confidence = self._blend(previous.confidence, matching.confidence)
            return StableContext(previous.key, previous.scale, confidence, previous.last_change_at)

        score_margin = top.score - (matching.score if matching is not None else 0.0)
        confidence_needed = previous.confidence + cfg.switch_bonus
        in_hold = now_ms - previous.last_change_at < self.hold_window(bpm)
        overrides_hold = (
            score_margin >= cfg.override_margin
            and top.confidence >= confidence_needed + cfg.override_confidence_bonus
        )

        if (
            score_margin >= cfg.retain_margin
            and top.confidence >= confidence_needed
            and (not in_hold or overrides_hold)
        ):
            return StableContext(
                key=top.root,
                scale=top.scale,
                confidence=top.confidence,
                last_change_at=now_ms,
            )

        return StableContext(
            key=previous.key,
            scale=previous.scale,
            confidence=max(cfg.confidence_floor, previous.confidence * cfg.confidence_decay),
            last_change_at=previous.last_change_at,
        )

    def _blend(self, old: float, new: float) -> float:
        blend = self.config.confidence_blend
        return blend * old + (1.0 - blend) * new
