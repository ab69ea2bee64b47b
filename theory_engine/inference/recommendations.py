"""Recommendations - Human-facing scale, note and chord suggestions.

Suggestions are derived from the stable key, the current chord, the
committed progression and the mined form patterns. A cache keyed by the
key/scale/form-label signature keeps the suggestion list from refreshing
faster than a musician can read it.
"""

import re
from typing import List, Optional, Sequence, Tuple
from dataclasses import dataclass

from ..core import FormPattern, PITCH_NAMES, Recommendation, note_to_pitch_class
from ..core.config import RecommendationConfig, hold_window_ms
from ..core.constants import BEATS_PER_BAR
from .chords import ChordGuess, ChordInferencer, ParsedChord, parse_chord_symbol
from .key import StableContext, get_scale_notes
from .structure import NextChordPrediction


# Modal options per chord family: (scale type, confidence)
CHORD_SCALE_OPTIONS = {
    "dom": [("mixolydian", 0.84), ("altered", 0.76), ("half-whole diminished", 0.72)],
    "min": [("dorian", 0.84), ("melodic minor", 0.76), ("phrygian", 0.72)],
    "maj": [("ionian", 0.84), ("lydian", 0.78), ("major pentatonic", 0.74)],
    "sus": [("mixolydian", 0.8), ("major pentatonic", 0.72)],
    "aug": [("lydian", 0.74)],
    "dim": [("locrian", 0.8), ("whole-half diminished", 0.76)],
    "hdim": [("locrian", 0.82), ("whole-half diminished", 0.72)],
}

KEY_CENTER_CONFIDENCE = 0.9
TURNAROUND_CONFIDENCE = 0.86
FORM_HINT_CONFIDENCE = 0.66


@dataclass(frozen=True)
class RecommendationCache:
    """Last computed recommendation list and what it was computed for."""
    signature: str = ""
    timestamp: float = 0.0
    items: Tuple[Recommendation, ...] = ()


@dataclass
class Turnaround:
    """A ii-V approach, with or without its arrival chord."""
    dominant_root: str
    target: str
    resolved: bool


def make_recommendation(rec_type: str, label: str, reason: str, confidence: float) -> Recommendation:
    """Build a recommendation with a stable id derived from type and label."""
    slug = re.sub(r"[^a-z0-9#]+", "-", label.lower()).strip("-")
    return Recommendation(
        id=f"{rec_type}-{slug}",
        type=rec_type,
        label=label,
        reason=reason,
        confidence=round(confidence, 4),
    )


def detect_turnaround(progression: Sequence[str]) -> Optional[Turnaround]:
    """
    Find a ii-V approach at the end of the progression.

    Checks the last three chords for ii-V-I first, then the last two for a
    ii-V still waiting for its resolution.
    """
    parsed = [parse_chord_symbol(chord) for chord in progression[-3:]]

    def is_two_five(two: Optional[ParsedChord], five: Optional[ParsedChord]) -> bool:
        return (
            two is not None and five is not None
            and two.quality in ("min", "hdim")
            and five.quality in ("dom", "maj")
            and (five.root_pc - two.root_pc) % 12 == 5
        )

    if len(parsed) == 3 and is_two_five(parsed[0], parsed[1]):
        arrival = parsed[2]
        if arrival is not None and (arrival.root_pc - parsed[1].root_pc) % 12 == 5:
            return Turnaround(PITCH_NAMES[parsed[1].root_pc], arrival.form_symbol, resolved=True)

    if len(parsed) >= 2 and is_two_five(parsed[-2], parsed[-1]):
        two, five = parsed[-2], parsed[-1]
        target = PITCH_NAMES[(five.root_pc + 5) % 12] + ("" if two.quality == "min" else "m")
        return Turnaround(PITCH_NAMES[five.root_pc], target, resolved=False)

    return None


class RecommendationBuilder:
    """Build and cache ranked recommendations.

    Buckets:
    - scale: key center, chord-family modes, altered dominant on ii-V
    - note: stepwise, third and fifth moves from the last played note
    - chord: diatonic options of the key
    - progression: learned next chord
    - form: most frequent form pattern
    """

    def __init__(
        self,
        config: Optional[RecommendationConfig] = None,
        chord_inferencer: Optional[ChordInferencer] = None,
    ):
        self.config = config or RecommendationConfig()
        self.chord_inferencer = chord_inferencer or ChordInferencer()

    def hold_window(self, bpm: Optional[float]) -> float:
        """Minimum age of the cached list before a time-based refresh."""
        return hold_window_ms(bpm, self.config.hold_bars, self.config.min_hold_ms, BEATS_PER_BAR)

    @staticmethod
    def signature(stable: StableContext, form_label: Optional[str]) -> str:
        return f"{stable.key}|{stable.scale}|{form_label or '-'}"

    def needs_refresh(
        self,
        cache: RecommendationCache,
        signature: str,
        now_ms: float,
        bpm: Optional[float],
    ) -> bool:
        """True when key/scale or form label changed, or the cache went stale."""
        if not cache.items or cache.signature != signature:
            return True
        return now_ms - cache.timestamp >= self.hold_window(bpm)

    def recommend(
        self,
        cache: RecommendationCache,
        now_ms: float,
        bpm: Optional[float],
        stable: StableContext,
        chord: ChordGuess,
        progression: Sequence[str],
        last_note: Optional[str],
        patterns: Sequence[FormPattern],
        prediction: Optional[NextChordPrediction],
        form_label: Optional[str],
    ) -> RecommendationCache:
        """
        Return the cached list, or rebuild it when the cache must refresh.

        Returns:
            RecommendationCache holding the list to show (unchanged object
            when no refresh was needed)
        """
        signature = self.signature(stable, form_label)
        if not self.needs_refresh(cache, signature, now_ms, bpm):
            return cache

        items = self.build(stable, chord, progression, last_note, patterns, prediction)
        return RecommendationCache(signature=signature, timestamp=now_ms, items=tuple(items))

    def build(
        self,
        stable: StableContext,
        chord: ChordGuess,
        progression: Sequence[str],
        last_note: Optional[str],
        patterns: Sequence[FormPattern],
        prediction: Optional[NextChordPrediction],
    ) -> List[Recommendation]:
        """
        Build the ranked recommendation list.

        Returns:
            Recommendations deduplicated by (type, label), highest confidence
            first, capped to max_items
        """
        recommendations: List[Recommendation] = []
        recommendations.extend(self._scale_options(stable, chord, progression))
        recommendations.extend(self._note_options(stable, last_note))
        recommendations.extend(self._chord_options(stable))

        if prediction is not None:
            recommendations.append(make_recommendation(
                "progression",
                prediction.chord,
                f"Followed the last {prediction.basis} chord(s) in "
                f"{round(prediction.confidence * prediction.occurrences)} of "
                f"{prediction.occurrences} earlier occurrence(s).",
                0.55 + 0.4 * prediction.confidence,
            ))

        if patterns:
            top = patterns[0]
            recommendations.append(make_recommendation(
                "form",
                top.signature,
                f"Form pattern {top.label} has repeated {top.occurrences} times.",
                FORM_HINT_CONFIDENCE,
            ))

        seen = set()
        unique = []
        for rec in recommendations:
            if (rec.type, rec.label) in seen:
                continue
            seen.add((rec.type, rec.label))
            unique.append(rec)

        unique.sort(key=lambda r: r.confidence, reverse=True)
        return unique[:self.config.max_items]

    def _scale_options(
        self,
        stable: StableContext,
        chord: ChordGuess,
        progression: Sequence[str],
    ) -> List[Recommendation]:
        options = [make_recommendation(
            "scale",
            stable.name,
            f"Key center, held with {stable.confidence:.0%} confidence.",
            KEY_CENTER_CONFIDENCE,
        )]

        turnaround = detect_turnaround(progression)
        if turnaround is not None:
            verb = "resolving to" if turnaround.resolved else "approaching"
            options.append(make_recommendation(
                "scale",
                f"{turnaround.dominant_root} altered",
                f"ii-V {verb} {turnaround.target}: altered tensions on "
                f"{turnaround.dominant_root}7 pull into the resolution.",
                TURNAROUND_CONFIDENCE,
            ))

        parsed = parse_chord_symbol(chord.form_symbol)
        if parsed is not None:
            root = PITCH_NAMES[parsed.root_pc]
            for scale, confidence in CHORD_SCALE_OPTIONS.get(parsed.quality, []):
                options.append(make_recommendation(
                    "scale",
                    f"{root} {scale}",
                    f"Fits the chord tones of {chord.symbol}.",
                    confidence,
                ))
        return options

    def _note_options(self, stable: StableContext, last_note: Optional[str]) -> List[Recommendation]:
        scale_notes = [PITCH_NAMES[pc] for pc in get_scale_notes(stable.key, stable.scale)]
        last_pc = note_to_pitch_class(last_note) if last_note else None

        if last_pc is None:
            return [
                make_recommendation("note", scale_notes[0], f"Start on the tonic of {stable.name}.", 0.78),
                make_recommendation("note", scale_notes[4 % len(scale_notes)], "Dominant for strong tonal gravity.", 0.7),
            ]

        current = PITCH_NAMES[last_pc]
        if current in scale_notes:
            idx = scale_notes.index(current)
            step, third, fifth = (scale_notes[(idx + n) % len(scale_notes)] for n in (1, 2, 4))
        else:
            step, third, fifth = (scale_notes[n % len(scale_notes)] for n in (0, 2, 4))

        return [
            make_recommendation("note", step, f"Stepwise motion from {current} in {stable.name}.", 0.92),
            make_recommendation("note", third, f"Color tone a third above {current}.", 0.84),
            make_recommendation("note", fifth, f"Stable fifth relationship against {current}.", 0.8),
        ]

    def _chord_options(self, stable: StableContext) -> List[Recommendation]:
        candidates = self.chord_inferencer.diatonic_candidates(stable.key, stable.scale)
        triads = [c for c in candidates if len(c.tones) == 3]
        return [
            make_recommendation(
                "chord",
                candidate.symbol,
                f"Functional harmony option {index + 1} in {stable.name}.",
                max(0.55, 0.88 - index * 0.09),
            )
            for index, candidate in enumerate(triads)
        ]
