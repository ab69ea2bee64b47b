"""Song structure analysis - Repeating chord signatures and learned continuations.

Works on the committed progression (normalized chord symbols):
- Form patterns: chord sequences of length 2-4 that occur at least twice
- Current form label: the longest pattern the progression currently ends with
- Learned next chord: what historically followed the current tail
"""

from collections import Counter
from typing import Dict, List, Optional, Sequence
from dataclasses import dataclass

from ..core import FormPattern
from ..core.config import FormPatternConfig


@dataclass
class NextChordPrediction:
    """A chord predicted from earlier occurrences of the current tail."""
    chord: str
    confidence: float  # Share of occurrences followed by this chord
    basis: int  # Length of the matched tail
    occurrences: int


def section_label(index: int) -> str:
    """Letter label for a zero-based index: A..Z, then AA, AB, ..."""
    label = ""
    index += 1
    while index > 0:
        index, remainder = divmod(index - 1, 26)
        label = chr(ord("A") + remainder) + label
    return label


class FormPatternMiner:
    """Find frequently repeating chord-sequence signatures.

    Longer patterns are tallied first so that on equal counts the more
    specific pattern ranks higher.
    """

    def __init__(self, config: Optional[FormPatternConfig] = None):
        self.config = config or FormPatternConfig()

    def signature(self, chords: Sequence[str]) -> str:
        return self.config.separator.join(chords)

    def mine(self, progression: Sequence[str]) -> List[FormPattern]:
        """
        Mine form patterns from a progression.

        Args:
            progression: Normalized chord symbols, oldest first

        Returns:
            Up to max_patterns FormPattern, labeled A, B, C... in rank order
        """
        cfg = self.config
        chords = list(progression)
        counts: Dict[str, int] = {}
        lengths: Dict[str, int] = {}

        for length in cfg.pattern_lengths:
            for start in range(len(chords) - length + 1):
                sig = self.signature(chords[start:start + length])
                counts[sig] = counts.get(sig, 0) + 1
                lengths[sig] = length

        repeated = [sig for sig, count in counts.items() if count >= cfg.min_occurrences]
        repeated.sort(key=lambda sig: (-counts[sig], -lengths[sig]))

        return [
            FormPattern(
                label=section_label(index),
                signature=sig,
                length=lengths[sig],
                occurrences=counts[sig],
            )
            for index, sig in enumerate(repeated[:cfg.max_patterns])
        ]

    def current_label(
        self,
        progression: Sequence[str],
        patterns: Sequence[FormPattern],
    ) -> Optional[str]:
        """
        Label of the longest pattern matching the progression's tail exactly.

        Returns:
            Pattern label, or None when no pattern ends the progression
        """
        best: Optional[FormPattern] = None
        for pattern in patterns:
            if pattern.length > len(progression):
                continue
            tail = self.signature(list(progression)[-pattern.length:])
            if tail == pattern.signature and (best is None or pattern.length > best.length):
                best = pattern
        return best.label if best else None

    def predict_next(self, progression: Sequence[str]) -> Optional[NextChordPrediction]:
        """
        Predict the next chord from earlier occurrences of the current tail.

        Tries the longest basis first and uses the first basis with any
        match; the majority follower wins (earliest seen on ties).

        Returns:
            NextChordPrediction, or None without any earlier occurrence
        """
        chords = list(progression)
        for basis in self.config.next_chord_bases:
            if len(chords) <= basis:
                continue
            tail = chords[-basis:]
            followers: Counter = Counter()
            # Windows must be followed by a chord, which excludes the tail itself
            for start in range(len(chords) - basis):
                if chords[start:start + basis] == tail:
                    followers[chords[start + basis]] += 1

            if followers:
                total = sum(followers.values())
                chord, count = followers.most_common(1)[0]
                return NextChordPrediction(
                    chord=chord,
                    confidence=count / total,
                    basis=basis,
                    occurrences=total,
                )
        return None
