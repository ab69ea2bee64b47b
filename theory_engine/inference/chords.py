"""Chord analysis - Infer the current chord from a recent note window.

Implements live chord inference with:
- Diatonic candidate generation from the stable key/scale (triads + sevenths)
- Windowed pitch-class matching with root and multi-hit bonuses
- Seventh and tension detection (9/11/13, b9/#9/#11/b13)
- A normalized "form" symbol that strips cosmetic decoration
- Chord-symbol parsing for bars typed in by hand
"""

import re
from typing import List, Optional, Sequence, Set, Tuple
from dataclasses import dataclass, field

from ..core import PITCH_NAMES, note_to_pitch_class
from ..core.config import ChordConfig
from .key import get_scale_notes


# Chord symbol suffix for each (triad quality, seventh interval) stack
TRIAD_SUFFIX = {
    "major": "",
    "minor": "m",
    "diminished": "dim",
    "augmented": "aug",
}

SEVENTH_SUFFIX = {
    ("major", 11): "maj7",
    ("major", 10): "7",
    ("minor", 10): "m7",
    ("minor", 11): "mMaj7",
    ("diminished", 10): "m7b5",
    ("diminished", 9): "dim7",
    ("augmented", 11): "maj7#5",
    ("augmented", 10): "7#5",
}

# Decorated suffix -> normalized form suffix
FORM_SUFFIX = {
    "": "",
    "maj7": "",
    "aug": "",
    "maj7#5": "",
    "7#5": "7",
    "m": "m",
    "m7": "m",
    "mMaj7": "m",
    "7": "7",
    "m7b5": "m7b5",
    "dim": "dim",
    "dim7": "dim",
}

# Parsed quality bucket -> normalized form suffix
QUALITY_FORM_SUFFIX = {
    "maj": "",
    "aug": "",
    "sus": "",
    "min": "m",
    "dom": "7",
    "hdim": "m7b5",
    "dim": "dim",
}

_CHORD_PATTERN = re.compile(r"^\s*([A-Ga-g])([#b♯♭]?)(.*?)\s*$")
_ALTERED_PATTERN = re.compile(r"(b9|#9|#11|b13|alt)")
_EXTENDED_PATTERN = re.compile(r"(9|11|13)")


@dataclass
class ChordCandidate:
    """A diatonic chord option with its chord tones."""
    symbol: str
    root_pc: int
    quality: str  # Triad quality: "major", "minor", "diminished", "augmented"
    tones: Tuple[int, ...] = ()

    @property
    def root(self) -> str:
        return PITCH_NAMES[self.root_pc]


@dataclass
class ChordGuess:
    """The best-matching chord for the current window."""
    symbol: str  # Decorated, e.g. "G7(b9)"
    form_symbol: str  # Normalized, e.g. "G7"
    confidence: float
    root: str
    quality: str
    tensions: List[str] = field(default_factory=list)


@dataclass
class ParsedChord:
    """A chord symbol reduced to root, quality bucket and extension bucket."""
    root_pc: int
    quality: str  # "maj", "min", "dom", "hdim", "dim", "aug", "sus"
    extension: str  # "triad", "seventh", "extended", "altered"

    @property
    def token(self) -> str:
        return f"{self.root_pc}:{self.quality}:{self.extension}"

    @property
    def form_symbol(self) -> str:
        return PITCH_NAMES[self.root_pc] + QUALITY_FORM_SUFFIX[self.quality]


def parse_chord_symbol(text: str) -> Optional[ParsedChord]:
    """
    Parse a chord symbol typed by a user or produced by the engine.

    Args:
        text: Chord symbol, e.g. "Bb7(#9)", "F#m7b5", "Ebmaj7/G"

    Returns:
        ParsedChord, or None for empty bars, "N.C." and unparseable text
    """
    if not text:
        return None
    match = _CHORD_PATTERN.match(text)
    if not match:
        return None

    root_pc = note_to_pitch_class(match.group(1).upper() + match.group(2))
    if root_pc is None:
        return None

    suffix = match.group(3).split("/")[0]
    lowered = suffix.lower()

    if lowered.startswith(("m7b5", "min7b5", "mi7b5")) or "ø" in suffix:
        quality = "hdim"
    elif "dim" in lowered or "°" in suffix:
        quality = "dim"
    elif "aug" in lowered or suffix.startswith("+"):
        quality = "aug"
    elif "sus" in lowered:
        quality = "sus"
    elif lowered.startswith("maj") or suffix.startswith(("M", "Δ")):
        quality = "maj"
    elif suffix.startswith(("m", "-")) or lowered.startswith("min"):
        quality = "min"
    elif suffix[:1].isdigit() or lowered.startswith(("7", "9", "alt")):
        quality = "maj" if suffix.startswith(("6", "5", "2")) else "dom"
    elif suffix == "" or lowered.startswith(("add", "(")):
        quality = "maj"
    else:
        return None

    if _ALTERED_PATTERN.search(suffix):
        extension = "altered"
    elif _EXTENDED_PATTERN.search(suffix):
        extension = "extended"
    elif "7" in suffix or "6" in suffix or quality == "hdim":
        extension = "seventh"
    else:
        extension = "triad"

    return ParsedChord(root_pc=root_pc, quality=quality, extension=extension)


def form_symbol_for(text: str) -> Optional[str]:
    """Normalize any chord symbol to its form token (e.g., "Cmaj7(9)" -> "C")."""
    parsed = parse_chord_symbol(text)
    return parsed.form_symbol if parsed else None


def _triad_quality(third: int, fifth: int) -> str:
    if third == 3:
        return "diminished" if fifth == 6 else "minor"
    if third == 4 and fifth == 8:
        return "augmented"
    return "major"


def _stack(root_pc: int, intervals: Sequence[int]) -> Tuple[int, ...]:
    return tuple((root_pc + i) % 12 for i in intervals)


class ChordInferencer:
    """Infer the current chord against diatonic candidates of the stable key.

    Features:
    - Triad and seventh candidates for every scale degree
    - Fallback candidate set for scales without seven notes
    - First-candidate tie breaking (scale-degree order, triad before seventh)
    - Extension/tension decoration that never affects the form symbol
    """

    def __init__(self, config: Optional[ChordConfig] = None):
        self.config = config or ChordConfig()

    def diatonic_candidates(self, key: str, scale: str) -> List[ChordCandidate]:
        """
        Build chord candidates for a key/scale in scale-degree order.

        Args:
            key: Key root (e.g., "C")
            scale: Scale type (e.g., "major")

        Returns:
            List of ChordCandidate (triad then seventh for each degree)
        """
        scale_pcs = get_scale_notes(key, scale)
        if len(scale_pcs) != 7:
            return self._fallback_candidates(scale_pcs[0])

        candidates = []
        for degree in range(7):
            root_pc = scale_pcs[degree]
            third = (scale_pcs[(degree + 2) % 7] - root_pc) % 12
            fifth = (scale_pcs[(degree + 4) % 7] - root_pc) % 12
            seventh = (scale_pcs[(degree + 6) % 7] - root_pc) % 12
            quality = _triad_quality(third, fifth)
            root = PITCH_NAMES[root_pc]

            candidates.append(ChordCandidate(
                symbol=root + TRIAD_SUFFIX[quality],
                root_pc=root_pc,
                quality=quality,
                tones=_stack(root_pc, (0, third, fifth)),
            ))
            seventh_suffix = SEVENTH_SUFFIX.get((quality, seventh))
            if seventh_suffix is not None:
                candidates.append(ChordCandidate(
                    symbol=root + seventh_suffix,
                    root_pc=root_pc,
                    quality=quality,
                    tones=_stack(root_pc, (0, third, fifth, seventh)),
                ))

        return candidates

    def _fallback_candidates(self, tonic_pc: int) -> List[ChordCandidate]:
        """Non-diatonic set for pentatonic and other non-heptatonic scales."""
        options = [
            (0, "major", (0, 4, 7), ""),
            (0, "minor", (0, 3, 7), "m"),
            (5, "major", (0, 4, 7), ""),
            (7, "major", (0, 4, 7), ""),
            (7, "major", (0, 4, 7, 10), "7"),
            (9, "minor", (0, 3, 7), "m"),
        ]
        candidates = []
        for offset, quality, intervals, suffix in options:
            root_pc = (tonic_pc + offset) % 12
            candidates.append(ChordCandidate(
                symbol=PITCH_NAMES[root_pc] + suffix,
                root_pc=root_pc,
                quality=quality,
                tones=_stack(root_pc, intervals),
            ))
        return candidates

    def infer(self, pitch_classes: Sequence[int], key: str, scale: str) -> ChordGuess:
        """
        Infer the chord for the most recent notes.

        Args:
            pitch_classes: Note history as pitch classes, most recent last
            key: Stable key root
            scale: Stable scale type

        Returns:
            ChordGuess (tonic chord with minimum confidence for an empty window)
        """
        cfg = self.config
        candidates = self.diatonic_candidates(key, scale)
        window = set(list(pitch_classes)[-cfg.window:])

        if not window:
            tonic = candidates[0]
            return self._decorate(tonic, set(tonic.tones), cfg.min_confidence, with_tensions=False)

        best = candidates[0]
        best_confidence = -1.0
        for candidate in candidates:
            hits = sum(1 for tone in candidate.tones if tone in window)
            root_present = candidate.root_pc in window
            score = (
                hits * cfg.hit_weight
                + (cfg.root_bonus if root_present else 0.0)
                + (cfg.multi_hit_bonus if hits >= 2 else 0.0)
            )
            confidence = min(cfg.max_confidence, max(cfg.min_confidence, score / cfg.score_scale))
            # Strict comparison keeps the first candidate on ties
            if confidence > best_confidence:
                best = candidate
                best_confidence = confidence

        return self._decorate(best, window, best_confidence)

    def _decorate(
        self,
        candidate: ChordCandidate,
        window: Set[int],
        confidence: float,
        with_tensions: bool = True,
    ) -> ChordGuess:
        """Attach seventh and tensions detected in the window to the winner."""
        root_pc = candidate.root_pc

        def has(interval: int) -> bool:
            return (root_pc + interval) % 12 in window

        quality = candidate.quality
        if quality == "minor":
            if has(6) and has(10) and not has(7):
                suffix = "m7b5"
            elif has(10):
                suffix = "m7"
            elif has(11):
                suffix = "mMaj7"
            else:
                suffix = "m"
        elif quality == "diminished":
            if has(10):
                suffix = "m7b5"
            elif has(9):
                suffix = "dim7"
            else:
                suffix = "dim"
        elif quality == "augmented":
            suffix = "aug"
        elif has(11):
            suffix = "maj7"
        elif has(10):
            suffix = "7"
        else:
            suffix = ""

        tensions = []
        if with_tensions:
            dominant = suffix == "7"
            minor_family = suffix in ("m", "m7", "mMaj7", "m7b5")
            if dominant and has(1):
                tensions.append("b9")
            if has(2):
                tensions.append("9")
            if dominant and has(3):
                tensions.append("#9")
            if minor_family and has(5):
                tensions.append("11")
            if not minor_family and quality != "diminished" and has(6):
                tensions.append("#11")
            if dominant and has(8):
                tensions.append("b13")
            if quality != "diminished" and suffix != "aug" and has(9):
                tensions.append("13")

        root = PITCH_NAMES[root_pc]
        symbol = root + suffix
        if tensions:
            symbol += "(" + ",".join(tensions) + ")"

        return ChordGuess(
            symbol=symbol,
            form_symbol=root + FORM_SUFFIX[suffix],
            confidence=float(confidence),
            root=root,
            quality=quality,
            tensions=tensions,
        )
