"""Note stream loading - Read recorded note streams for replay."""

import json
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

import pretty_midi


@dataclass
class NoteStream:
    """A recorded note stream.

    Attributes:
        notes: Note names in playing order
        times_ms: Arrival time of each note in milliseconds
        bpm: Tempo, or None when the source doesn't carry one
    """
    notes: List[str] = field(default_factory=list)
    times_ms: List[float] = field(default_factory=list)
    bpm: Optional[float] = None

    def snapshots(self):
        """Yield (notes so far, arrival time) after every note, like a live producer."""
        for index in range(1, len(self.notes) + 1):
            yield self.notes[:index], self.times_ms[index - 1]


class NoteStreamLoader:
    """Handles note stream file loading.

    Text files hold note names separated by whitespace or commas; a comment
    line such as ``# bpm: 96`` sets the tempo. JSON files hold either a list
    of names or ``{"notes": [...], "bpm": 96}``. MIDI files are read with
    pretty_midi.
    """

    SUPPORTED_FORMATS = {".txt", ".json", ".mid", ".midi"}
    BPM_PATTERN = re.compile(r"bpm\s*[:=]\s*(\d+(?:\.\d+)?)", re.IGNORECASE)

    def __init__(self, default_step_ms: float = 500.0):
        """
        Initialize NoteStreamLoader.

        Args:
            default_step_ms: Spacing between notes when the source has no timing
                and no tempo
        """
        self.default_step_ms = default_step_ms

    def load(self, path: str) -> NoteStream:
        """
        Load a note stream file.

        Args:
            path: Path to a .txt, .json, .mid or .midi file

        Returns:
            NoteStream

        Raises:
            ValueError: If file format not supported or content is malformed
            FileNotFoundError: If file doesn't exist
        """
        path = Path(path)

        if not path.exists():
            raise FileNotFoundError(f"Note stream file not found: {path}")

        suffix = path.suffix.lower()
        if suffix not in self.SUPPORTED_FORMATS:
            raise ValueError(
                f"Unsupported format: {path.suffix}. "
                f"Supported: {self.SUPPORTED_FORMATS}"
            )

        if suffix in (".mid", ".midi"):
            return self._load_midi(path)
        if suffix == ".json":
            return self._load_json(path)
        return self._load_text(path)

    def _load_text(self, path: Path) -> NoteStream:
        notes = []
        bpm = None
        for line in path.read_text(encoding="utf-8").splitlines():
            line = line.strip()
            if line.startswith("#"):
                match = self.BPM_PATTERN.search(line)
                if match:
                    bpm = float(match.group(1))
                continue
            notes.extend(token for token in re.split(r"[\s,]+", line) if token)
        return self._with_even_timing(notes, bpm)

    def _load_json(self, path: Path) -> NoteStream:
        data = json.loads(path.read_text(encoding="utf-8"))
        if isinstance(data, list):
            notes, bpm = data, None
        elif isinstance(data, dict) and isinstance(data.get("notes"), list):
            notes, bpm = data["notes"], data.get("bpm")
        else:
            raise ValueError(f"Expected a list of notes or an object with 'notes': {path}")

        if bpm is not None and not isinstance(bpm, (int, float)):
            raise ValueError(f"Invalid bpm value: {bpm!r}")
        return self._with_even_timing([str(n) for n in notes], float(bpm) if bpm else None)

    def _load_midi(self, path: Path) -> NoteStream:
        midi = pretty_midi.PrettyMIDI(str(path))

        events = sorted(
            (note.start, note.pitch)
            for instrument in midi.instruments
            if not instrument.is_drum
            for note in instrument.notes
        )

        _, tempi = midi.get_tempo_changes()
        bpm = float(tempi[0]) if len(tempi) else None

        return NoteStream(
            notes=[pretty_midi.note_number_to_name(pitch) for _, pitch in events],
            times_ms=[start * 1000.0 for start, _ in events],
            bpm=bpm,
        )

    def _with_even_timing(self, notes: List[str], bpm: Optional[float]) -> NoteStream:
        """One note per beat at the given tempo, or default_step_ms apart."""
        step = 60000.0 / bpm if bpm else self.default_step_ms
        return NoteStream(
            notes=notes,
            times_ms=[index * step for index in range(len(notes))],
            bpm=bpm,
        )
