"""Tests for note stream loading and note name parsing."""

import json

import pretty_midi
import pytest

from theory_engine.core import normalize_note_history, note_to_pitch_class, strip_octave
from theory_engine.input import NoteStream, NoteStreamLoader


class TestNoteNames:
    """Test note name normalization."""

    @pytest.mark.parametrize("name,pc", [
        ("C", 0),
        ("C#4", 1),
        ("Db3", 1),
        ("Bb", 10),
        ("B#", 0),
        ("e5", 4),
        ("F♯2", 6),
    ])
    def test_pitch_class(self, name, pc):
        assert note_to_pitch_class(name) == pc

    @pytest.mark.parametrize("name", ["", "H", "??", "4"])
    def test_unparseable(self, name):
        assert note_to_pitch_class(name) is None

    def test_strip_octave(self):
        assert strip_octave("C#-1") == "C#"
        assert strip_octave(" A4 ") == "A"

    def test_history_skips_bad_names(self):
        with pytest.warns(UserWarning, match="unrecognized"):
            assert normalize_note_history(["C4", "X", "G4"]) == [0, 7]


class TestNoteStreamLoader:
    """Test loading recorded streams."""

    def test_text_file(self, tmp_path):
        path = tmp_path / "riff.txt"
        path.write_text("# bpm: 120\nC4 E4, G4\n\nC5\n")

        stream = NoteStreamLoader().load(str(path))

        assert stream.notes == ["C4", "E4", "G4", "C5"]
        assert stream.bpm == 120.0
        assert stream.times_ms == [0.0, 500.0, 1000.0, 1500.0]

    def test_text_file_without_tempo(self, tmp_path):
        path = tmp_path / "riff.txt"
        path.write_text("A3 C4 E4")

        stream = NoteStreamLoader(default_step_ms=250.0).load(str(path))

        assert stream.bpm is None
        assert stream.times_ms == [0.0, 250.0, 500.0]

    def test_json_list(self, tmp_path):
        path = tmp_path / "riff.json"
        path.write_text(json.dumps(["C4", "E4"]))

        assert NoteStreamLoader().load(str(path)).notes == ["C4", "E4"]

    def test_json_object(self, tmp_path):
        path = tmp_path / "riff.json"
        path.write_text(json.dumps({"notes": ["D4", "F4", "A4"], "bpm": 60}))

        stream = NoteStreamLoader().load(str(path))

        assert stream.notes == ["D4", "F4", "A4"]
        assert stream.times_ms == [0.0, 1000.0, 2000.0]

    def test_json_without_notes(self, tmp_path):
        path = tmp_path / "riff.json"
        path.write_text(json.dumps({"tempo": 60}))

        with pytest.raises(ValueError):
            NoteStreamLoader().load(str(path))

    def test_midi_file(self, tmp_path):
        midi = pretty_midi.PrettyMIDI(initial_tempo=100.0)
        piano = pretty_midi.Instrument(program=0)
        piano.notes.append(pretty_midi.Note(velocity=90, pitch=64, start=0.5, end=1.0))
        piano.notes.append(pretty_midi.Note(velocity=90, pitch=60, start=0.0, end=0.5))
        midi.instruments.append(piano)

        drums = pretty_midi.Instrument(program=0, is_drum=True)
        drums.notes.append(pretty_midi.Note(velocity=90, pitch=36, start=0.25, end=0.3))
        midi.instruments.append(drums)

        path = tmp_path / "riff.mid"
        midi.write(str(path))

        stream = NoteStreamLoader().load(str(path))

        assert stream.notes == ["C4", "E4"]
        assert stream.times_ms == pytest.approx([0.0, 500.0], abs=2.0)
        assert stream.bpm == pytest.approx(100.0, abs=0.5)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            NoteStreamLoader().load(str(tmp_path / "missing.txt"))

    def test_unsupported_format(self, tmp_path):
        path = tmp_path / "riff.wav"
        path.write_bytes(b"RIFF")

        with pytest.raises(ValueError, match="Unsupported format"):
            NoteStreamLoader().load(str(path))


class TestNoteStream:
    """Test replaying a stream as growing snapshots."""

    def test_snapshots(self):
        stream = NoteStream(notes=["C4", "E4", "G4"], times_ms=[0.0, 10.0, 20.0])
        snapshots = list(stream.snapshots())

        assert snapshots[0] == (["C4"], 0.0)
        assert snapshots[-1] == (["C4", "E4", "G4"], 20.0)
        assert len(snapshots) == 3
