"""Tests for chord inference and chord-symbol parsing."""

import pytest

from theory_engine.core import ChordConfig, normalize_note_history
from theory_engine.inference import ChordInferencer, form_symbol_for, parse_chord_symbol


def infer(notes, key="C", scale="major", config=None):
    return ChordInferencer(config).infer(normalize_note_history(notes), key, scale)


class TestDiatonicCandidates:
    """Test candidate generation from the stable key."""

    def test_c_major_candidates_in_degree_order(self):
        symbols = [c.symbol for c in ChordInferencer().diatonic_candidates("C", "major")]
        assert symbols == [
            "C", "Cmaj7", "Dm", "Dm7", "Em", "Em7", "F", "Fmaj7",
            "G", "G7", "Am", "Am7", "Bdim", "Bm7b5",
        ]

    def test_harmonic_minor_has_leading_tone_dominant(self):
        symbols = [c.symbol for c in ChordInferencer().diatonic_candidates("A", "harmonic minor")]
        assert "E7" in symbols
        assert "G#dim7" in symbols

    def test_pentatonic_uses_fallback_set(self):
        symbols = [c.symbol for c in ChordInferencer().diatonic_candidates("C", "major pentatonic")]
        assert symbols == ["C", "Cm", "F", "G", "G7", "Am"]


class TestChordInference:
    """Test windowed chord matching."""

    def test_c_major_triad(self):
        guess = infer(["C4", "E4", "G4"])

        assert guess.symbol == "C"
        assert guess.form_symbol == "C"
        assert guess.confidence > 0.5
        assert guess.confidence == pytest.approx(0.98)

    def test_minor_triad(self):
        guess = infer(["A3", "C4", "E4"])
        assert guess.symbol == "Am"
        assert guess.form_symbol == "Am"

    def test_empty_window_returns_tonic(self):
        guess = infer([])

        assert guess.symbol == "C"
        assert guess.confidence == pytest.approx(0.1)
        assert guess.tensions == []

    def test_empty_window_in_other_key(self):
        assert infer([], key="F", scale="dorian").symbol == "Fm"

    def test_dominant_with_flat_nine(self):
        guess = infer(["G", "B", "D", "F", "G#"])

        assert guess.symbol == "G7(b9)"
        assert guess.form_symbol == "G7"
        assert guess.tensions == ["b9"]

    def test_major_seventh_form_symbol_drops_seventh(self):
        guess = infer(["F", "A", "C", "E"])

        assert guess.symbol == "Fmaj7"
        assert guess.form_symbol == "F"

    def test_only_recent_window_counts(self):
        config = ChordConfig(window=3)
        guess = infer(["D", "F", "A", "G", "B", "D"], config=config)
        assert guess.form_symbol == "G"

    def test_partial_match_confidence(self):
        """Root plus one more tone: 2 hits, root bonus, multi-hit bonus."""
        guess = infer(["C", "G"])
        assert guess.form_symbol == "C"
        assert guess.confidence == pytest.approx((2 * 0.95 + 0.6 + 0.25) / 3.2)


class TestChordSymbolParsing:
    """Test parsing of typed or inferred chord symbols."""

    def test_altered_dominant(self):
        parsed = parse_chord_symbol("Bb7(#9)")
        assert (parsed.root_pc, parsed.quality, parsed.extension) == (10, "dom", "altered")

    def test_half_diminished(self):
        parsed = parse_chord_symbol("F#m7b5")
        assert (parsed.root_pc, parsed.quality, parsed.extension) == (6, "hdim", "seventh")

    def test_slash_chord_ignores_bass(self):
        parsed = parse_chord_symbol("Ebmaj7/G")
        assert (parsed.root_pc, parsed.quality, parsed.extension) == (3, "maj", "seventh")

    def test_extended_minor(self):
        parsed = parse_chord_symbol("Dm9")
        assert (parsed.quality, parsed.extension) == ("min", "extended")

    @pytest.mark.parametrize("text", ["", "N.C.", "xyz", "H7"])
    def test_unparseable(self, text):
        assert parse_chord_symbol(text) is None

    @pytest.mark.parametrize("text,expected", [
        ("Cmaj7(9)", "C"),
        ("Am7", "Am"),
        ("G7(b9,b13)", "G7"),
        ("Bb7", "A#7"),
        ("Bm7b5", "Bm7b5"),
        ("Cdim7", "Cdim"),
        ("Dsus4", "D"),
    ])
    def test_form_symbol(self, text, expected):
        assert form_symbol_for(text) == expected
