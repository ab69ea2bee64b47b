"""Tests for progression debouncing, form pattern mining and next-chord prediction."""

import pytest

from theory_engine.core import ProgressionConfig
from theory_engine.inference import (
    ChordGuess,
    FormPatternMiner,
    ProgressionAccumulator,
    ProgressionState,
    section_label,
    tail_fingerprint,
)


# ============================================================================
# Helpers
# ============================================================================

def guess(form_symbol, confidence=0.9):
    return ChordGuess(
        symbol=form_symbol,
        form_symbol=form_symbol,
        confidence=confidence,
        root=form_symbol[0],
        quality="major",
    )


def feed(chords, accumulator=None, state=None):
    """Feed one guess per new note, the way a growing note stream arrives."""
    accumulator = accumulator or ProgressionAccumulator()
    state = state or ProgressionState()
    notes = []
    for index, chord in enumerate(chords):
        notes.append(f"N{index}")
        state = accumulator.update(state, guess(chord), notes)
    return state


class TestTailFingerprint:
    """Test the stream-tail fingerprint."""

    def test_format(self):
        assert tail_fingerprint(["C", "E", "G"]) == "3:C-E-G"

    def test_only_tail_is_kept(self):
        notes = [str(i) for i in range(15)]
        assert tail_fingerprint(notes, 3) == "15:12-13-14"


class TestProgressionAccumulator:
    """Test the vote-based debounce."""

    def test_first_guess_is_pending(self):
        state = feed(["C"])

        assert state.progression == ()
        assert state.pending_chord == "C"
        assert state.pending_chord_votes == 1

    def test_second_vote_commits(self):
        state = feed(["C", "C"])

        assert state.progression == ("C",)
        assert state.detected_bars == ("C",)
        assert state.chord_timeline[0].chord == "C"
        # Sustain must not re-trigger immediately
        assert state.pending_chord_votes == 1

    def test_resent_snapshot_adds_no_votes(self):
        accumulator = ProgressionAccumulator()
        state = accumulator.update(ProgressionState(), guess("C"), ["C4"])
        again = accumulator.update(state, guess("C"), ["C4"])

        assert again is state
        assert again.progression == ()

    def test_empty_stream_is_ignored(self):
        state = ProgressionState()
        assert ProgressionAccumulator().update(state, guess("C"), []) is state

    def test_low_confidence_never_commits(self):
        accumulator = ProgressionAccumulator()
        state = ProgressionState()
        notes = []
        for index in range(5):
            notes.append(f"N{index}")
            state = accumulator.update(state, guess("C", confidence=0.3), notes)

        assert state.progression == ()

    def test_no_immediate_duplicates(self):
        state = feed(["C"] * 10)
        assert state.progression == ("C",)

    def test_chord_can_return_after_others(self):
        state = feed(["C", "C", "G", "G", "C", "C"])
        assert state.progression == ("C", "G", "C")

    def test_single_glitch_is_filtered(self):
        state = feed(["C", "C", "F", "C", "C", "G", "G"])
        assert state.progression == ("C", "G")

    def test_timeline_indexes_increase(self):
        state = feed(["C", "C", "G", "G", "Am", "Am"])
        assert [event.index for event in state.chord_timeline] == [0, 1, 2]

    def test_progression_is_capped(self):
        accumulator = ProgressionAccumulator(ProgressionConfig(max_length=3, timeline_length=2))
        state = feed(["C", "C", "G", "G", "Am", "Am", "F", "F"], accumulator)

        assert state.progression == ("G", "Am", "F")
        assert [e.chord for e in state.chord_timeline] == ["Am", "F"]
        assert state.detected_bars == ("C", "G", "Am", "F")

    def test_input_state_untouched(self):
        state = feed(["C", "C"])
        before = (state.progression, state.pending_chord_votes)
        ProgressionAccumulator().update(state, guess("G"), ["x", "y", "z"])
        assert (state.progression, state.pending_chord_votes) == before


class TestFormPatternMiner:
    """Test repeating signature mining."""

    PROGRESSION = ["C", "Am", "F", "G", "C", "Am", "F", "G"]

    def test_patterns_ranked_by_count_then_length(self):
        patterns = FormPatternMiner().mine(self.PROGRESSION)

        assert [p.signature for p in patterns] == [
            "C-Am-F-G", "C-Am-F", "Am-F-G", "C-Am", "Am-F", "F-G",
        ]
        assert [p.label for p in patterns] == ["A", "B", "C", "D", "E", "F"]
        assert patterns[0].occurrences == 2
        assert patterns[0].length == 4

    def test_more_frequent_short_pattern_ranks_first(self):
        patterns = FormPatternMiner().mine(["C", "G", "C", "G", "C", "G", "F"])
        assert patterns[0].signature == "C-G"
        assert patterns[0].occurrences == 3

    def test_no_repeats(self):
        assert FormPatternMiner().mine(["C", "G", "Am", "F"]) == []

    def test_current_label_uses_longest_match(self):
        miner = FormPatternMiner()
        patterns = miner.mine(self.PROGRESSION)
        assert miner.current_label(self.PROGRESSION, patterns) == "A"

    def test_current_label_none_when_tail_unmatched(self):
        miner = FormPatternMiner()
        progression = self.PROGRESSION + ["Dm"]
        patterns = miner.mine(progression)
        assert miner.current_label(progression, patterns) is None


class TestNextChordPrediction:
    """Test the learned next chord."""

    def test_longest_basis_wins(self):
        prediction = FormPatternMiner().predict_next(["C", "Am", "F", "G", "C", "Am", "F", "G", "C"])

        assert prediction.chord == "Am"
        assert prediction.basis == 3
        assert prediction.confidence == pytest.approx(1.0)

    def test_majority_follower(self):
        progression = ["G", "Am", "F", "G", "Am", "F", "G", "Am", "C", "D", "G", "Am"]
        prediction = FormPatternMiner().predict_next(progression)

        # "D-G-Am" never happened before; "G-Am" went to F twice and C once
        assert prediction.basis == 2
        assert prediction.chord == "F"
        assert prediction.occurrences == 3
        assert prediction.confidence == pytest.approx(2 / 3)

    def test_falls_back_to_single_chord(self):
        prediction = FormPatternMiner().predict_next(["C", "G", "Am", "C"])

        assert prediction.basis == 1
        assert prediction.chord == "G"
        assert prediction.occurrences == 1

    def test_no_history(self):
        assert FormPatternMiner().predict_next(["C", "G"]) is None
        assert FormPatternMiner().predict_next([]) is None


class TestSectionLabel:
    """Test letter labels."""

    @pytest.mark.parametrize("index,label", [(0, "A"), (1, "B"), (25, "Z"), (26, "AA"), (27, "AB")])
    def test_labels(self, index, label):
        assert section_label(index) == label
