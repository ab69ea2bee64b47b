"""Tests for repeat-aware bar compression.

Tests cover:
- Bar and chunk similarity
- Section size search and repeat collapsing
- Expand/merge/unlink helpers
"""

import pytest

from theory_engine.core import CompressedSection
from theory_engine.form import (
    BarSimilarity,
    FormCompressor,
    expand_sections,
    merge_expanded_bars,
    unlink_repeat_instance,
)
from theory_engine.form.compression import compress_expanded_bars, is_empty_bar


# ============================================================================
# Test data
# ============================================================================

VERSE = ["C", "C", "Am", "Am", "F", "F", "G", "G"]
BRIDGE = ["Em", "Em", "Am", "Am", "Dm", "Dm", "G", "G"]
VERSE_TURNAROUND = ["C", "C", "Am", "Am", "F", "F", "G", "G7"]


def round_trip(bars):
    return expand_sections(compress_expanded_bars(bars)).expanded_bars


class TestBarSimilarity:
    """Test the per-bar similarity table."""

    @pytest.mark.parametrize("left,right,expected", [
        ("C", "C", 1.0),
        ("Cmaj7", "CM7", 0.9),
        ("C", "Cmaj7", 0.76),
        ("C", "Cm", 0.64),
        ("C", "F", 0.42),
        ("C", "Am", 0.0),
        ("", "N.C.", 0.9),
        ("C", "N.C.", 0.0),
    ])
    def test_bar_similarity(self, left, right, expected):
        assert BarSimilarity().bars(left, right) == pytest.approx(expected)

    def test_chunk_length_mismatch_penalty(self):
        similarity = BarSimilarity().chunks(["C", "G"], ["C", "G", "Am", "F"])
        assert similarity == pytest.approx(1.0 - 0.35 * 2 / 4)

    def test_empty_chunk(self):
        assert BarSimilarity().chunks([], ["C"]) == 0.0

    def test_empty_bar_detection(self):
        assert is_empty_bar("")
        assert is_empty_bar("  ")
        assert is_empty_bar("N.C.")
        assert not is_empty_bar("C")


class TestCandidateSizes:
    """Test section sizes tried for a chart."""

    def test_long_chart(self):
        assert FormCompressor().candidate_sizes(32) == [8, 12, 14, 16, 4, 20, 24]

    def test_sizes_clipped_to_bar_count(self):
        assert FormCompressor().candidate_sizes(10) == [8, 4]

    def test_short_chart_tries_exact_count(self):
        assert FormCompressor().candidate_sizes(5) == [4, 5]
        assert FormCompressor().candidate_sizes(3) == [3]


class TestFormCompressor:
    """Test compression into labeled sections."""

    def test_empty(self):
        assert FormCompressor().compress([]) == []

    def test_aaba(self):
        bars = VERSE + VERSE + BRIDGE + VERSE
        sections = FormCompressor().compress(bars)

        assert [(s.label, s.repeat_count) for s in sections] == [("A", 2), ("B", 1), ("A", 1)]
        assert sections[0].bars == tuple(VERSE)
        assert sections[1].bars == tuple(BRIDGE)
        assert [s.id for s in sections] == ["A-0", "B-1", "A-2"]

    def test_near_repeat_shares_label_but_keeps_bars(self):
        bars = VERSE + VERSE_TURNAROUND
        sections = FormCompressor().compress(bars)

        assert [s.label for s in sections] == ["A", "A"]
        assert [s.repeat_count for s in sections] == [1, 1]
        assert sections[1].bars[-1] == "G7"

    def test_short_chart_is_one_section(self):
        sections = FormCompressor().compress(["C", "G", "Am"])

        assert len(sections) == 1
        assert sections[0].bars == ("C", "G", "Am")
        assert sections[0].repeat_count == 1

    def test_forced_section_size(self):
        sections = FormCompressor().compress(["C", "G"] * 4, section_size=2)

        assert len(sections) == 1
        assert sections[0].bars == ("C", "G")
        assert sections[0].repeat_count == 4

    @pytest.mark.parametrize("bars", [
        ["C"],
        ["C", "G"],
        ["C", "N.C.", "G", ""],
        VERSE,
        VERSE + VERSE,
        VERSE + VERSE_TURNAROUND + BRIDGE,
        VERSE + VERSE + BRIDGE + VERSE + ["C"],
        (VERSE + BRIDGE) * 3 + ["F", "G"],
        ["C", "F", "G", "Am", "Dm", "Em", "Bdim", "G7", "C", "Cmaj7", "C7", "F"],
    ])
    def test_expand_reverses_compress(self, bars):
        assert round_trip(bars) == list(bars)


class TestExpandSections:
    """Test unrolling sections into bars with a lookup map."""

    SECTIONS = [
        CompressedSection(id="A-0", label="A", bars=("C", "G"), repeat_count=2),
        CompressedSection(id="B-1", label="B", bars=("F",), repeat_count=1),
    ]

    def test_bars(self):
        assert expand_sections(self.SECTIONS).expanded_bars == ["C", "G", "C", "G", "F"]

    def test_bar_map(self):
        form = expand_sections(self.SECTIONS)
        mapping = form.section_at(3)

        assert (mapping.section_id, mapping.local_bar, mapping.repeat_index) == ("A-0", 1, 1)
        assert form.section_at(4).section_id == "B-1"
        assert form.section_at(5) is None
        assert form.section_at(-1) is None


class TestMergeExpandedBars:
    """Test filling detected bars into an edited chart."""

    def test_fills_placeholder_and_extends(self):
        merged = merge_expanded_bars(["C", "Am", "N.C.", "G"], ["C", "Am", "Dm", "G", "C"])
        assert merged == ["C", "Am", "Dm", "G", "C"]

    def test_keeps_manual_edits(self):
        assert merge_expanded_bars(["Bb7", ""], ["C", "F"]) == ["Bb7", "F"]

    def test_empty_inputs(self):
        assert merge_expanded_bars([], ["C"]) == ["C"]
        assert merge_expanded_bars(["C"], []) == ["C"]

    def test_existing_longer_than_detected(self):
        assert merge_expanded_bars(["C", "G", "F"], ["Am"]) == ["C", "G", "F"]

    def test_offset_places_window_after_dropped_bars(self):
        merged = merge_expanded_bars(["C", "F", "C", "N.C."], ["C", "G", "Am"], offset=2)
        assert merged == ["C", "F", "C", "G", "Am"]

    def test_offset_past_end_pads_with_no_chord(self):
        assert merge_expanded_bars(["C"], ["G"], offset=3) == ["C", "N.C.", "N.C.", "G"]


class TestUnlinkRepeatInstance:
    """Test splitting one repeat out of a repeated section."""

    SECTIONS = [CompressedSection(id="A-0", label="A", bars=("C", "G"), repeat_count=3)]

    def test_middle_repeat(self):
        sections = unlink_repeat_instance(self.SECTIONS, "A-0", 1)

        assert len(sections) == 3
        assert sum(s.repeat_count for s in sections) == 3
        assert sections[1].repeat_count == 1
        assert len({s.id for s in sections}) == 3
        assert all(s.label == "A" for s in sections)

    def test_expanded_bars_unchanged(self):
        sections = unlink_repeat_instance(self.SECTIONS, "A-0", 1)
        assert expand_sections(sections).expanded_bars == expand_sections(self.SECTIONS).expanded_bars

    def test_first_repeat(self):
        sections = unlink_repeat_instance(self.SECTIONS, "A-0", 0)
        assert [s.repeat_count for s in sections] == [1, 2]

    def test_out_of_range_index_targets_last(self):
        sections = unlink_repeat_instance(self.SECTIONS, "A-0", 5)
        assert [s.repeat_count for s in sections] == [2, 1]

    def test_unknown_section(self):
        assert unlink_repeat_instance(self.SECTIONS, "Z-9", 1) == self.SECTIONS

    def test_unrepeated_section(self):
        sections = [CompressedSection(id="A-0", label="A", bars=("C",), repeat_count=1)]
        assert unlink_repeat_instance(sections, "A-0", 0) == sections
