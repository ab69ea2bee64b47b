"""Form sheet edits - Bar and section edits applied to engine memory.

Every edit returns a new TheoryMemory whose expanded bars and compressed
sections agree with each other. Bar-level edits recompress the chart;
section-level edits unroll the edited sections so labels and unlinked
repeats survive. Edits that would leave a bar list empty are no-ops.
"""

from dataclasses import replace
from typing import Optional, Sequence

from ..core import CompressedSection, NO_CHORD, TheoryMemory
from ..core.config import CompressionConfig
from .compression import FormCompressor, expand_sections, unlink_repeat_instance


def rebuild_from_bars(
    memory: TheoryMemory,
    bars: Sequence[str],
    config: Optional[CompressionConfig] = None,
) -> TheoryMemory:
    """Recompress bars and store both representations."""
    sections = tuple(FormCompressor(config).compress(bars))
    return replace(
        memory,
        expanded_bars=tuple(expand_sections(sections).expanded_bars),
        compressed_sections=sections,
    )


def rebuild_from_sections(memory: TheoryMemory, sections: Sequence[CompressedSection]) -> TheoryMemory:
    """Store sections as given and unroll them into expanded bars."""
    sections = tuple(sections)
    return replace(
        memory,
        expanded_bars=tuple(expand_sections(sections).expanded_bars),
        compressed_sections=sections,
    )


def set_bar(
    memory: TheoryMemory,
    index: int,
    chord: str,
    config: Optional[CompressionConfig] = None,
) -> TheoryMemory:
    """Set one bar's chord text, padding with empty bars past the end."""
    if index < 0:
        return memory
    bars = list(memory.expanded_bars)
    while len(bars) <= index:
        bars.append(NO_CHORD)
    bars[index] = chord.strip() or NO_CHORD
    return rebuild_from_bars(memory, bars, config)


def insert_bar(
    memory: TheoryMemory,
    index: int,
    config: Optional[CompressionConfig] = None,
) -> TheoryMemory:
    """Insert a bar at index, repeating the chord of the bar before it."""
    bars = list(memory.expanded_bars)
    target = max(0, min(index, len(bars)))
    bars.insert(target, bars[target - 1] if target > 0 else NO_CHORD)
    return rebuild_from_bars(memory, bars, config)


def remove_bar(
    memory: TheoryMemory,
    index: int,
    config: Optional[CompressionConfig] = None,
) -> TheoryMemory:
    """Remove one bar; the last remaining bar is never removed."""
    bars = list(memory.expanded_bars)
    if len(bars) <= 1 or not 0 <= index < len(bars):
        return memory
    del bars[index]
    return rebuild_from_bars(memory, bars, config)


def rename_section(memory: TheoryMemory, section_id: str, label: str) -> TheoryMemory:
    """Rename a section's label (blank labels keep the old one)."""
    label = label.strip()
    if not label:
        return memory
    sections = [
        replace(section, label=label) if section.id == section_id else section
        for section in memory.compressed_sections
    ]
    return rebuild_from_sections(memory, sections)


def replace_section_bars(memory: TheoryMemory, section_id: str, bars: Sequence[str]) -> TheoryMemory:
    """Replace a section's bar list; blank entries are dropped."""
    cleaned = tuple(bar.strip() for bar in bars if bar and bar.strip())
    if not cleaned or all(section.id != section_id for section in memory.compressed_sections):
        return memory
    sections = [
        replace(section, bars=cleaned) if section.id == section_id else section
        for section in memory.compressed_sections
    ]
    return rebuild_from_sections(memory, sections)


def unlink_section_repeat(memory: TheoryMemory, section_id: str, repeat_index: int) -> TheoryMemory:
    """Split one repeat out of a section so it can be edited independently."""
    sections = unlink_repeat_instance(memory.compressed_sections, section_id, repeat_index)
    return rebuild_from_sections(memory, sections)
