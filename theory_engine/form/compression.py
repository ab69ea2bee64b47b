"""Bar compression - Turn a flat bar list into a repeat-aware roadmap.

Musical form rarely divides evenly and near-repeats (a different turnaround
in the last bar) are common, so compression tries several section sizes,
matches chunks against earlier templates by similarity rather than
equality, and scores each size by how much of the chart it explains.

Consecutive chunks collapse into one repeated section only when their bars
are identical, so expand(compress(bars)) always reproduces bars exactly.
Near-repeats share the template's label but keep their own bars.
"""

import numpy as np
from typing import Dict, List, Optional, Sequence, Tuple
from dataclasses import dataclass, field

from ..core import CompressedSection, NO_CHORD
from ..core.config import CompressionConfig
from ..inference.chords import parse_chord_symbol
from ..inference.structure import section_label


@dataclass
class BarMapping:
    """Where an expanded bar comes from in the compressed sections."""
    expanded_bar_index: int
    section_id: str
    local_bar: int
    repeat_index: int


@dataclass
class ExpandedForm:
    """Result of unrolling compressed sections."""
    expanded_bars: List[str] = field(default_factory=list)
    bar_map: List[BarMapping] = field(default_factory=list)

    def section_at(self, bar_index: int) -> Optional[BarMapping]:
        """Mapping for an expanded bar index (e.g., the bar now playing)."""
        if 0 <= bar_index < len(self.bar_map):
            return self.bar_map[bar_index]
        return None


@dataclass
class SizeEvaluation:
    """Compression of the bars at one candidate section size."""
    size: int
    score: float
    sections: List[CompressedSection]
    repeat_coverage: float
    average_similarity: float


def is_empty_bar(bar: Optional[str]) -> bool:
    """True for bars that detection is allowed to fill."""
    return not bar or not bar.strip() or bar.strip() == NO_CHORD


class BarSimilarity:
    """Pluggable similarity over normalized bar tokens.

    A bar normalizes to {root, quality bucket, extension bucket}; the
    similarity table rewards exact text, then the same token, the same
    root and quality, the same root, and finally the same quality.
    """

    def __init__(self, config: Optional[CompressionConfig] = None):
        self.config = config or CompressionConfig()
        self._cache: Dict[str, Optional[Tuple[int, str, str]]] = {}

    def normalize(self, bar: str) -> Optional[Tuple[int, str, str]]:
        if bar not in self._cache:
            parsed = None if is_empty_bar(bar) else parse_chord_symbol(bar)
            self._cache[bar] = (
                (parsed.root_pc, parsed.quality, parsed.extension) if parsed else None
            )
        return self._cache[bar]

    def bars(self, left: str, right: str) -> float:
        cfg = self.config
        if left == right:
            return cfg.exact_match

        a, b = self.normalize(left), self.normalize(right)
        if a is None or b is None:
            # Two empty bars in different spellings ("", "N.C.") still agree
            return cfg.same_token if a is None and b is None else 0.0
        if a == b:
            return cfg.same_token
        if a[0] == b[0] and a[1] == b[1]:
            return cfg.same_root_quality
        if a[0] == b[0]:
            return cfg.same_root
        if a[1] == b[1]:
            return cfg.same_quality
        return 0.0

    def chunks(self, left: Sequence[str], right: Sequence[str]) -> float:
        """Average per-position similarity minus a length-mismatch penalty."""
        if not left or not right:
            return 0.0
        overlap = min(len(left), len(right))
        longest = max(len(left), len(right))
        average = float(np.mean([self.bars(left[i], right[i]) for i in range(overlap)]))
        penalty = self.config.length_mismatch_penalty * (longest - overlap) / longest
        return max(0.0, average - penalty)


class FormCompressor:
    """Partition expanded bars into labeled, repeat-counted sections."""

    def __init__(
        self,
        config: Optional[CompressionConfig] = None,
        similarity: Optional[BarSimilarity] = None,
    ):
        self.config = config or CompressionConfig()
        self.similarity = similarity or BarSimilarity(self.config)

    def candidate_sizes(self, bar_count: int) -> List[int]:
        """Section sizes to try for a chart of bar_count bars, in preference order."""
        cfg = self.config
        sizes = [
            size for size in cfg.preferred_sizes
            if cfg.min_size <= size <= cfg.max_size and size <= bar_count
        ]
        if bar_count < cfg.exact_size_below and bar_count not in sizes:
            sizes.append(bar_count)
        return sizes

    def match_threshold(self, size: int, chunk_length: int) -> float:
        """Similarity a chunk needs to reuse a template."""
        cfg = self.config
        if chunk_length != size or size < cfg.exact_size_below:
            return cfg.strict_threshold
        if size >= cfg.loose_size:
            return cfg.loose_threshold
        return cfg.regular_threshold

    def compress(self, bars: Sequence[str], section_size: Optional[int] = None) -> List[CompressedSection]:
        """
        Compress expanded bars into sections.

        Args:
            bars: One chord symbol per bar
            section_size: Force a section size instead of searching

        Returns:
            Sections whose unrolled bars reproduce the input exactly
        """
        bars = list(bars)
        if not bars:
            return []

        if section_size is not None:
            return self.evaluate(bars, max(1, section_size)).sections

        evaluations = [self.evaluate(bars, size) for size in self.candidate_sizes(len(bars))]
        best = max(evaluations, key=lambda e: (round(e.score, 9), e.size))
        return best.sections

    def evaluate(self, bars: List[str], size: int) -> SizeEvaluation:
        """Compress at one section size and score the result."""
        cfg = self.config
        chunks = [bars[i:i + size] for i in range(0, len(bars), size)]

        templates: List[Tuple[str, List[str]]] = []
        blocks: List[Dict] = []
        matched_similarities: List[float] = []

        for chunk in chunks:
            best_label, best_similarity = None, 0.0
            for label, template in templates:
                similarity = self.similarity.chunks(chunk, template)
                if similarity > best_similarity:
                    best_label, best_similarity = label, similarity

            if best_label is not None and best_similarity >= self.match_threshold(size, len(chunk)):
                label = best_label
                matched_similarities.append(best_similarity)
            else:
                label = section_label(len(templates))
                templates.append((label, chunk))

            previous = blocks[-1] if blocks else None
            if (
                previous is not None
                and previous["label"] == label
                and previous["bars"] == chunk
            ):
                previous["repeat_count"] += 1
            else:
                blocks.append({"label": label, "bars": chunk, "repeat_count": 1})

        sections = [
            CompressedSection(
                id=f"{block['label']}-{index}",
                label=block["label"],
                bars=tuple(block["bars"]),
                repeat_count=block["repeat_count"],
            )
            for index, block in enumerate(blocks)
        ]

        repeat_coverage = len(matched_similarities) / len(chunks)
        average_similarity = float(np.mean(matched_similarities)) if matched_similarities else 0.0
        remainder = len(bars) % size
        remainder_penalty = 0.0 if remainder == 0 else (size - remainder) / size

        low, high = cfg.preferred_range
        size_preference = cfg.size_preference if low <= size <= high else 0.0
        short_sections = sum(1 for s in sections if len(s.bars) < size / 2)
        complexity = max(0, len(sections) - cfg.max_simple_sections) * cfg.complexity_penalty

        score = (
            cfg.coverage_weight * repeat_coverage
            + cfg.similarity_weight * average_similarity
            + cfg.remainder_weight * (1.0 - remainder_penalty)
            + size_preference
            - cfg.unique_section_weight * len(templates)
            - cfg.short_section_penalty * short_sections
            - complexity
        )

        return SizeEvaluation(
            size=size,
            score=score,
            sections=sections,
            repeat_coverage=repeat_coverage,
            average_similarity=average_similarity,
        )


def compress_expanded_bars(
    bars: Sequence[str],
    config: Optional[CompressionConfig] = None,
    section_size: Optional[int] = None,
) -> List[CompressedSection]:
    """Compress bars with a default FormCompressor."""
    return FormCompressor(config).compress(bars, section_size=section_size)


def expand_sections(sections: Sequence[CompressedSection]) -> ExpandedForm:
    """
    Unroll sections into bars plus a per-bar lookup of their origin.

    Inverse of compress_expanded_bars.
    """
    form = ExpandedForm()
    for section in sections:
        for repeat_index in range(section.repeat_count):
            for local_bar, bar in enumerate(section.bars):
                form.bar_map.append(BarMapping(
                    expanded_bar_index=len(form.expanded_bars),
                    section_id=section.id,
                    local_bar=local_bar,
                    repeat_index=repeat_index,
                ))
                form.expanded_bars.append(bar)
    return form


def merge_expanded_bars(existing: Sequence[str], detected: Sequence[str], offset: int = 0) -> List[str]:
    """
    Fill empty bars of existing with detected values, extending if longer.

    Bars that already hold a chord (including manual edits) are never
    overwritten.

    Args:
        existing: Current expanded bars
        detected: Detected bars, the first one belonging at bar ``offset``
        offset: Expanded bar index of ``detected[0]`` (non-zero once older
            detected bars have been dropped from a capped window)
    """
    if not detected:
        return list(existing)
    if not existing and offset <= 0:
        return list(detected)

    merged = list(existing)
    if offset > len(merged):
        merged.extend([NO_CHORD] * (offset - len(merged)))
    for index, bar in enumerate(detected, start=max(0, offset)):
        if index < len(merged):
            if is_empty_bar(merged[index]):
                merged[index] = bar
        else:
            merged.append(bar)
    return merged


def unlink_repeat_instance(
    sections: Sequence[CompressedSection],
    section_id: str,
    repeat_index: int,
) -> List[CompressedSection]:
    """
    Split one repeat out of a repeated section so it can be edited alone.

    The section becomes up to three pieces: the repeats before the target,
    the target itself (repeat_count=1), and the repeats after it. Unknown
    ids and unrepeated sections are left as they are.

    Returns:
        New section list with fresh, unique ids
    """
    out: List[CompressedSection] = []
    changed = False

    for section in sections:
        if section.id != section_id or section.repeat_count <= 1:
            out.append(section)
            continue

        changed = True
        target = max(0, min(repeat_index, section.repeat_count - 1))
        before = target
        after = section.repeat_count - target - 1

        if before > 0:
            out.append(CompressedSection(f"{section.id}-pre", section.label, section.bars, before))
        out.append(CompressedSection(f"{section.id}-u{target}", section.label, section.bars, 1))
        if after > 0:
            out.append(CompressedSection(f"{section.id}-post", section.label, section.bars, after))

    if not changed:
        return list(sections)

    return [
        CompressedSection(
            id=f"{section.label}-{index}-{section.id}",
            label=section.label,
            bars=section.bars,
            repeat_count=section.repeat_count,
        )
        for index, section in enumerate(out)
    ]
