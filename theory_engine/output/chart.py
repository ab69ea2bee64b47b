"""Chord chart export - Plain-text and simplified iReal charts."""

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Sequence

from ..core import NO_CHORD, CompressedSection, TheoryMemory
from ..form import expand_sections


@dataclass
class ChartInput:
    """Everything a chart needs from the engine memory.

    Attributes:
        name: Chart title
        key_label: e.g. "C major"
        expanded_bars: One chord symbol per bar ("" for an empty bar)
        sections: Compressed sections
        condensed: Render from the sections (with repeats) instead of the bars
    """
    name: str
    key_label: str
    expanded_bars: List[str] = field(default_factory=list)
    sections: List[CompressedSection] = field(default_factory=list)
    condensed: bool = False

    @classmethod
    def from_memory(cls, memory: TheoryMemory, name: str = "Untitled", condensed: bool = False) -> "ChartInput":
        return cls(
            name=name,
            key_label=f"{memory.stable_key} {memory.stable_scale}",
            expanded_bars=list(memory.expanded_bars),
            sections=list(memory.compressed_sections),
            condensed=condensed,
        )

    def bars(self) -> List[str]:
        if self.condensed:
            return expand_sections(self.sections).expanded_bars
        return list(self.expanded_bars)


def bars_to_rows(bars: Sequence[str], per_row: int = 4) -> List[List[str]]:
    """Split bars into rows, writing empty bars as N.C."""
    labelled = [bar or NO_CHORD for bar in bars]
    return [labelled[i:i + per_row] for i in range(0, len(labelled), per_row)]


def build_text_chart(chart: ChartInput, bars_per_row: int = 4) -> str:
    lines = [f"{chart.name} - Chord Chart", f"Key: {chart.key_label}", ""]

    for row in bars_to_rows(chart.bars(), bars_per_row):
        lines.append(f"| {' | '.join(row)} |")

    if chart.condensed:
        lines.append("")
        lines.append("Condensed form sections:")
        for section in chart.sections:
            lines.append(
                f"{section.label}: {' | '.join(bar or NO_CHORD for bar in section.bars)} "
                f"x{section.repeat_count}"
            )

    return "\n".join(lines)


def build_ireal_chart(chart: ChartInput) -> str:
    """Simplified iReal-style payload: title, key and bar-separated chords."""
    return "\n".join([
        "IREALPRO_SIMPLIFIED",
        f"TITLE:{chart.name}",
        f"KEY:{chart.key_label}",
        f"CHORDS:{' | '.join(bar or NO_CHORD for bar in chart.bars())}",
    ])


def chart_slug(name: str) -> str:
    """File-name friendly version of a chart title."""
    return re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-") or "chart"


class ChartExporter:
    """Write text and iReal charts to disk."""

    FORMATS = ("txt", "ireal")

    def __init__(self, bars_per_row: int = 4):
        self.bars_per_row = bars_per_row

    def render(self, chart: ChartInput, fmt: str) -> str:
        if fmt == "txt":
            return build_text_chart(chart, self.bars_per_row)
        if fmt == "ireal":
            return build_ireal_chart(chart)
        raise ValueError(f"Unsupported chart format: {fmt}. Supported: {self.FORMATS}")

    def export(self, chart: ChartInput, fmt: str, output_path: str) -> None:
        """
        Render a chart and write it as UTF-8 text.

        Raises:
            ValueError: If the format isn't "txt" or "ireal"
        """
        content = self.render(chart, fmt)
        Path(output_path).parent.mkdir(parents=True, exist_ok=True)
        Path(output_path).write_text(content + "\n", encoding="utf-8")
