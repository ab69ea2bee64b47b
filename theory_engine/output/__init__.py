"""Output layer - Export charts to various formats.

This layer handles exporting the engine's bars and sections to:
- Plain-text chord charts
- Simplified iReal payloads
- MusicXML (for notation software)
"""

from .chart import (
    ChartExporter,
    ChartInput,
    bars_to_rows,
    build_ireal_chart,
    build_text_chart,
    chart_slug,
)
from .musicxml import MusicXMLExporter

__all__ = [
    "ChartExporter",
    "ChartInput",
    "bars_to_rows",
    "build_ireal_chart",
    "build_text_chart",
    "chart_slug",
    "MusicXMLExporter",
]
