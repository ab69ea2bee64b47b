"""MusicXML export functionality.

Writes a lead-sheet style chord chart: one measure per bar, a chord symbol
over a whole-bar rest. Bars are normalized to their form symbol so hand-typed
decorations music21 can't read don't break the export.
"""

from pathlib import Path

from ..inference import form_symbol_for
from .chart import ChartInput


class MusicXMLExporter:
    """Export a chord chart to MusicXML format via music21."""

    def __init__(self, tempo: float = 120.0, time_signature: str = "4/4"):
        """
        Initialize MusicXMLExporter.

        Args:
            tempo: Tempo in BPM
            time_signature: Time signature (e.g., "4/4", "3/4")
        """
        self.tempo = tempo
        self.time_signature = time_signature

    def build_score(self, chart: ChartInput):
        """Build a music21 Score for the chart."""
        try:
            from music21 import harmony, meter, metadata, note as m21_note, stream
            from music21 import tempo as m21_tempo
        except ImportError:
            raise ImportError("music21 is required for MusicXML export")

        score = stream.Score()
        score.metadata = metadata.Metadata()
        score.metadata.title = chart.name

        part = stream.Part()
        part.partName = "Chord Chart"

        ts = meter.TimeSignature(self.time_signature)
        bar_length = ts.barDuration.quarterLength

        for number, bar in enumerate(chart.bars(), start=1):
            measure = stream.Measure(number=number)
            if number == 1:
                measure.insert(0, m21_tempo.MetronomeMark(number=self.tempo))
                measure.insert(0, ts)

            symbol = form_symbol_for(bar)
            if symbol is None:
                measure.insert(0, harmony.NoChord())
            else:
                measure.insert(0, harmony.ChordSymbol(symbol))
            measure.insert(0, m21_note.Rest(quarterLength=bar_length))
            part.append(measure)

        score.append(part)
        return score

    def export(self, chart: ChartInput, output_path: str) -> None:
        """
        Export a chart to a MusicXML file.

        Args:
            chart: Chart to write
            output_path: Path to output MusicXML file
        """
        score = self.build_score(chart)

        # Ensure output directory exists
        Path(output_path).parent.mkdir(parents=True, exist_ok=True)

        score.write("musicxml", fp=output_path)
