"""Command-line interface for the theory engine.

Provides commands for:
- analyze: Replay a recorded note stream through the engine
- chart: Export a saved memory as a text, iReal or MusicXML chord chart
- info: Show a saved memory snapshot
"""

import json
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

app = typer.Typer(
    name="theory-engine",
    help="Live music theory inference: key, chords, progression and form",
    rich_markup_mode="markdown",
)
console = Console()


def _load_config(config_file: Optional[Path]):
    from .core import TheoryConfig

    if config_file is None:
        return TheoryConfig()
    if not config_file.exists():
        console.print(f"[red]Error: Config file not found: {config_file}[/red]")
        raise typer.Exit(1)
    try:
        return TheoryConfig.from_dict(json.loads(config_file.read_text(encoding="utf-8")))
    except (ValueError, TypeError) as e:
        console.print(f"[red]Error: Invalid config: {e}[/red]")
        raise typer.Exit(1)


def _load_memory_file(memory_file: Path):
    from .storage import load_memory

    try:
        return load_memory(str(memory_file))
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)


@app.command()
def analyze(
    input_file: Path = typer.Argument(..., help="Note stream file (.txt, .json, .mid, .midi)"),
    bpm: Optional[float] = typer.Option(
        None, "--bpm", "-b", help="Tempo in BPM (overrides the file's tempo)"
    ),
    key: Optional[str] = typer.Option(
        None, "--key", "-k", help="Pin the key (manual mode), e.g. 'Bb'"
    ),
    scale: str = typer.Option(
        "major", "--scale", "-s", help="Scale used with --key"
    ),
    auto_key_change: bool = typer.Option(
        True, "--auto-key-change/--hold-key", help="Allow automatic key switches"
    ),
    memory_in: Optional[Path] = typer.Option(
        None, "--memory", "-m", help="Resume from a saved memory JSON"
    ),
    save: Optional[Path] = typer.Option(
        None, "--save", "-o", help="Save the final memory JSON here"
    ),
    config_file: Optional[Path] = typer.Option(
        None, "--config", "-c", help="JSON file with tuning overrides"
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Print the context after every note"
    ),
    json_output: bool = typer.Option(
        False, "--json", help="Print the final context as JSON"
    ),
):
    """Replay a note stream one note at a time, like a live session.

    Examples:
        theory-engine analyze riff.txt --bpm 96
        theory-engine analyze solo.mid --key F --scale dorian --save session.json
    """
    from dataclasses import asdict

    from .engine import TheoryEngine, TheoryRequest
    from .inference import KeyMode, KeySettings
    from .input import NoteStreamLoader
    from .storage import save_memory

    config = _load_config(config_file)

    try:
        stream = NoteStreamLoader().load(str(input_file))
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    if not stream.notes:
        console.print("[yellow]No notes in input![/yellow]")
        return

    memory = _load_memory_file(memory_in) if memory_in else None
    settings = KeySettings(
        mode=KeyMode.MANUAL if key else KeyMode.AUTO,
        manual_key=key or "C",
        manual_scale=scale,
        auto_key_change=auto_key_change,
    )
    tempo = bpm if bpm is not None else stream.bpm

    engine = TheoryEngine(config)
    result = None
    if not json_output:
        console.print(f"\n[bold blue]Theory Analysis: {input_file.name}[/bold blue]")
        console.print(f"   Notes: {len(stream.notes)}  Tempo: {_format_bpm(tempo)}\n")

    for notes, now_ms in stream.snapshots():
        request = TheoryRequest(notes=notes, bpm=tempo, now_ms=now_ms, key_settings=settings)
        result = engine.analyze(request, memory)
        memory = result.memory
        if verbose and not json_output:
            ctx = result.context
            console.print(
                f"   [dim]{now_ms:8.0f}ms[/dim] {ctx.note:<4} "
                f"{ctx.key_label:<18} {ctx.chord_guess:<10} {ctx.form_section_label or '-'}"
            )

    if save:
        save_memory(memory, str(save))

    if json_output:
        print(json.dumps({
            "context": asdict(result.context),
            "recommendations": [asdict(r) for r in result.recommendations],
        }, indent=2))
        return

    ctx = result.context
    console.print(f"[green]Key: {ctx.key_label}[/green] (confidence: {ctx.key_confidence:.2f})")
    console.print(f"Chord: {ctx.chord_guess} (form: {ctx.form_chord}, confidence: {ctx.chord_confidence:.2f})")
    if ctx.progression_preview:
        console.print(f"Progression: {ctx.progression_preview}")
    if ctx.form_section_label:
        console.print(f"Form section: {ctx.form_section_label}")
    if ctx.next_chord:
        console.print(f"Next chord: {ctx.next_chord}")

    _show_sections_table(memory)
    _show_recommendations_table(result.recommendations)

    if save:
        console.print(f"\n[dim]Memory saved to: {save}[/dim]")
    console.print("\n[green][OK] Analysis complete![/green]")


@app.command()
def chart(
    memory_file: Path = typer.Argument(..., help="Saved memory JSON"),
    output: Optional[Path] = typer.Option(
        None, "--output", "-o", help="Output file (default: <name>-chart.<ext>)"
    ),
    fmt: str = typer.Option(
        "txt", "--format", "-f", help="Chart format: txt, ireal or musicxml"
    ),
    name: str = typer.Option(
        "Untitled", "--name", "-n", help="Chart title"
    ),
    condensed: bool = typer.Option(
        False, "--condensed", help="Render from compressed sections with repeats"
    ),
    tempo: float = typer.Option(
        120.0, "--tempo", "-t", help="Tempo written to MusicXML"
    ),
):
    """Export a chord chart from a saved memory."""
    from .output import ChartExporter, ChartInput, MusicXMLExporter, chart_slug

    memory = _load_memory_file(memory_file)
    chart_input = ChartInput.from_memory(memory, name=name, condensed=condensed)

    extensions = {"txt": ".txt", "ireal": ".ireal.txt", "musicxml": ".musicxml"}
    if fmt not in extensions:
        console.print(f"[red]Error: Unsupported format: {fmt}[/red]")
        raise typer.Exit(1)

    if output is None:
        output = Path(f"{chart_slug(name)}-chart{extensions[fmt]}")

    if fmt == "musicxml":
        MusicXMLExporter(tempo=tempo).export(chart_input, str(output))
    else:
        ChartExporter().export(chart_input, fmt, str(output))

    console.print(f"[green][OK] Chart saved to: {output}[/green]")


@app.command()
def info(
    memory_file: Path = typer.Argument(..., help="Saved memory JSON"),
):
    """Show a saved memory snapshot."""
    memory = _load_memory_file(memory_file)

    console.print(f"\n[bold]Memory:[/bold] {memory_file.name}")
    console.print(f"  Key: {memory.stable_key} {memory.stable_scale} (confidence: {memory.key_confidence:.2f})")
    console.print(f"  Progression: {len(memory.progression)} chords")
    if memory.progression:
        console.print(f"    {' - '.join(memory.progression[-8:])}")
    console.print(f"  Bars: {len(memory.expanded_bars)}")
    console.print(f"  Form section: {memory.current_form_label or '-'}")

    if memory.form_patterns:
        table = Table(title="Form Patterns")
        table.add_column("Label", style="cyan")
        table.add_column("Signature", style="green")
        table.add_column("Length", style="yellow")
        table.add_column("Occurrences", style="magenta")
        for pattern in memory.form_patterns:
            table.add_row(pattern.label, pattern.signature, str(pattern.length), str(pattern.occurrences))
        console.print(table)

    _show_sections_table(memory)


def _format_bpm(bpm: Optional[float]) -> str:
    return f"{bpm:.1f} BPM" if bpm else "unknown"


def _show_sections_table(memory):
    """Display compressed sections in a table."""
    if not memory.compressed_sections:
        return

    table = Table(title="Form Sections")
    table.add_column("Section", style="cyan")
    table.add_column("Bars", style="green")
    table.add_column("Repeats", style="yellow")

    for section in memory.compressed_sections:
        table.add_row(
            section.label,
            " | ".join(bar or "N.C." for bar in section.bars),
            f"x{section.repeat_count}",
        )

    console.print(table)


def _show_recommendations_table(recommendations):
    """Display recommendations in a table."""
    if not recommendations:
        return

    table = Table(title="Recommendations")
    table.add_column("Type", style="cyan")
    table.add_column("Suggestion", style="green")
    table.add_column("Why", style="yellow")
    table.add_column("Confidence", style="magenta")

    for rec in recommendations:
        table.add_row(rec.type, rec.label, rec.reason, f"{rec.confidence:.2f}")

    console.print(table)


def main():
    """Entry point."""
    app()


if __name__ == "__main__":
    main()
