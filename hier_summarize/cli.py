"""CLI entry point for hier-summarize."""

import json
import logging
import sys
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from .chunking import CHUNK_OVERLAP, MAX_CHUNK_CHARS, count_tokens, split_text
from .errors import SummarizationError
from .summarize import SummarizationResult, SummarizeOptions, summarize_with_openai

app = typer.Typer(
    name="hier-summarize",
    help="Summarize long text into a short list of bullet points.",
    no_args_is_help=True,
)

console = Console()


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def _read_source(source: str) -> str:
    """Read text from a file path, or stdin when source is '-'."""
    if source == "-":
        return sys.stdin.read()

    file_path = Path(source)
    if not file_path.exists():
        console.print(f"[red]File not found:[/red] {source}")
        raise typer.Exit(1)
    return file_path.read_text(encoding="utf-8")


def _render_markdown(result: SummarizationResult) -> str:
    lines = ["# Summary", "", result.final or "_No bullets survived filtering._", ""]
    lines += ["## Merged", "", result.merged, ""]
    for i, block in enumerate(result.per_chunk, start=1):
        lines += [f"### Chunk {i}", "", block, ""]
    return "\n".join(lines)


def _write_outputs(out_dir: Path, result: SummarizationResult, formats: list[str]) -> None:
    """Write output files."""
    out_dir.mkdir(parents=True, exist_ok=True)

    if "md" in formats:
        (out_dir / "summary.md").write_text(_render_markdown(result))

    if "json" in formats:
        (out_dir / "summary.json").write_text(
            json.dumps(result.model_dump(), indent=2, ensure_ascii=False)
        )


@app.command()
def summarize(
    source: Annotated[str, typer.Argument(help="Text file path, or '-' to read stdin")],
    out: Annotated[
        Path | None,
        typer.Option("--out", "-o", help="Directory for summary.md / summary.json"),
    ] = None,
    format: Annotated[
        str,
        typer.Option("--format", "-f", help="Output format: md, json, or md,json"),
    ] = "md",
    model: Annotated[
        str,
        typer.Option("--model", "-m", help="OpenAI model for summarization"),
    ] = "gpt-4o-mini",
    max_chunk_chars: Annotated[
        int,
        typer.Option("--max-chunk-chars", help="Maximum characters per chunk"),
    ] = MAX_CHUNK_CHARS,
    overlap: Annotated[
        int,
        typer.Option("--overlap", help="Characters shared by consecutive chunks"),
    ] = CHUNK_OVERLAP,
    per_chunk_bullets: Annotated[
        int,
        typer.Option("--per-chunk-bullets", help="Bullets requested per chunk"),
    ] = 3,
    final_bullets: Annotated[
        int,
        typer.Option("--final-bullets", "-n", help="Bullets in the final summary"),
    ] = 3,
    concurrency: Annotated[
        int,
        typer.Option("--concurrency", "-c", help="Chunks summarized in parallel"),
    ] = 2,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Verbose output"),
    ] = False,
) -> None:
    """Summarize a text file into bullet points."""
    _configure_logging(verbose)

    formats = format.split(",")
    unknown = [f for f in formats if f not in ("md", "json")]
    if unknown:
        console.print(f"[red]Unknown format:[/red] {', '.join(unknown)}")
        raise typer.Exit(1)

    text = _read_source(source)
    console.print(f"[green]✓[/green] Input: {len(text)} chars")

    try:
        options = SummarizeOptions(
            model=model,
            max_chunk_chars=max_chunk_chars,
            overlap=overlap,
            per_chunk_bullets=per_chunk_bullets,
            final_bullets=final_bullets,
            concurrency=concurrency,
        )
    except ValueError as e:
        console.print(f"[red]Invalid options:[/red] {e}")
        raise typer.Exit(1) from e

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
        transient=True,
    ) as progress:
        progress.add_task("Generating summary...", total=None)
        try:
            result = summarize_with_openai(text, options)
        except SummarizationError as e:
            console.print(f"[red]Summarization failed:[/red] {e}")
            raise typer.Exit(1) from e

    console.print(
        f"[green]✓[/green] Summary generated from {len(result.per_chunk)} chunks "
        f"({len(result.merged_bullets)} merged bullets)"
    )
    console.print(result.final or "[yellow]No bullets survived filtering[/yellow]")

    if out is not None:
        _write_outputs(out, result, formats)
        console.print(Panel(f"[bold green]Done![/bold green]\n\nOutput: {out}"))


@app.command()
def chunks(
    source: Annotated[str, typer.Argument(help="Text file path, or '-' to read stdin")],
    max_chunk_chars: Annotated[
        int,
        typer.Option("--max-chunk-chars", help="Maximum characters per chunk"),
    ] = MAX_CHUNK_CHARS,
    overlap: Annotated[
        int,
        typer.Option("--overlap", help="Characters shared by consecutive chunks"),
    ] = CHUNK_OVERLAP,
    model: Annotated[
        str,
        typer.Option("--model", "-m", help="Model whose tokenizer is used for counts"),
    ] = "gpt-4o-mini",
) -> None:
    """Preview how a text file would be chunked."""
    text = _read_source(source)
    try:
        parts = split_text(text, max_chunk_chars, overlap)
    except ValueError as e:
        console.print(f"[red]Invalid options:[/red] {e}")
        raise typer.Exit(1) from e

    if not parts:
        console.print("[dim]Input is empty[/dim]")
        return

    table = Table(title=f"{len(parts)} chunks")
    table.add_column("#", justify="right")
    table.add_column("Start", justify="right")
    table.add_column("End", justify="right")
    table.add_column("Chars", justify="right")
    table.add_column("Tokens", justify="right")
    for chunk in parts:
        table.add_row(
            str(chunk.index + 1),
            str(chunk.start),
            str(chunk.end),
            str(len(chunk)),
            str(count_tokens(chunk.text, model)),
        )
    console.print(table)


if __name__ == "__main__":
    app()
