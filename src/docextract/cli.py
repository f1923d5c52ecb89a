"""Document Field Extraction CLI."""

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Optional

import typer
from pydantic import TypeAdapter, ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from docextract.config import settings
from docextract.errors import DocExtractError
from docextract.models import AnalysisFlags, ConfiguredElement
from docextract.pipeline import (
    ClassificationOrchestrator,
    detect_card_numbers,
    extract_document,
    infer_data_type,
)
from docextract.providers import BlockTextExtractor, RegexTfnScanner, load_blocks

app = typer.Typer(
    name="docextract",
    help="Field extraction and classification over OCR block output",
    add_completion=False,
)
console = Console()


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Configure logging for every command."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else settings.log_level,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )


def _read_json(path: Path) -> Any:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        console.print(f"[bold red]Cannot read {path}:[/bold red] {e}")
        raise typer.Exit(code=1)


def _load_elements(path: Optional[Path]) -> Optional[list[ConfiguredElement]]:
    if path is None:
        return None
    try:
        return TypeAdapter(list[ConfiguredElement]).validate_python(_read_json(path))
    except ValidationError as e:
        console.print(f"[bold red]Invalid elements file:[/bold red] {e}")
        raise typer.Exit(code=1)


@app.command()
def extract(
    blocks_path: Path = typer.Argument(..., help="OCR response or block list (JSON)"),
    elements_path: Optional[Path] = typer.Option(
        None, "--elements", help="Configured elements to match (JSON list)"
    ),
    as_json: bool = typer.Option(False, "--json", help="Print fields as JSON"),
) -> None:
    """Extract key/value fields from OCR blocks."""
    elements = _load_elements(elements_path)
    try:
        extraction = extract_document(load_blocks(_read_json(blocks_path)), elements)
    except DocExtractError as e:
        console.print(f"[bold red]Extraction failed:[/bold red] {e}")
        raise typer.Exit(code=1)

    if as_json:
        console.print_json(data=[f.to_json_dict() for f in extraction.fields])
        return

    table = Table(title=f"Fields ({blocks_path.name})")
    table.add_column("Label", style="cyan")
    table.add_column("Value")
    table.add_column("Type", style="magenta")
    table.add_column("Confidence", justify="right")
    table.add_column("Page", justify="right")
    if elements:
        table.add_column("Element", style="green")

    for field in extraction.fields:
        row = [
            field.label,
            field.value,
            field.data_type.value,
            f"{field.confidence:.1f}",
            str(field.page),
        ]
        if elements:
            row.append(f"{field.element_type}/{field.category}")
        table.add_row(*row)

    console.print(table)
    console.print(
        f"[dim]{len(extraction.fields)} of {len(extraction.all_fields)} fields, "
        f"mean confidence {extraction.confidence}[/dim]"
    )


@app.command("infer-type")
def infer_type(
    value: str = typer.Argument(..., help="Field value to classify"),
) -> None:
    """Print the data type inferred for a value."""
    console.print(infer_data_type(value).value)


@app.command()
def cards(
    blocks_path: Path = typer.Argument(..., help="OCR response or block list (JSON)"),
    as_json: bool = typer.Option(False, "--json", help="Print matches as JSON"),
) -> None:
    """Find payment card numbers and the blocks that show them."""
    try:
        matches = detect_card_numbers(load_blocks(_read_json(blocks_path)))
    except DocExtractError as e:
        console.print(f"[bold red]Card detection failed:[/bold red] {e}")
        raise typer.Exit(code=1)

    if as_json:
        console.print_json(data=[m.to_json_dict() for m in matches])
        return

    if not matches:
        console.print("[green]No card numbers found[/green]")
        return

    table = Table(title=f"Card numbers ({blocks_path.name})")
    table.add_column("Card", style="cyan")
    table.add_column("Blocks", justify="right")
    table.add_column("Pages")
    for match in matches:
        pages = sorted({block.page for block in match.blocks})
        table.add_row(match.masked, str(len(match.blocks)), ", ".join(map(str, pages)) or "-")
    console.print(table)


@app.command()
def analyse(
    blocks_path: Path = typer.Argument(..., help="OCR response or block list (JSON)"),
    scan_tfn: bool = typer.Option(False, "--scan-tfn", help="Scan the text for TFNs"),
    elements_path: Optional[Path] = typer.Option(
        None, "--elements", help="Configured elements to match (JSON list)"
    ),
) -> None:
    """Run the analysis pipeline with the local providers."""
    orchestrator = ClassificationOrchestrator(
        text_extractor=BlockTextExtractor(elements=_load_elements(elements_path)),
        sensitive_scanner=RegexTfnScanner(),
    )
    flags = AnalysisFlags(auto_classify=False, scan_for_tfn=scan_tfn)

    try:
        results = asyncio.run(orchestrator.analyse(_read_json(blocks_path), flags))
    except DocExtractError as e:
        console.print(f"[bold red]Analysis failed:[/bold red] {e}")
        raise typer.Exit(code=1)

    console.print_json(data=results.to_json_dict())


if __name__ == "__main__":
    app()
