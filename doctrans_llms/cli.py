"""
Command-line interface for DocTrans-LLMs.

Provides commands for:
- Inspecting parsed documents (ingest)
- Source cleansing reports (clean)
- Domain classification and summary (domain)
- Translating with one provider (translate) or comparing several (compare)
- Aligning two text files (align)
- Managing provider credentials (keys)

Usage:
    doctrans ingest report.docx
    doctrans translate report.pdf --provider openai --target es -o report.es.txt
    doctrans compare report.docx --provider openai --provider claude
    doctrans keys set openai
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn
from rich.table import Table

from doctrans_llms import __version__
from doctrans_llms.align import align, invalid_alignments, segments_from_text
from doctrans_llms.cleanse import get_change_report
from doctrans_llms.config import APP_NAME, DEFAULT_TARGET_LANG, SUPPORTED_PROVIDERS
from doctrans_llms.domain import analyze_document, detect_domain, get_domain_preferences
from doctrans_llms.errors import DocTransError
from doctrans_llms.ingest import parse_document
from doctrans_llms.models import DocumentContent
from doctrans_llms.pipeline import DocumentPipeline, PipelineConfig, PipelineResult, cleanse_content

app = typer.Typer(
    name="doctrans",
    help="DocTrans-LLMs: document translation and comparison across LLM providers",
    add_completion=False,
)
console = Console()


def version_callback(value: bool):
    if value:
        console.print(f"{APP_NAME} v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False, "--version",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v",
        help="Show debug logging",
    ),
):
    """DocTrans-LLMs: multi-provider document translation."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=verbose)],
        force=True,
    )


def _fail(message: str) -> None:
    console.print(f"[red]Error:[/] {message}", style="bold")
    raise typer.Exit(1)


def _load(path: Path) -> DocumentContent:
    if not path.exists():
        _fail(f"File not found: {path}")
    try:
        return parse_document(path.read_bytes(), path.name)
    except DocTransError as e:
        _fail(str(e))


def _preview(text: str, limit: int = 80) -> str:
    text = " ".join(text.split())
    return text[:limit] + "..." if len(text) > limit else text


def _run_pipeline(path: Path, config: PipelineConfig) -> PipelineResult:
    from doctrans_llms.keys import KeyManager

    if not path.exists():
        _fail(f"File not found: {path}")
    credentials = KeyManager().credentials(config.providers)
    pipeline = DocumentPipeline(config)

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        console=console,
    ) as progress:
        task = progress.add_task("Starting...", total=100)
        pipeline.progress_callback = lambda msg, pct: progress.update(
            task, description=msg, completed=int(pct * 100),
        )
        try:
            return pipeline.run(path.read_bytes(), path.name, credentials=credentials)
        except DocTransError as e:
            progress.stop()
            _fail(str(e))


@app.command()
def ingest(
    input_file: Path = typer.Argument(..., help="Document to parse (DOCX, PDF, RTF, ODT, TXT)"),
    as_json: bool = typer.Option(False, "--json", help="Print the full content model as JSON"),
    output_file: Optional[Path] = typer.Option(None, "--output", "-o", help="Write JSON to this file"),
):
    """Parse a document and show its structure."""
    content = _load(input_file)

    if as_json or output_file:
        payload = content.to_json()
        if output_file:
            output_file.write_text(payload, encoding="utf-8")
            console.print(f"[green]Saved to:[/] {output_file}")
        else:
            console.print_json(payload)
        return

    meta = content.metadata
    table = Table(title=f"Document: {input_file.name}")
    table.add_column("Property", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Title", (meta.title if meta else None) or "-")
    table.add_row("Author", (meta.author if meta else None) or "-")
    table.add_row("Language (guess)", (meta.language if meta else None) or "-")
    table.add_row("Words", str(meta.word_count if meta else 0))
    table.add_row("Pages (est.)", str(meta.page_count if meta else 0))
    s = content.structure
    table.add_row("Headings", str(len(s.headings)))
    table.add_row("Paragraphs", str(len(s.paragraphs)))
    table.add_row("Lists", str(len(s.lists)))
    table.add_row("Tables", str(len(s.tables)))
    table.add_row("Footnotes", str(len(s.footnotes)))
    table.add_row("Images", str(len(content.images)))
    console.print(table)

    if s.headings:
        console.print("\n[bold]Outline:[/]")
        for heading in s.headings:
            console.print(f"{'  ' * (heading.level - 1)}• {heading.text}")


@app.command()
def clean(
    input_file: Path = typer.Argument(..., help="Document to cleanse"),
    output_file: Optional[Path] = typer.Option(None, "--output", "-o", help="Write the corrected text here"),
):
    """Show the source corrections that would be applied before translation."""
    content = _load(input_file)
    cleaned, fixes = cleanse_content(content)

    if not fixes:
        console.print("[green]No corrections were needed.[/]")
    for element_id, result in fixes.items():
        console.print(f"\n[bold cyan]{element_id}[/]: {result.explanation}")
        console.print(get_change_report(result), markup=False)

    if output_file:
        output_file.write_text(cleaned.text, encoding="utf-8")
        console.print(f"\n[green]Saved to:[/] {output_file}")


@app.command()
def domain(
    input_file: Path = typer.Argument(..., help="Document to classify"),
    target_lang: str = typer.Option(DEFAULT_TARGET_LANG, "--target", "-l", help="Language of the terminology map"),
):
    """Classify the document domain and print an extractive summary."""
    content = _load(input_file)
    result = detect_domain(content.text, target_lang)
    prefs = get_domain_preferences(result.type)
    summary = analyze_document(content.text)

    console.print(f"[bold]Domain:[/] {result.type.value} (confidence {result.confidence:.2f})")
    console.print(f"[dim]Tone: {prefs.tone}, formality: {prefs.formality}[/]")

    if result.terminology:
        table = Table(title="Terminology")
        table.add_column("Source", style="cyan")
        table.add_column("Target", style="green")
        for source, target in result.terminology.items():
            table.add_row(source, target)
        console.print(table)

    console.print("\n[bold]Main ideas:[/]")
    for idea in summary.main_ideas:
        console.print(f"  • {idea}")
    console.print(f"\n[bold]Topics:[/] {', '.join(summary.topics) or '-'}")
    console.print(f"[bold]Key terms:[/] {', '.join(summary.key_terms) or '-'}")
    console.print(f"\n[bold]Abstract:[/] {summary.abstract}")


@app.command()
def translate(
    input_file: Path = typer.Argument(..., help="Document to translate"),
    provider: str = typer.Option("openai", "--provider", "-p", help=f"Provider ({', '.join(SUPPORTED_PROVIDERS)})"),
    target_lang: str = typer.Option(DEFAULT_TARGET_LANG, "--target", "-l", help="Target language code"),
    source_lang: Optional[str] = typer.Option(None, "--source", "-s", help="Source language code (default: detected)"),
    domain_hint: Optional[str] = typer.Option(None, "--domain", "-d", help="Domain override (legal, medical, ...)"),
    no_clean: bool = typer.Option(False, "--no-clean", help="Skip source cleansing"),
    output_file: Optional[Path] = typer.Option(None, "--output", "-o", help="Write the translation here"),
):
    """Translate a document with one provider."""
    config = PipelineConfig(
        source_lang=source_lang,
        target_lang=target_lang,
        providers=[provider],
        domain_hint=domain_hint,
        clean_source=not no_clean,
    )
    result = _run_pipeline(input_file, config)

    if not result.success:
        _fail(result.errors[provider])

    translation = result.translations[provider]
    table = Table(title="Translation")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Provider", provider)
    table.add_row("Model", translation.model or "-")
    table.add_row("Domain", result.domain.type.value)
    table.add_row("Source corrections", str(result.change_count))
    table.add_row("Confidence", f"{translation.confidence:.2f}")
    table.add_row("Tokens used", str(translation.tokens_used or "-"))
    view = result.views[provider]
    table.add_row("Aligned segments", f"{len(view.alignments)} ({len(invalid_alignments(view.alignments))} weak)")
    console.print(table)

    if output_file:
        output_file.write_text(translation.translated_text, encoding="utf-8")
        console.print(f"\n[green]Saved to:[/] {output_file}")
    else:
        console.print("\n[bold]Translated text:[/]\n")
        console.print(translation.translated_text, markup=False)


@app.command()
def compare(
    input_file: Path = typer.Argument(..., help="Document to translate"),
    providers: Optional[List[str]] = typer.Option(None, "--provider", "-p", help="Providers to compare (default: all)"),
    target_lang: str = typer.Option(DEFAULT_TARGET_LANG, "--target", "-l", help="Target language code"),
    source_lang: Optional[str] = typer.Option(None, "--source", "-s", help="Source language code (default: detected)"),
    no_clean: bool = typer.Option(False, "--no-clean", help="Skip source cleansing"),
    output_file: Optional[Path] = typer.Option(None, "--output", "-o", help="Write all results as JSON"),
):
    """Translate a document with several providers side by side."""
    config = PipelineConfig(
        source_lang=source_lang,
        target_lang=target_lang,
        providers=list(providers or SUPPORTED_PROVIDERS),
        clean_source=not no_clean,
    )
    result = _run_pipeline(input_file, config)

    table = Table(title=f"Provider comparison ({target_lang})")
    table.add_column("Provider", style="cyan")
    table.add_column("Status")
    table.add_column("Model", style="dim")
    table.add_column("Tokens")
    table.add_column("Preview / error")
    for provider in config.providers:
        if provider in result.translations:
            t = result.translations[provider]
            table.add_row(provider, "[green]✓[/]", t.model or "-", str(t.tokens_used or "-"), _preview(t.translated_text))
        else:
            table.add_row(provider, "[red]✗[/]", "-", "-", f"[red]{result.errors.get(provider, 'unknown error')}[/]")
    console.print(table)

    if output_file:
        output_file.write_text(json.dumps(result.to_dict(), indent=2, ensure_ascii=False), encoding="utf-8")
        console.print(f"\n[green]Saved to:[/] {output_file}")


@app.command(name="align")
def align_files(
    source_file: Path = typer.Argument(..., help="Original text file"),
    target_file: Path = typer.Argument(..., help="Translated text file"),
):
    """Align two texts paragraph by paragraph and show confidence."""
    for path in (source_file, target_file):
        if not path.exists():
            _fail(f"File not found: {path}")

    source = segments_from_text(source_file.read_text(encoding="utf-8"), prefix="src")
    target = segments_from_text(target_file.read_text(encoding="utf-8"), prefix="tgt")
    alignments = align(source, target)

    table = Table(title=f"Alignment ({len(source)} source / {len(target)} target segments)")
    table.add_column("#", style="dim")
    table.add_column("Source")
    table.add_column("Target")
    table.add_column("Confidence")
    table.add_column("Valid")
    for i, a in enumerate(alignments):
        table.add_row(
            str(i + 1),
            _preview(source[i].text, 40),
            _preview(target[i].text, 40),
            f"{a.confidence:.2f}",
            "[green]✓[/]" if a.is_valid else "[red]✗[/]",
        )
    console.print(table)

    if len(source) != len(target):
        console.print(f"[yellow]Note:[/] {abs(len(source) - len(target))} segment(s) left unaligned")


@app.command()
def keys(
    action: str = typer.Argument("list", help="Action: list, set, status, delete"),
    provider: Optional[str] = typer.Argument(None, help=f"Provider ({', '.join(SUPPORTED_PROVIDERS)})"),
):
    """Manage provider credentials.

    Examples:
        doctrans keys list              # Status of all providers
        doctrans keys set openai        # Store the OpenAI key
        doctrans keys status claude     # Where the Claude key comes from
        doctrans keys delete grok       # Delete the stored Grok key
    """
    from doctrans_llms.keys import PROVIDER_ENV_VARS, KeyManager

    km = KeyManager()

    if action == "list":
        table = Table(title="Provider Credentials")
        table.add_column("Provider", style="cyan")
        table.add_column("Status", style="green")
        table.add_column("Source", style="yellow")
        table.add_column("Value", style="dim")
        for info in km.list_keys():
            status = "[green]✓ Set[/]" if info.is_set else "[red]✗ Not set[/]"
            table.add_row(info.provider, status, info.source, info.masked_value or "-")
        console.print(table)
        console.print("\n[dim]Priority: env > keychain > config file[/]")
        return

    if not provider:
        console.print(f"Available providers: {', '.join(SUPPORTED_PROVIDERS)}")
        _fail("Provider name required")

    try:
        if action == "set":
            key = typer.prompt(f"Enter API key for {provider}", hide_input=True)
            if not key.strip():
                _fail("Key cannot be empty")
            storage = km.set_key(provider, key.strip())
            console.print(f"[green]✓[/] API key for {provider} saved to {storage}")
            if storage == "config":
                console.print(f"[yellow]Note:[/] Key stored in local file ({km.config_file})")
                console.print("       For better security, use environment variables")

        elif action == "status":
            info = km.get_key_info(provider)
            if info.is_set:
                console.print(f"[green]✓[/] API key for {provider} is set")
                console.print(f"    Source: {info.source}")
                console.print(f"    Value: {info.masked_value}")
            else:
                console.print(f"[red]✗[/] No API key found for {provider}")
                console.print(f"  Option 1: [cyan]doctrans keys set {provider}[/]")
                console.print(f"  Option 2: [cyan]export {PROVIDER_ENV_VARS[provider.lower()]}='your-key-here'[/]")

        elif action == "delete":
            if km.delete_key(provider):
                console.print(f"[green]✓[/] Deleted API key for {provider}")
            else:
                console.print(f"[yellow]No stored key for {provider}[/]")

        else:
            _fail(f"Unknown action: {action}")
    except DocTransError as e:
        _fail(str(e))


if __name__ == "__main__":
    app()
