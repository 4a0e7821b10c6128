"""Command-line interface for VidQuarry."""

from __future__ import annotations

import asyncio
import sys
import time
from pathlib import Path
from typing import Any, List, Optional, Sequence

import click
import structlog
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from vidquarry import __version__
from vidquarry.config import Config, load_config
from vidquarry.exceptions import ExportError, InvalidInputError
from vidquarry.export import write_report
from vidquarry.observability import configure_logging
from vidquarry.parser.url_resolver import host_of
from vidquarry.pipeline import VideoAnalyzer
from vidquarry.protocols import ExportFormat, SiteAnalysis

console = Console()
logger = structlog.get_logger(__name__)

FORMAT_CHOICES = ["json", "html", "both"]


def build_analyzer(config: Config) -> VideoAnalyzer:
    """Analyzer used by every command."""
    return VideoAnalyzer(config)


def selected_formats(format_name: Optional[str], config: Config) -> List[ExportFormat]:
    """Formats named on the command line, else the configured ones."""
    if format_name is None:
        return [ExportFormat(name) for name in dict.fromkeys(config.export.formats)]
    if format_name == "both":
        return [ExportFormat.JSON, ExportFormat.HTML]
    return [ExportFormat(format_name)]


def write_reports(
    analysis: SiteAnalysis, formats: Sequence[ExportFormat], output_dir: Path, timestamp: Optional[int] = None
) -> List[Path]:
    stamp = int(time.time()) if timestamp is None else timestamp
    return [write_report(analysis, fmt, output_dir, stamp) for fmt in formats]


def summary_table(analyses: Sequence[SiteAnalysis]) -> Table:
    table = Table(title="Video Analysis")
    table.add_column("URL", overflow="fold")
    table.add_column("Videos", justify="right")
    table.add_column("Articles", justify="right")
    table.add_column("Accessible", justify="right")
    table.add_column("Time", justify="right")
    table.add_column("Status")
    for analysis in analyses:
        accessible = sum(1 for detail in analysis.video_urls if detail.accessibility.is_accessible)
        status = "[red]failed[/red]" if analysis.failed else "[green]ok[/green]"
        table.add_row(
            escape(analysis.target_url),
            str(len(analysis.videos)),
            str(len(analysis.articles)),
            f"{accessible}/{len(analysis.video_urls)}",
            f"{analysis.processing_time:.2f}s",
            status,
        )
    return table


def print_errors(analysis: SiteAnalysis) -> None:
    for error in analysis.error_log:
        console.print(f"[red]{escape(analysis.target_url)}: {escape(error)}[/red]")


@click.group()
@click.version_option(version=__version__)
@click.option("--config", "-c", type=click.Path(exists=True, dir_okay=False), help="Configuration file path")
@click.option(
    "--log-level",
    default=None,
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Logging level (overrides the configuration file)",
)
@click.pass_context
def cli(ctx: click.Context, config: Optional[str], log_level: Optional[str]) -> None:
    """VidQuarry - Video discovery and article cross-referencing for web pages."""
    ctx.ensure_object(dict)
    try:
        loaded = load_config(Path(config) if config else None)
    except (ValueError, OSError) as e:
        raise click.BadParameter(str(e), param_hint="--config") from e
    if log_level:
        monitoring = loaded.monitoring.model_copy(update={"log_level": log_level.upper()})
        loaded = loaded.model_copy(update={"monitoring": monitoring})
    configure_logging(loaded.monitoring)
    ctx.obj["config"] = loaded


def output_options(func: Any) -> Any:
    func = click.option(
        "--output-dir",
        "-o",
        type=click.Path(file_okay=False),
        default=None,
        help="Directory for reports (defaults to the configured export directory)",
    )(func)
    func = click.option(
        "--format",
        "format_name",
        type=click.Choice(FORMAT_CHOICES),
        default=None,
        help="Report format (defaults to the configured export formats)",
    )(func)
    return func


@cli.command()
@click.argument("url")
@output_options
@click.pass_context
def analyze(ctx: click.Context, url: str, format_name: str, output_dir: Optional[str]) -> None:
    """Analyse a single page and write its report."""
    config: Config = ctx.obj["config"]
    target_dir = Path(output_dir) if output_dir else config.export.output_dir

    async def run() -> SiteAnalysis:
        async with build_analyzer(config) as analyzer:
            return await analyzer.analyze(url)

    with console.status(f"Analyzing {escape(url)}..."):
        analysis = asyncio.run(run())

    console.print(summary_table([analysis]))
    print_errors(analysis)
    try:
        paths = write_reports(analysis, selected_formats(format_name, config), target_dir)
    except ExportError as e:
        console.print(f"[red]Export failed: {escape(str(e))}[/red]")
        sys.exit(2)
    for path in paths:
        console.print(f"Report written to [bold]{path}[/bold]")
    if analysis.failed:
        sys.exit(1)


@cli.command()
@click.argument("file", type=click.File("r"))
@output_options
@click.pass_context
def batch(ctx: click.Context, file: Any, format_name: str, output_dir: Optional[str]) -> None:
    """Analyse every URL listed in FILE (one per line, '#' starts a comment)."""
    config: Config = ctx.obj["config"]
    target_dir = Path(output_dir) if output_dir else config.export.output_dir
    urls = [line.strip() for line in file if line.strip() and not line.strip().startswith("#")]
    if not urls:
        raise click.UsageError(f"No URLs found in {file.name}")

    async def run() -> List[SiteAnalysis]:
        return await build_analyzer(config).analyze_many(urls)

    console.print(
        Panel.fit(
            f"[bold blue]VidQuarry batch[/bold blue]\n"
            f"URLs: {len(urls)}\n"
            f"Batch size: {config.analyzer.batch_size}\n"
            f"Max concurrency: {config.analyzer.max_concurrency}",
            title="Starting",
        )
    )
    try:
        with console.status(f"Analyzing {len(urls)} URLs..."):
            analyses = asyncio.run(run())
    except InvalidInputError as e:
        raise click.UsageError(str(e)) from e

    console.print(summary_table(analyses))
    stamp = int(time.time())
    formats = selected_formats(format_name, config)
    try:
        for index, analysis in enumerate(analyses, start=1):
            print_errors(analysis)
            # One directory per URL keeps reports from the same second apart
            subdir = target_dir / f"{index:03d}_{host_of(analysis.target_url) or 'invalid'}"
            for path in write_reports(analysis, formats, subdir, stamp):
                console.print(f"Report written to [bold]{path}[/bold]")
    except ExportError as e:
        console.print(f"[red]Export failed: {escape(str(e))}[/red]")
        sys.exit(2)

    failed = sum(1 for analysis in analyses if analysis.failed)
    logger.info("Batch finished", urls=len(analyses), failed=failed)
    if failed == len(analyses):
        sys.exit(1)


@cli.command()
@click.argument("url")
@click.pass_context
def validate(ctx: click.Context, url: str) -> None:
    """Check that URL is well formed and reachable."""
    config: Config = ctx.obj["config"]

    async def run() -> Any:
        async with build_analyzer(config) as analyzer:
            return await analyzer.validate(url)

    result = asyncio.run(run())
    if result.is_valid:
        console.print(f"[green]✓ {escape(url)} is valid and reachable[/green]")
        return
    console.print(f"[red]✗ {escape(url)}: {escape(result.error_message or '')}[/red]")
    sys.exit(1)


def main() -> None:
    """Main entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
