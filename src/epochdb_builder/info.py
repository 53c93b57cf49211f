"""Console reporting for builds and for an existing database."""
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from epochdb_builder.core.build_context import BuildContext
from epochdb_builder.core.models import Category
from epochdb_builder.export import database_writer as files
from epochdb_builder.export import index_builder as indexes
from epochdb_builder.utils.json_io import load_json
from epochdb_builder.validation.validator import ValidationReport


def category_table(ctx: BuildContext) -> Table:
    table = Table(show_header=True, header_style="bold green", box=None)
    table.add_column("Category", style="cyan")
    table.add_column("Named", justify="right")
    table.add_column("Total", justify="right")
    table.add_column("Complete", justify="right")
    for category in Category:
        store = ctx.dataset[category]
        table.add_row(category.value, str(len(store.named())), str(len(store)), f"{store.completion()}%")
    return table


def warning_lines(ctx: BuildContext, limit: int):
    warnings = ctx.stats.warnings
    lines = [f"[yellow]•[/yellow] {w.message}" for w in warnings[:limit]]
    if len(warnings) > limit:
        lines.append(f"[dim]... and {len(warnings) - limit} more (see {files.BUILD_LOG_FILE})[/dim]")
    return lines


def print_build_summary(ctx: BuildContext, report: Optional[ValidationReport] = None,
                        console: Optional[Console] = None, title: str = "Build Summary") -> None:
    """Per-category counts, applied overrides, surplus drops and the first few warnings."""
    console = console or Console()
    counters = ctx.stats.counters
    console.print(Panel(category_table(ctx), title=f"[bold green]{title}[/bold green]", border_style="green"))

    stats_text = (
        f"[cyan]Game version:[/cyan] {ctx.game_version}\n"
        f"[cyan]Templates:[/cyan] {ctx.template_count}\n"
        f"[cyan]Overrides applied:[/cyan] {counters['overrides_applied']}"
        f"  [cyan]Corrections:[/cyan] {counters['corrections_applied']}\n"
        f"[cyan]Placeholders filled:[/cyan] {counters['placeholders_filled']}"
        f"  [cyan]Surplus dropped:[/cyan] {counters['surplus_dropped']}"
    )
    if report is not None:
        stats_text += (
            f"\n[cyan]Validation:[/cyan] {report.total_errors} errors, {report.total_warnings} warnings, "
            f"{report.total_duplicates} duplicates, {report.total_placeholders} placeholders"
        )
    console.print(Panel(stats_text, title="[bold magenta]Statistics[/bold magenta]", border_style="magenta"))

    lines = warning_lines(ctx, ctx.config.build.summary_warning_limit)
    if lines:
        console.print(Panel("\n".join(lines), title=f"[bold yellow]Warnings ({len(ctx.stats.warnings)})[/bold yellow]",
                            border_style="yellow"))


def print_database_info(output_dir: Path, console: Optional[Console] = None) -> bool:
    """Print a table from an already built database; False when none exists."""
    console = console or Console()
    try:
        version = load_json(output_dir / files.VERSION_FILE)
        master = load_json(output_dir / indexes.INDEXES_DIR / indexes.MASTER_INDEX_FILE)
    except (OSError, ValueError) as e:
        console.print(f"[red]No readable database in {output_dir}:[/red] {e}")
        return False

    table = Table(show_header=True, header_style="bold green", box=None)
    table.add_column("Entry", style="cyan")
    table.add_column("Count", justify="right")
    for name, count in master.get("stats", {}).items():
        table.add_row(name, str(count))

    header = (
        f"[cyan]Game version:[/cyan] {version.get('gameVersion')}\n"
        f"[cyan]Built:[/cyan] {version.get('buildDate')}\n"
        f"[cyan]Templates:[/cyan] {version.get('templateCount')}\n"
    )
    console.print(Panel(header.rstrip(), title="[bold blue]EpochDB[/bold blue]", border_style="blue"))
    console.print(table)
    return True
