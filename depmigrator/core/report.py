"""Result rendering and export."""

from pydantic import BaseModel
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from depmigrator.models.schemas import (
    AnalysisResult,
    FileUpdateResult,
    MigrationRecord,
    RiskLevel,
    UpdateCandidate,
)

RISK_STYLES = {
    RiskLevel.HIGH: "bold red",
    RiskLevel.MEDIUM: "yellow",
    RiskLevel.LOW: "green",
}


def render_results(results: AnalysisResult, console: Console | None = None) -> None:
    """Render the major/minor/patch buckets as tables. Never uses print()."""
    if console is None:
        console = Console()

    if results.total == 0:
        console.print("[green]All packages are up to date![/green]")
        return

    _render_bucket("Major Updates", "red", results.major, console)
    _render_bucket("Minor Updates", "yellow", results.minor, console)
    _render_bucket("Patch Updates", "green", results.patch, console)


def _render_bucket(title: str, style: str, updates: list[UpdateCandidate], console: Console) -> None:
    if not updates:
        return

    table = Table(title=f"[{style}]{title}[/]", show_header=True, title_justify="left")
    table.add_column("Package", style="bold")
    table.add_column("Versions")
    table.add_column("Manifest", style="dim")

    for update in updates:
        dev_tag = " [dim](dev)[/dim]" if update.is_dev else ""
        table.add_row(
            f"{escape(update.name)}{dev_tag}",
            f"[red]{escape(update.current_version)}[/] -> [green]{escape(update.latest_version)}[/]",
            escape(update.manifest_path),
        )

    console.print(table)


def render_migration(record: MigrationRecord, console: Console | None = None) -> None:
    """Render one migration record: summary, risk, breaking changes and steps."""
    if console is None:
        console = Console()

    style = RISK_STYLES.get(record.risk_level, "")
    lines = [escape(record.summary), f"Risk: [{style}]{record.risk_level.value.upper()}[/]"]

    if record.breaking_changes:
        lines.append("[red]Breaking Changes:[/red]")
        lines.extend(f"[red]  • {escape(change)}[/red]" for change in record.breaking_changes)

    if record.migration_steps:
        lines.append("[blue]Migration Steps:[/blue]")
        lines.extend(f"[blue]  • {escape(step)}[/blue]" for step in record.migration_steps)

    console.print(Panel("\n".join(lines), title=escape(record.package_name), title_align="left"))


def render_apply_results(results: list[FileUpdateResult], console: Console | None = None) -> None:
    """Render per-file outcomes of applying updates."""
    if console is None:
        console = Console()

    if not results:
        console.print("[yellow]No packages selected for upgrade.[/yellow]")
        return

    failures: list[str] = []
    for result in results:
        for name in result.updated:
            console.print(f"[green]Updated {escape(name)} in {escape(result.path)}[/green]")
        for name in result.skipped:
            if result.ok:
                console.print(f"[yellow]Skipped {escape(name)}: no longer declared in {escape(result.path)}[/yellow]")
        if not result.ok:
            failures.append(f"- {escape(result.path)}: {escape(result.error or '')}")

    if failures:
        console.print(Panel("\n".join(failures), title="Failed to update", style="red"))
    else:
        console.print("[green]All updates completed![/green]")
        console.print("[yellow]Remember to run your tests and verify the changes work correctly.[/yellow]")


def export_json(model: BaseModel) -> str:
    """Export any result model as a JSON string."""
    return model.model_dump_json(indent=2)
