"""CLI interface for depmigrator — entry point for the depmigrator command."""

import asyncio
import logging
from pathlib import Path
from typing import Any

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.prompt import Confirm, Prompt

from depmigrator.config import settings
from depmigrator.core.report import render_apply_results, render_migration, render_results
from depmigrator.core.scanner import exclusions_from_settings
from depmigrator.models.schemas import (
    AnalysisResult,
    FileUpdateResult,
    MigrationRecord,
    UpdateCandidate,
)

app = typer.Typer(name="depmigrator", help="AI-powered package upgrade tool with migration guidance")
console = Console()


# Lazy import to allow mocking in tests
def _get_run_pipeline() -> Any:  # noqa: ANN202
    from depmigrator.core.pipeline import run_pipeline as _run

    return _run


# Module-level reference that tests can patch
run_pipeline = None


_ENV_TEMPLATE = """\
# depmigrator configuration

# Required for OpenAI (not needed if using Ollama)
# DEPMIGRATOR_OPENAI_API_KEY=sk-your-key-here

# Model to use (default: gpt-4o-mini)
# DEPMIGRATOR_OPENAI_MODEL=gpt-4o-mini

# Set to true to use local Ollama instead of OpenAI
# DEPMIGRATOR_USE_LOCAL_LLM=false

# Ollama base URL (default: http://localhost:11434/v1)
# DEPMIGRATOR_OLLAMA_BASE_URL=http://localhost:11434/v1

# npm registry to resolve latest versions from
# DEPMIGRATOR_REGISTRY_URL=https://registry.npmjs.org

# Parallel registry lookups (default: 1, sequential)
# DEPMIGRATOR_MAX_CONCURRENT_REGISTRY_QUERIES=1
"""


def _configure_logging() -> None:
    logging.basicConfig(
        level=settings.log_level,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )


def _format_choice(update: UpdateCandidate) -> str:
    return f"{update.name}: {update.current_version} -> {update.latest_version} ({update.update_type.value})"


def _make_selector(select_all: bool):  # noqa: ANN202
    async def _select(results: AnalysisResult) -> list[UpdateCandidate]:
        render_results(results, console=console)
        candidates = results.all_updates()

        if select_all:
            selected = candidates
        else:
            for index, update in enumerate(candidates, start=1):
                console.print(f"  [bold]{index}[/bold]. {escape(_format_choice(update))}")
            choice = Prompt.ask(
                "Select ONE package to upgrade",
                console=console,
                choices=[str(i) for i in range(1, len(candidates) + 1)],
                default="1",
            )
            selected = [candidates[int(choice) - 1]]

        console.print("\n[bold]Selected for upgrade:[/bold]")
        for update in selected:
            versions = f"[red]{escape(update.current_version)}[/] -> [green]{escape(update.latest_version)}[/]"
            console.print(f"  {escape(update.name)}: {versions}")

        if not Confirm.ask("Proceed with AI analysis and upgrade?", console=console, default=True):
            console.print("[yellow]Operation cancelled.[/yellow]")
            return []
        return selected

    return _select


@app.command()
def scan(
    directory: str = typer.Option(".", "--directory", "-d", help="Directory to scan"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Show analysis without making changes"),
    select_all: bool = typer.Option(False, "--all", help="Upgrade every available update"),
    model: str | None = typer.Option(None, "--model", "-m", help="Override the LLM model"),
) -> None:
    """Scan for package updates, analyze the chosen upgrade and apply it."""
    path = Path(directory)
    if not path.exists():
        console.print(f"[red]Error: Path '{escape(directory)}' does not exist[/red]")
        raise typer.Exit(code=1)

    if not dry_run and not settings.use_local_llm and not settings.openai_api_key:
        console.print(
            "[red]Error: DEPMIGRATOR_OPENAI_API_KEY is required "
            "(or set DEPMIGRATOR_USE_LOCAL_LLM=true for Ollama)[/red]"
        )
        raise typer.Exit(code=1)

    if model:
        if settings.use_local_llm:
            settings.local_llm_model = model
        else:
            settings.openai_model = model

    _configure_logging()

    global run_pipeline  # noqa: PLW0603
    if run_pipeline is None:
        run_pipeline = _get_run_pipeline()

    state = asyncio.run(
        run_pipeline(
            str(path),
            selector=_make_selector(select_all),
            dry_run=dry_run,
            exclusions=exclusions_from_settings(),
        )
    )

    if not state["manifests"]:
        console.print("[yellow]No package.json files found[/yellow]")
        return
    console.print(f"Found {len(state['manifests'])} package.json file(s)")

    results = AnalysisResult.model_validate(state["results"])
    if dry_run or results.total == 0:
        render_results(results, console=console)
        if dry_run:
            console.print("[blue]Dry run mode - no changes will be made[/blue]")
        return

    if not state["selected"]:
        return

    for raw in state["migrations"]:
        render_migration(MigrationRecord.model_validate(raw), console=console)

    file_results = [FileUpdateResult.model_validate(r) for r in state["file_results"]]
    render_apply_results(file_results, console=console)
    if any(not r.ok for r in file_results):
        raise typer.Exit(code=1)


@app.command()
def init() -> None:
    """Create a .env template file with depmigrator configuration."""
    env_path = Path(".env")
    if env_path.exists():
        console.print("[yellow].env file already exists — not overwriting[/yellow]")
        return

    env_path.write_text(_ENV_TEMPLATE)
    console.print("[green]Created .env template — edit it with your settings[/green]")


@app.command()
def serve() -> None:
    """Start the MCP server."""
    from depmigrator.interfaces.mcp_server import mcp

    mcp.run()
