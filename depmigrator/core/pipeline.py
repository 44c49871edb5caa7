"""LangGraph StateGraph — scan, classify, select, analyze and apply."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Any

from langgraph.graph import END, StateGraph
from langgraph.types import Command

from depmigrator.core import migration, registry, scanner, updater
from depmigrator.core.migration import TextGenerator
from depmigrator.core.registry import LatestVersionResolver
from depmigrator.models.schemas import AnalysisResult, ManifestFile, PipelineState, RegistryInfo, UpdateCandidate

UpdateSelector = Callable[[AnalysisResult], Awaitable[list[UpdateCandidate]]]
PackageInfoFetcher = Callable[[str], Awaitable[RegistryInfo | None]]


async def select_all(results: AnalysisResult) -> list[UpdateCandidate]:
    """Selector that accepts every candidate."""
    return results.all_updates()


def build_pipeline(
    selector: UpdateSelector = select_all,
    resolver: LatestVersionResolver = registry.fetch_latest_version,
    generate: TextGenerator | None = None,
    exclusions: scanner.ExclusionRule = scanner.DEFAULT_EXCLUSIONS,
    info_fetcher: PackageInfoFetcher | None = None,
) -> Any:
    """Build and compile the pipeline graph around the given collaborators."""

    async def scan_manifests_node(state: PipelineState) -> Command:
        manifests = await scanner.scan_manifests(state["root"], exclusions)
        update = {"manifests": [m.model_dump() for m in manifests]}
        if not manifests:
            return Command(goto=END, update=update)
        return Command(goto="find_updates", update=update)

    async def find_updates_node(state: PipelineState) -> Command:
        manifests = [ManifestFile.model_validate(m) for m in state["manifests"]]
        results = await registry.find_updates(manifests, resolver)
        return Command(goto="select_updates", update={"results": results.model_dump()})

    async def select_updates_node(state: PipelineState) -> Command:
        results = AnalysisResult.model_validate(state["results"])
        if state["dry_run"] or results.total == 0:
            return Command(goto=END)

        selected = await selector(results)
        update = {"selected": [u.model_dump() for u in selected]}
        if not selected:
            return Command(goto=END, update=update)
        return Command(goto="analyze_migrations", update=update)

    async def analyze_migrations_node(state: PipelineState) -> Command:
        records = []
        for raw in state["selected"]:
            candidate = UpdateCandidate.model_validate(raw)
            record = await migration.analyze_upgrade(candidate, generate, info_fetcher)
            records.append(record.model_dump())
        return Command(goto="apply_updates", update={"migrations": records})

    async def apply_updates_node(state: PipelineState) -> Command:
        selected = [UpdateCandidate.model_validate(u) for u in state["selected"]]
        file_results = await updater.apply_updates(selected)
        return Command(goto=END, update={"file_results": [r.model_dump() for r in file_results]})

    builder = StateGraph(PipelineState)

    builder.add_node("scan_manifests", scan_manifests_node)
    builder.add_node("find_updates", find_updates_node)
    builder.add_node("select_updates", select_updates_node)
    builder.add_node("analyze_migrations", analyze_migrations_node)
    builder.add_node("apply_updates", apply_updates_node)

    builder.set_entry_point("scan_manifests")

    return builder.compile()


async def run_pipeline(
    root: str,
    selector: UpdateSelector = select_all,
    dry_run: bool = False,
    resolver: LatestVersionResolver = registry.fetch_latest_version,
    generate: TextGenerator | None = None,
    exclusions: scanner.ExclusionRule = scanner.DEFAULT_EXCLUSIONS,
    info_fetcher: PackageInfoFetcher | None = None,
) -> PipelineState:
    """Run the full pipeline and return the final state."""
    graph = build_pipeline(
        selector=selector,
        resolver=resolver,
        generate=generate,
        exclusions=exclusions,
        info_fetcher=info_fetcher,
    )

    initial_state: PipelineState = {
        "root": root,
        "dry_run": dry_run,
        "manifests": [],
        "results": AnalysisResult().model_dump(),
        "selected": [],
        "migrations": [],
        "file_results": [],
    }

    result: PipelineState = await graph.ainvoke(initial_state)
    return result
