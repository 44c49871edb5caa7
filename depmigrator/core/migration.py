"""Migration analysis — prompt building, free-text parsing and fallback records."""

from __future__ import annotations

import logging
import re
from collections.abc import Awaitable, Callable
from enum import StrEnum
from typing import Protocol

from depmigrator.core.registry import fetch_package_info
from depmigrator.models.schemas import MigrationRecord, RegistryInfo, RiskLevel, UpdateCandidate, UpdateType

logger = logging.getLogger(__name__)

# Summary lines shorter than this are treated as noise.
MIN_SUMMARY_LENGTH = 10

_LIST_ITEM_RE = re.compile(r"^(?:[-*]|\d+\.)")
_LIST_MARKER_RE = re.compile(r"^(?:[-*]|\d+\.)\s*")

_RISK_BY_UPDATE_TYPE = {
    UpdateType.MAJOR: RiskLevel.HIGH,
    UpdateType.MINOR: RiskLevel.MEDIUM,
    UpdateType.PATCH: RiskLevel.LOW,
}


class Section(StrEnum):
    NONE = "none"
    SUMMARY = "summary"
    BREAKING = "breaking"
    MIGRATION = "migration"
    RISK = "risk"


class TextGenerator(Protocol):
    """Single-prompt text completion collaborator."""

    def __call__(self, prompt: str) -> Awaitable[str]: ...


def detect_heading(line: str) -> Section | None:
    """Return the section a heading line opens, or None for content lines.

    Rules are checked top to bottom and the first hit wins. "changes" only
    opens the summary when the line is not a "breaking changes" heading.
    """
    lower = line.lower()
    if "summary" in lower or ("changes" in lower and "breaking" not in lower):
        return Section.SUMMARY
    if "breaking" in lower:
        return Section.BREAKING
    if "migration" in lower or "steps" in lower:
        return Section.MIGRATION
    if "risk" in lower:
        return Section.RISK
    return None


def risk_from_heading(line: str) -> RiskLevel:
    lower = line.lower()
    if "high" in lower:
        return RiskLevel.HIGH
    if "low" in lower:
        return RiskLevel.LOW
    return RiskLevel.MEDIUM


def _is_list_item(line: str) -> bool:
    return bool(_LIST_ITEM_RE.match(line))


def _strip_list_marker(line: str) -> str:
    return _LIST_MARKER_RE.sub("", line, count=1)


def fallback_summary(package_name: str) -> str:
    return f"Upgrade {package_name} with standard version bump considerations"


def parse_migration_text(package_name: str, text: str) -> MigrationRecord:
    """Turn an unstructured model completion into a MigrationRecord.

    Best-effort and deterministic: heading lines switch the current section,
    list items are collected under breaking/migration sections, and the last
    long-enough plain line under the summary section becomes the summary.
    Malformed or empty input degrades to the fallback summary and medium risk.
    """
    lines = [line.strip() for line in text.splitlines()]
    lines = [line for line in lines if line]

    section = Section.NONE
    summary = ""
    breaking_changes: list[str] = []
    migration_steps: list[str] = []
    risk_level = RiskLevel.MEDIUM

    for line in lines:
        heading = detect_heading(line)
        if heading is not None:
            section = heading
            if heading is Section.RISK:
                risk_level = risk_from_heading(line)
            continue

        if _is_list_item(line):
            item = _strip_list_marker(line)
            if section is Section.BREAKING:
                breaking_changes.append(item)
            elif section is Section.MIGRATION:
                migration_steps.append(item)
        elif section is Section.SUMMARY and len(line) > MIN_SUMMARY_LENGTH:
            summary = line

    return MigrationRecord(
        package_name=package_name,
        summary=summary or fallback_summary(package_name),
        breaking_changes=breaking_changes,
        migration_steps=migration_steps,
        risk_level=risk_level,
    )


def fallback_record(update: UpdateCandidate) -> MigrationRecord:
    """Record used when the model call fails; risk comes from the update type alone."""
    return MigrationRecord(
        package_name=update.name,
        summary=f"Failed to analyze upgrade from {update.current_version} to {update.latest_version}",
        breaking_changes=[],
        migration_steps=[f"Update {update.name} from {update.current_version} to {update.latest_version}"],
        risk_level=_RISK_BY_UPDATE_TYPE[update.update_type],
    )


def _changelog_sources(info: RegistryInfo) -> list[str]:
    sources: list[str] = []
    if info.repository_url:
        repo = info.repository_url
        sources.extend([f"{repo}/releases", f"{repo}/blob/main/CHANGELOG.md", f"{repo}/blob/master/CHANGELOG.md"])
    if info.homepage_url:
        home = info.homepage_url
        sources.extend([f"{home}/releases", f"{home}/changelog"])
    return sources


def _build_package_context(name: str, info: RegistryInfo | None) -> str:
    if info is None:
        return f"Failed to fetch package info for {name}"
    return (
        f"Repository: {info.repository_url or ''}\n"
        f"Homepage: {info.homepage_url or ''}\n"
        f"Changelog sources: {', '.join(_changelog_sources(info))}"
    )


def build_prompt(update: UpdateCandidate, info: RegistryInfo | None) -> str:
    """Format the upgrade question sent to the model."""
    context = _build_package_context(update.name, info)
    return (
        f'Analyze the upgrade of npm package "{update.name}" from version '
        f"{update.current_version} to {update.latest_version}.\n\n"
        f"Package info:\n{context}\n\n"
        "Please provide:\n"
        "1. A concise summary of the key changes\n"
        "2. List of breaking changes (if any)\n"
        "3. Step-by-step migration instructions\n"
        "4. Risk assessment (low/medium/high)\n\n"
        "Focus on practical migration steps developers need to take. If this is a major "
        "version bump, pay special attention to breaking changes."
    )


async def analyze_upgrade(
    update: UpdateCandidate,
    generate: TextGenerator | None = None,
    info_fetcher: Callable[[str], Awaitable[RegistryInfo | None]] | None = None,
) -> MigrationRecord:
    """Ask the model about one upgrade and parse its answer. Never raises."""
    if generate is None:
        from depmigrator.core.llm import generate_text

        generate = generate_text
    if info_fetcher is None:
        info_fetcher = fetch_package_info

    try:
        info = await info_fetcher(update.name)
    except Exception as exc:
        logger.warning("Failed to fetch package info for %s: %s", update.name, exc)
        info = None

    prompt = build_prompt(update, info)
    try:
        text = await generate(prompt)
    except Exception as exc:
        logger.warning("AI analysis failed for %s: %s", update.name, exc)
        return fallback_record(update)

    return parse_migration_text(update.name, text)
