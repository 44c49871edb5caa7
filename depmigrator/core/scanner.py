"""Manifest discovery: walk a project tree and parse every package.json."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

from depmigrator.config import settings
from depmigrator.models.schemas import DependencyEntry, ManifestFile

logger = logging.getLogger(__name__)

MANIFEST_FILENAME = "package.json"

_RANGE_PREFIXES = ("^", "~")


class ExclusionRule(BaseModel):
    """Decides which directory names the walk never descends into."""

    model_config = ConfigDict(frozen=True)

    names: frozenset[str] = Field(default_factory=lambda: frozenset({"node_modules"}))
    hidden_prefix: str = "."

    def excludes(self, dirname: str) -> bool:
        if dirname in self.names:
            return True
        return bool(self.hidden_prefix) and dirname.startswith(self.hidden_prefix)


DEFAULT_EXCLUSIONS = ExclusionRule()


def exclusions_from_settings() -> ExclusionRule:
    """Build the exclusion rule from DEPMIGRATOR_EXCLUDED_DIRS."""
    return ExclusionRule(names=frozenset(settings.excluded_dirs))


async def scan_manifests(
    root: str | Path,
    exclusions: ExclusionRule = DEFAULT_EXCLUSIONS,
) -> list[ManifestFile]:
    """Find and parse every manifest under *root*.

    Unreadable directories and unparseable manifests are logged and skipped;
    the scan itself never fails. Results come back in traversal order.
    """
    manifests: list[ManifestFile] = []
    pending: list[Path] = [Path(root).resolve()]

    while pending:
        directory = pending.pop()
        try:
            with os.scandir(directory) as it:
                entries = sorted(it, key=lambda e: e.name)
        except OSError as exc:
            logger.warning("Failed to scan directory %s: %s", directory, exc)
            continue

        subdirs: list[Path] = []
        for entry in entries:
            if entry.is_dir(follow_symlinks=False):
                if not exclusions.excludes(entry.name):
                    subdirs.append(Path(entry.path))
            elif entry.name == MANIFEST_FILENAME and entry.is_file():
                manifest = _parse_manifest(Path(entry.path))
                if manifest is not None:
                    manifests.append(manifest)

        # Depth-first: the first subdirectory is visited next.
        pending.extend(reversed(subdirs))

    return manifests


def _parse_manifest(path: Path) -> ManifestFile | None:
    """Parse one package.json, returning None (with a warning) on failure."""
    try:
        content = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
        logger.warning("Failed to parse %s: %s", path, exc)
        return None

    if not isinstance(content, dict):
        logger.warning("Failed to parse %s: top-level JSON value is not an object", path)
        return None

    return ManifestFile(
        path=str(path),
        content=content,
        dependencies=_version_map(content.get("dependencies")),
        dev_dependencies=_version_map(content.get("devDependencies")),
    )


def _version_map(section: object) -> dict[str, str]:
    """Keep only name -> version-string pairs; anything else counts as absent."""
    if not isinstance(section, dict):
        return {}
    return {name: version for name, version in section.items() if isinstance(version, str)}


def flatten_dependencies(manifests: list[ManifestFile]) -> list[DependencyEntry]:
    """Flatten manifests into entries: dependencies first, then devDependencies, per file."""
    entries: list[DependencyEntry] = []
    for manifest in manifests:
        for name, version in manifest.dependencies.items():
            entries.append(DependencyEntry(name=name, version=version, manifest_path=manifest.path))
        for name, version in manifest.dev_dependencies.items():
            entries.append(DependencyEntry(name=name, version=version, manifest_path=manifest.path, is_dev=True))
    return entries


def strip_range_prefix(version: str) -> str:
    """Drop a single leading caret or tilde range operator."""
    if version.startswith(_RANGE_PREFIXES):
        return version[1:]
    return version
