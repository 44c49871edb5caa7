"""Manifest rewriting — apply accepted updates back to package.json files."""

from __future__ import annotations

import copy
import json
import logging
import os
import stat
import tempfile
from pathlib import Path
from typing import Any

from depmigrator.core.versioning import range_prefix
from depmigrator.models.schemas import FileUpdateResult, UpdateCandidate

logger = logging.getLogger(__name__)


def group_by_manifest(updates: list[UpdateCandidate]) -> dict[str, list[UpdateCandidate]]:
    """Group updates by owning manifest, keeping first-seen file order."""
    grouped: dict[str, list[UpdateCandidate]] = {}
    for update in updates:
        grouped.setdefault(update.manifest_path, []).append(update)
    return grouped


def apply_to_document(
    content: dict[str, Any],
    updates: list[UpdateCandidate],
) -> tuple[dict[str, Any], list[str], list[str]]:
    """Return (new_document, updated_names, skipped_names); *content* is left untouched.

    The declared range operator of each entry is carried over to the new
    version, and entries no longer present in the document are skipped.
    """
    document = copy.deepcopy(content)
    updated: list[str] = []
    skipped: list[str] = []

    for update in updates:
        section_name = "devDependencies" if update.is_dev else "dependencies"
        section = document.get(section_name)
        declared = section.get(update.name) if isinstance(section, dict) else None
        if not isinstance(declared, str) or not declared:
            logger.warning(
                "%s is no longer declared in %s of %s; skipping", update.name, section_name, update.manifest_path
            )
            skipped.append(update.name)
            continue

        section[update.name] = f"{range_prefix(declared)}{update.latest_version}"
        updated.append(update.name)

    return document, updated, skipped


def render_manifest(content: dict[str, Any]) -> str:
    """Serialize a manifest the way npm writes it: 2-space indent, trailing newline."""
    return json.dumps(content, indent=2, ensure_ascii=False) + "\n"


def _atomic_write(path: Path, text: str) -> None:
    """Write to a sibling temp file and rename it over *path*, keeping its permission bits."""
    mode = stat.S_IMODE(path.stat().st_mode)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            fh.write(text)
        os.chmod(tmp_name, mode)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


async def _update_manifest_file(path: str, updates: list[UpdateCandidate]) -> FileUpdateResult:
    manifest_path = Path(path)
    try:
        content = json.loads(manifest_path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
        logger.error("Failed to update %s: %s", path, exc)
        return FileUpdateResult(path=path, skipped=[u.name for u in updates], error=str(exc))

    if not isinstance(content, dict):
        msg = "top-level JSON value is not an object"
        logger.error("Failed to update %s: %s", path, msg)
        return FileUpdateResult(path=path, skipped=[u.name for u in updates], error=msg)

    document, updated, skipped = apply_to_document(content, updates)

    try:
        _atomic_write(manifest_path, render_manifest(document))
    except (OSError, ValueError) as exc:
        logger.error("Failed to update %s: %s", path, exc)
        return FileUpdateResult(path=path, skipped=[u.name for u in updates], error=str(exc))

    for name in updated:
        logger.info("Updated %s in %s", name, path)
    return FileUpdateResult(path=path, updated=updated, skipped=skipped)


async def apply_updates(updates: list[UpdateCandidate]) -> list[FileUpdateResult]:
    """Apply *updates* to their manifests, one result per file.

    Each file is re-read fresh before editing. A failure on one file is
    recorded on its result and does not stop the others.
    """
    if not updates:
        return []

    results: list[FileUpdateResult] = []
    for path, file_updates in group_by_manifest(updates).items():
        results.append(await _update_manifest_file(path, file_updates))
    return results
