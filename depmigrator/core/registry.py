"""npm registry queries and the update aggregator."""

from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import Awaitable
from typing import Protocol

import httpx

from depmigrator.config import settings
from depmigrator.core.scanner import flatten_dependencies, strip_range_prefix
from depmigrator.core.versioning import classify
from depmigrator.models.schemas import (
    AnalysisResult,
    DependencyEntry,
    ManifestFile,
    RegistryInfo,
    UpdateCandidate,
    UpdateType,
)

logger = logging.getLogger(__name__)


class LatestVersionResolver(Protocol):
    """Anything that maps a package name to its latest published version (or None)."""

    def __call__(self, name: str) -> Awaitable[str | None]: ...


async def fetch_latest_version(name: str) -> str | None:
    """Return the latest published version of *name*, or None if unavailable."""
    url = f"{settings.registry_url.rstrip('/')}/{name}/latest"
    try:
        async with httpx.AsyncClient(timeout=settings.registry_timeout) as client:
            resp = await client.get(url)
            resp.raise_for_status()
            data = resp.json()
    except (httpx.HTTPError, ValueError) as exc:
        logger.warning("Failed to fetch version for %s: %s", name, exc)
        return None

    version = data.get("version") if isinstance(data, dict) else None
    if not isinstance(version, str) or not version:
        logger.warning("Registry response for %s has no version field", name)
        return None
    return version


async def fetch_package_info(name: str) -> RegistryInfo | None:
    """Query the full npm document for *name* (latest version, homepage, repository)."""
    url = f"{settings.registry_url.rstrip('/')}/{name}"
    try:
        async with httpx.AsyncClient(timeout=settings.registry_timeout) as client:
            resp = await client.get(url)
            resp.raise_for_status()
            data = resp.json()
    except (httpx.HTTPError, ValueError) as exc:
        logger.warning("Failed to fetch package info for %s: %s", name, exc)
        return None

    if not isinstance(data, dict):
        return None

    return RegistryInfo(
        name=data.get("name", name),
        latest_version=data.get("dist-tags", {}).get("latest", "0.0.0"),
        homepage_url=data.get("homepage") or None,
        repository_url=_clean_repo_url(data.get("repository")),
    )


def _clean_repo_url(repo: object) -> str | None:
    """Turn npm's repository field into a browsable URL (git+https://...git -> https://...)."""
    raw_url = ""
    if isinstance(repo, dict):
        raw_url = repo.get("url", "") or ""
    elif isinstance(repo, str):
        raw_url = repo

    url = re.sub(r"^git\+", "", raw_url)
    url = re.sub(r"\.git$", "", url)
    return url or None


async def _check_one(entry: DependencyEntry, resolver: LatestVersionResolver) -> UpdateCandidate | None:
    """Resolve and classify a single entry; any failure means no candidate."""
    try:
        latest = await resolver(entry.name)
    except Exception as exc:
        logger.warning("Failed to fetch version for %s: %s", entry.name, exc)
        return None

    if not latest:
        return None

    current = strip_range_prefix(entry.version)
    update_type = classify(current, latest)
    if update_type is None:
        return None

    return UpdateCandidate(
        name=entry.name,
        current_version=current,
        latest_version=latest,
        update_type=update_type,
        manifest_path=entry.manifest_path,
        is_dev=entry.is_dev,
    )


async def find_updates(
    manifests: list[ManifestFile],
    resolver: LatestVersionResolver = fetch_latest_version,
) -> AnalysisResult:
    """Resolve every declared dependency and bucket the available updates.

    Lookups run one at a time unless settings.max_concurrent_registry_queries
    is raised above 1. Either way bucket order follows manifest, then
    dependencies, then devDependencies order.
    """
    entries = flatten_dependencies(manifests)
    limit = settings.max_concurrent_registry_queries

    candidates: list[UpdateCandidate | None]
    if limit <= 1:
        candidates = [await _check_one(entry, resolver) for entry in entries]
    else:
        sem = asyncio.Semaphore(limit)

        async def _bounded(entry: DependencyEntry) -> UpdateCandidate | None:
            async with sem:
                return await _check_one(entry, resolver)

        candidates = list(await asyncio.gather(*[_bounded(e) for e in entries]))

    result = AnalysisResult()
    buckets = {
        UpdateType.MAJOR: result.major,
        UpdateType.MINOR: result.minor,
        UpdateType.PATCH: result.patch,
    }
    for candidate in candidates:
        if candidate is not None:
            buckets[candidate.update_type].append(candidate)
    return result
