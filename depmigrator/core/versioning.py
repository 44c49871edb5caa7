"""Semantic-version coercion and update classification."""

from __future__ import annotations

import re

from packaging.version import Version

from depmigrator.core.scanner import strip_range_prefix
from depmigrator.models.schemas import UpdateType

# First semver-shaped token: 1, 1.2 or 1.2.3 (missing parts count as zero).
_COERCE_RE = re.compile(r"(?<!\d)(\d+)(?:\.(\d+))?(?:\.(\d+))?")

_PREFIX_RE = re.compile(r"^[\^~]")


def coerce(version: str) -> Version | None:
    """Loosely coerce *version* into a canonical major.minor.patch Version.

    Mirrors npm's ``semver.coerce``: prerelease tags, build metadata and range
    operators are ignored. Returns None when no numeric token is present.
    """
    match = _COERCE_RE.search(version)
    if not match:
        return None
    major, minor, patch = (int(part or 0) for part in match.groups())
    return Version(f"{major}.{minor}.{patch}")


def classify(current: str, latest: str) -> UpdateType | None:
    """Classify the jump from *current* to *latest*; None means no update.

    Checks run in order (major, minor, patch) and the first hit wins, so a
    major bump is never reported as minor even when the minor field dropped.
    """
    current_v = coerce(strip_range_prefix(current))
    latest_v = coerce(strip_range_prefix(latest))
    if current_v is None or latest_v is None:
        return None

    if latest_v.major > current_v.major:
        return UpdateType.MAJOR
    if latest_v.major == current_v.major and latest_v.minor > current_v.minor:
        return UpdateType.MINOR
    if latest_v.release[:2] == current_v.release[:2] and latest_v.micro > current_v.micro:
        return UpdateType.PATCH
    return None


def range_prefix(declared: str) -> str:
    """Return the leading range operator of *declared* ("^", "~" or "")."""
    match = _PREFIX_RE.match(declared)
    return match.group(0) if match else ""
