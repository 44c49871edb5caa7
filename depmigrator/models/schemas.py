"""ALL Pydantic models and the TypedDict graph state for depmigrator."""

from __future__ import annotations

from enum import StrEnum
from typing import Any, TypedDict

from pydantic import BaseModel, ConfigDict, Field

# --- Enums ---


class UpdateType(StrEnum):
    MAJOR = "major"
    MINOR = "minor"
    PATCH = "patch"


class RiskLevel(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


# --- Manifest Models ---


class ManifestFile(BaseModel):
    """A parsed package.json found during a scan pass."""

    model_config = ConfigDict(frozen=True)

    path: str
    content: dict[str, Any] = Field(default_factory=dict)
    dependencies: dict[str, str] = Field(default_factory=dict)
    dev_dependencies: dict[str, str] = Field(default_factory=dict)

    @property
    def dependency_count(self) -> int:
        return len(self.dependencies) + len(self.dev_dependencies)


class DependencyEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    version: str
    manifest_path: str
    is_dev: bool = False


class RegistryInfo(BaseModel):
    name: str
    latest_version: str
    homepage_url: str | None = None
    repository_url: str | None = None


class UpdateCandidate(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    current_version: str
    latest_version: str
    update_type: UpdateType
    manifest_path: str
    is_dev: bool = False


class AnalysisResult(BaseModel):
    major: list[UpdateCandidate] = Field(default_factory=list)
    minor: list[UpdateCandidate] = Field(default_factory=list)
    patch: list[UpdateCandidate] = Field(default_factory=list)

    def all_updates(self) -> list[UpdateCandidate]:
        return [*self.major, *self.minor, *self.patch]

    @property
    def total(self) -> int:
        return len(self.major) + len(self.minor) + len(self.patch)


# --- Migration Models ---


class MigrationRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    package_name: str
    summary: str
    breaking_changes: list[str] = Field(default_factory=list)
    migration_steps: list[str] = Field(default_factory=list)
    risk_level: RiskLevel = RiskLevel.MEDIUM


# --- Update / Report Models ---


class FileUpdateResult(BaseModel):
    path: str
    updated: list[str] = Field(default_factory=list)
    skipped: list[str] = Field(default_factory=list)
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class ManifestSummary(BaseModel):
    path: str
    package_count: int


class ScanReport(BaseModel):
    root: str
    manifests: list[ManifestSummary] = Field(default_factory=list)
    results: AnalysisResult = Field(default_factory=AnalysisResult)


# --- TypedDict Graph State ---


class PipelineState(TypedDict):
    root: str
    dry_run: bool
    manifests: list[dict]
    results: dict
    selected: list[dict]
    migrations: list[dict]
    file_results: list[dict]
