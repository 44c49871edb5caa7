"""MCP server for depmigrator — exposes scan/analyze/upgrade tools via FastMCP."""

from pathlib import Path
from typing import Any

from fastmcp import FastMCP

from depmigrator.models.schemas import ManifestSummary, ScanReport, UpdateCandidate

mcp = FastMCP("depmigrator")


@mcp.tool()
async def scan_packages(project_path: str = ".") -> dict[str, Any]:
    """Scan a project for package.json files and classify available updates."""
    from depmigrator.core.registry import find_updates
    from depmigrator.core.scanner import exclusions_from_settings, scan_manifests

    root = Path(project_path).resolve()
    manifests = await scan_manifests(root, exclusions_from_settings())
    if not manifests:
        return {"error": "No package.json files found"}

    results = await find_updates(manifests)
    report = ScanReport(
        root=str(root),
        manifests=[ManifestSummary(path=m.path, package_count=m.dependency_count) for m in manifests],
        results=results,
    )
    return report.model_dump(mode="json")


@mcp.tool()
async def analyze_package(package_update: dict[str, Any]) -> dict[str, Any]:
    """Ask the model for a migration assessment of one update."""
    from depmigrator.core.migration import analyze_upgrade

    update = UpdateCandidate.model_validate(package_update)
    record = await analyze_upgrade(update)
    return {"success": True, "migration_analysis": record.model_dump(mode="json")}


@mcp.tool()
async def upgrade_package(package_update: dict[str, Any]) -> dict[str, Any]:
    """Rewrite the owning package.json with the update's latest version."""
    from depmigrator.core.updater import apply_updates

    update = UpdateCandidate.model_validate(package_update)
    results = await apply_updates([update])
    failed = [r for r in results if not r.ok]
    if failed:
        return {
            "success": False,
            "error": f"Failed to upgrade {update.name}: {failed[0].error}",
            "files": [r.model_dump(mode="json") for r in results],
        }
    return {
        "success": True,
        "message": f"Successfully upgraded {update.name}",
        "files": [r.model_dump(mode="json") for r in results],
    }
