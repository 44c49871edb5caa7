import json
from pathlib import Path

import pytest


def write_manifest(directory: Path, content: dict) -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / "package.json"
    path.write_text(json.dumps(content, indent=2) + "\n")
    return path


@pytest.fixture
def sample_project_path(tmp_path: Path) -> Path:
    """Create a minimal npm project for testing."""
    project = tmp_path / "sample-project"
    write_manifest(
        project,
        {
            "name": "sample",
            "version": "1.0.0",
            "dependencies": {"express": "^4.18.0", "lodash": "~4.17.0"},
            "devDependencies": {"jest": "29.0.0"},
        },
    )
    return project


@pytest.fixture
def monorepo_path(tmp_path: Path) -> Path:
    """Create a monorepo with two workspace manifests and an installed node_modules tree."""
    root = tmp_path / "monorepo"
    write_manifest(root / "packages" / "a", {"name": "a", "dependencies": {"lodash": "^4.17.0"}})
    write_manifest(root / "packages" / "b", {"name": "b", "dependencies": {"lodash": "^3.0.0"}})
    write_manifest(root / "node_modules" / "lodash", {"name": "lodash", "dependencies": {"inner": "1.0.0"}})
    return root


@pytest.fixture
def make_manifest():
    """Return a helper that writes a package.json into a directory."""
    return write_manifest
