"""Integration test fixtures — these hit the public npm registry."""

import pytest


@pytest.fixture(autouse=True)
def _integration_env(monkeypatch):
    """Point the registry at npmjs.org regardless of local .env overrides."""
    monkeypatch.setattr("depmigrator.core.registry.settings.registry_url", "https://registry.npmjs.org")
