"""Global test configuration and fixtures."""

import pytest


@pytest.fixture(autouse=True)
def local_storage(tmp_path, monkeypatch):
    """Point the state store and the JSON repositories at a per-test directory."""
    root = str(tmp_path)
    monkeypatch.setattr("sync_sdk.services.statestore.TEMPORARY_PATH", root)
    monkeypatch.setattr("sync_sdk.repositories.json.TEMPORARY_PATH", root)
    return tmp_path
