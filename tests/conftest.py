"""Shared fixtures."""

import pytest


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Point the default config path at an empty temp dir so user config never leaks in."""
    path = tmp_path / "config" / "config.json"
    monkeypatch.setattr("hostm.config.CONFIG_PATH", path)
    return path
