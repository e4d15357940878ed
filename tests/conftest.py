"""Pytest configuration and fixtures."""

import os
from pathlib import Path

import pytest

from coge.core import constants

_TUNABLES = ("EPSILON", "COLD_THRESHOLD", "MAX_RACERS", "STRAGGLER_TIMEOUT", "BACKEND_TIMEOUT")


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    """Point the config directory at a temp dir and drop real COGE_* variables."""
    for key in list(os.environ):
        if key.startswith("COGE_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
    monkeypatch.setenv("APPDATA", str(tmp_path / "xdg"))
    return tmp_path


@pytest.fixture(autouse=True)
def restore_constants():
    """load_config() rebinds module globals; put them back after each test."""
    saved = {name: getattr(constants, name) for name in _TUNABLES}
    yield
    for name, value in saved.items():
        setattr(constants, name, value)


@pytest.fixture
def config_dir(isolated_env) -> Path:
    """The coge config directory used by the code under test."""
    return isolated_env / "xdg" / "coge"
