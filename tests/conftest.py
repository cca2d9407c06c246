"""Shared fixtures for hook runtime tests."""

import sys
from pathlib import Path

ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(ROOT / "lib"))
sys.path.insert(0, str(ROOT / "hooks"))

import pytest  # noqa: E402

from vibe import config  # noqa: E402


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Point config at an empty temp location so ~/.claude never leaks in."""
    monkeypatch.setenv("VIBE_CONFIG", str(tmp_path / "no-such-config.json"))
    config.clear_cache()
    yield
    config.clear_cache()


@pytest.fixture
def hooks_dir():
    return ROOT / "hooks"
