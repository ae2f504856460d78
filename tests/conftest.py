"""Shared fixtures for the modhook tests."""

import sys
from pathlib import Path

import pytest
from modhook import local_config
from modhook.interceptor import get_interceptor
from modhook.local_config import LocalConfigLoader

FIXTURES = Path(__file__).parent / "fixtures"
FIXTURE_MODULES = ("circular", "circular_peer", "mid_circular", "mid_circular_peer", "internal")


def _purge_fixture_modules():
    for name in list(sys.modules):
        if name.partition(".")[0] in FIXTURE_MODULES:
            del sys.modules[name]


@pytest.fixture(autouse=True)
def fixture_path(monkeypatch):
    """Make the fixture packages importable and forget them afterwards."""
    monkeypatch.syspath_prepend(str(FIXTURES))
    _purge_fixture_modules()
    yield FIXTURES
    _purge_fixture_modules()


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch, tmp_path):
    """Keep the project's own pyproject.toml and environment out of the tests."""
    loader = LocalConfigLoader(project_root=tmp_path, environ={})
    monkeypatch.setattr(local_config, "_config_loader", loader)
    return loader


@pytest.fixture(autouse=True)
def no_leaked_hooks():
    yield
    for hook in get_interceptor().hooks:
        hook.unhook()
