"""Shared fixtures for grit tests."""

import os

import pytest
import yaml

from grit.registry import Registry


@pytest.fixture(autouse=True)
def isolated_home(tmp_path, monkeypatch):
    """Keep user settings and GRIT_* variables out of every test."""
    home = tmp_path / 'home'
    home.mkdir()
    monkeypatch.setenv('HOME', str(home))
    for key in list(os.environ):
        if key.startswith('GRIT_'):
            monkeypatch.delenv(key)
    return home


@pytest.fixture
def make_git_repo():
    """Factory creating a minimal git working copy at a path."""
    def _make(path):
        path.mkdir(parents=True, exist_ok=True)
        (path / '.git').mkdir()
        (path / '.git' / 'HEAD').write_text('ref: refs/heads/main\n')
        return path
    return _make


@pytest.fixture
def write_document():
    """Write a raw workspace document, bypassing validation."""
    def _write(registry, data):
        registry.metadata_dir.mkdir(exist_ok=True)
        registry.config_path.write_text(yaml.safe_dump(data, sort_keys=False))
    return _write


@pytest.fixture
def workspace_root(tmp_path):
    root = tmp_path / 'ws'
    root.mkdir()
    return root


@pytest.fixture
def registry(workspace_root):
    registry = Registry(workspace_root)
    registry.initialize()
    return registry
