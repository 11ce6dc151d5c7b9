"""Shared test fixtures."""

from __future__ import annotations

import locale

import pytest

from burrow.settings import Settings


@pytest.fixture(autouse=True)
def isolate_settings(tmp_path, monkeypatch):
    """Redirect settings to a temp config directory."""
    config_home = tmp_path / "config"
    monkeypatch.setenv("XDG_CONFIG_HOME", str(config_home))
    monkeypatch.setattr(Settings, "_instance", None)
    return config_home / "burrow" / "settings.json"


@pytest.fixture
def tree(tmp_path):
    """A small directory tree to browse.

    root/
        folder/
            nested.txt
        empty/
        file.txt
        another-file.js
        README
    """
    root = tmp_path / "root"
    root.mkdir()
    (root / "folder").mkdir()
    (root / "folder" / "nested.txt").write_text("nested")
    (root / "empty").mkdir()
    (root / "file.txt").write_text("hello")
    (root / "another-file.js").write_text("console.log(1)")
    (root / "README").write_text("readme")
    return root


@pytest.fixture(autouse=True)
def restore_collation():
    """Undo LC_COLLATE changes made by the CLI or service entry points."""
    setlocale = locale.setlocale
    saved = setlocale(locale.LC_COLLATE)
    yield
    setlocale(locale.LC_COLLATE, saved)
