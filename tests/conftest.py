"""
Pytest configuration and fixtures
"""
from pathlib import Path

import pytest

from .helpers import FakeWatcher


@pytest.fixture
def source_dir(tmp_path: Path) -> Path:
    """Create the folder being watched"""
    path = tmp_path / "source"
    path.mkdir()
    return path


@pytest.fixture
def dest_dir(tmp_path: Path) -> Path:
    """Path of the destination folder (not created)"""
    return tmp_path / "dest"


@pytest.fixture
def staging_dir(tmp_path: Path) -> Path:
    """Folder on the same volume for writing files before moving them in"""
    path = tmp_path / "staging"
    path.mkdir()
    return path


@pytest.fixture
def fake_watcher() -> FakeWatcher:
    """Scripted watcher factory for driving the dispatch loop directly"""
    return FakeWatcher()
