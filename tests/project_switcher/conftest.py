"""Shared fixtures for project-switcher tests."""

import itertools
from pathlib import Path

import pytest

from project_switcher.core.storage import MemoryStorage
from project_switcher.core.store import ProjectStore


class FakeClock:
    """Controllable epoch-millisecond clock."""

    def __init__(self, start: int = 1_700_000_000_000):
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> int:
        self.now += ms
        return self.now

    def set(self, value: int) -> None:
        self.now = value


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def id_factory():
    """Sequential ids: project-1, project-2, ..."""
    counter = itertools.count(1)
    return lambda: f"project-{next(counter)}"


@pytest.fixture
def memory_storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def store(memory_storage, clock, id_factory) -> ProjectStore:
    return ProjectStore(memory_storage, now=clock, id_factory=id_factory)


@pytest.fixture
def sessions_dir(tmp_path: Path) -> Path:
    path = tmp_path / "sessions"
    path.mkdir()
    return path


@pytest.fixture
def group_root(tmp_path: Path) -> Path:
    """A group root with ``web`` and ``api`` subdirectories and one plain file."""
    root = tmp_path / "code"
    (root / "web").mkdir(parents=True)
    (root / "api").mkdir()
    (root / "README.md").write_text("not a project\n")
    return root
