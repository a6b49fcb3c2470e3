"""Pytest configuration and shared fixtures."""

import sys
from datetime import date
from pathlib import Path

import pytest

# Ensure src directory is in Python path for all tests
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from todo_lists.manager import TaskManager  # noqa: E402
from todo_lists.storage import ListStore  # noqa: E402


FIXED_TODAY = date(2025, 1, 15)


@pytest.fixture
def store(tmp_path):
    """A freshly opened, empty list named 'work'."""
    return ListStore.open(tmp_path / "data", "work")


@pytest.fixture
def manager(store):
    """TaskManager whose notion of today is fixed at 2025-01-15."""
    return TaskManager(store, clock=lambda: FIXED_TODAY)


@pytest.fixture
def fixed_today():
    return FIXED_TODAY


@pytest.fixture
def read_records():
    """Return the non-comment lines of a record file."""
    def _read(path):
        return [
            line for line in path.read_text(encoding="utf-8").splitlines()
            if line and not line.startswith("#")
        ]
    return _read
