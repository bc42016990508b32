"""Shared fixtures for StagePilot tests."""

from pathlib import Path

import pytest

from builders import DATA_DIR, make_repo
from stagepilot.repository import InMemoryRepository


@pytest.fixture
def repo() -> InMemoryRepository:
    return make_repo()


@pytest.fixture
def data_dir() -> Path:
    return DATA_DIR
