from __future__ import annotations

import pytest

from tests.utils.fakes import InMemoryStore, RecordingLauncher


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def launcher() -> RecordingLauncher:
    return RecordingLauncher()
