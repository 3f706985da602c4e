"""Pytest configuration and fixtures for unit tests."""

from collections.abc import AsyncIterator
from pathlib import Path

import pytest

from hydration.core import db_client
from hydration.core.config import settings
from hydration.core.schema import init_db
from tests.unit.helpers import FrozenClock, civil


@pytest.fixture
def frozen_clock(monkeypatch: pytest.MonkeyPatch) -> FrozenClock:
    """Freeze civil time at 2024-06-15 14:00:00 Asia/Shanghai."""
    fake = FrozenClock(civil(2024, 6, 15, 14, 0))
    monkeypatch.setattr("hydration.core.clock.now", fake)
    return fake


@pytest.fixture
async def sqlite_db(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> AsyncIterator[str]:
    """Fresh on-disk SQLite database with the schema applied."""
    db_path = str(tmp_path / "hydration-test.db")
    monkeypatch.setattr(settings, "sqlite_db_path", db_path)

    await init_db()
    yield db_path
    await db_client.close_connection()
