"""Shared fixtures: SQLite-backed database and running processors."""

import asyncio
from collections.abc import AsyncGenerator

import pytest

from helpers import ErrorRecorder
from score_processor.services.beatmap_store import BeatmapStore
from score_processor.services.score_statistics import ScoreStatisticsQueueProcessor
from score_processor.settings import get_settings
from score_processor.stores.postgres import close_db, create_tables, get_session, init_db
from score_processor.stores.queue import MemoryQueueBackend


@pytest.fixture(autouse=True)
def _settings(monkeypatch: pytest.MonkeyPatch):
    """Isolate tests from the developer's environment."""
    monkeypatch.setenv("REALTIME_DIFFICULTY", "0")
    monkeypatch.setenv("MAX_IN_FLIGHT", "")
    monkeypatch.setenv("DIFFICULTY_CALCULATOR", "")
    monkeypatch.setenv("PERFORMANCE_CALCULATOR", "")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
async def db(tmp_path) -> AsyncGenerator[None, None]:
    """Fresh SQLite database with all tables."""
    await init_db(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    await create_tables()
    yield
    await close_db()


@pytest.fixture
async def start_processor(db):
    """Factory creating running ScoreStatisticsQueueProcessors, stopped on teardown.

    The beatmap store is created when the factory is called, so seed
    blacklist rows before calling it.
    """
    running: list[tuple[asyncio.Task, asyncio.Event]] = []

    async def factory(**kwargs) -> tuple[ScoreStatisticsQueueProcessor, ErrorRecorder]:
        async with get_session() as session:
            store = await BeatmapStore.create(session)

        kwargs.setdefault("max_in_flight", 1)
        kwargs.setdefault("poll_interval", 0.05)
        processor = ScoreStatisticsQueueProcessor(MemoryQueueBackend(), store, **kwargs)
        errors = processor.add_error_handler(ErrorRecorder())

        cancel = asyncio.Event()
        running.append((asyncio.create_task(processor.run(cancel)), cancel))
        return processor, errors

    yield factory

    for task, cancel in running:
        cancel.set()
        await asyncio.wait_for(task, timeout=5)
