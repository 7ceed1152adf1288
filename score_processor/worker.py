"""Worker wiring: build the beatmap store and processor from settings.

Shared by the API lifespan (`score_processor.main`) and the standalone
worker script (`python -m scripts.process_queue`).
"""

import asyncio
import importlib
import logging
from typing import Any

from score_processor.schemas.score_item import ScoreItem
from score_processor.services.beatmap_store import BeatmapStore
from score_processor.services.score_statistics import ScoreStatisticsQueueProcessor
from score_processor.settings import get_settings
from score_processor.stores.postgres import get_session
from score_processor.stores.queue import QueueBackend, RedisQueueBackend

logger = logging.getLogger("uvicorn.error")


def load_object(path: str) -> Any:
    """Import an object from a "package.module:attribute" path."""
    module_name, _, attribute = path.partition(":")
    if not module_name or not attribute:
        raise ValueError(f"Expected 'module:attribute', got {path!r}")
    module = importlib.import_module(module_name)
    return getattr(module, attribute)


async def create_processor(backend: QueueBackend[ScoreItem] | None = None) -> ScoreStatisticsQueueProcessor:
    """Create the beatmap store and score statistics processor.

    Store creation failures propagate: without its blacklist the store
    cannot decide eligibility, so startup must abort.
    """
    settings = get_settings()

    difficulty_calculator = None
    if settings.difficulty_calculator:
        difficulty_calculator = load_object(settings.difficulty_calculator)()

    performance_calculator = None
    if settings.performance_calculator:
        performance_calculator = load_object(settings.performance_calculator)

    async with get_session() as session:
        store = await BeatmapStore.create(session, difficulty_calculator=difficulty_calculator)

    if backend is None:
        backend = RedisQueueBackend(settings.queue_name, ScoreItem)

    processor = ScoreStatisticsQueueProcessor(
        backend,
        store,
        performance_calculator=performance_calculator,
    )
    logger.info(
        f"Processor ready (queue={settings.queue_name}, realtime_difficulty={store.realtime_difficulty}, "
        f"max_in_flight={processor.max_in_flight}, pp={'on' if performance_calculator else 'off'})"
    )
    return processor


def start_processor(processor: ScoreStatisticsQueueProcessor) -> tuple[asyncio.Task, asyncio.Event]:
    """Run the processor in a background task.

    Returns:
        The task and the event that stops it.
    """
    cancel = asyncio.Event()
    task = asyncio.create_task(processor.run(cancel), name="score-statistics-processor")
    return task, cancel


async def stop_processor(task: asyncio.Task, cancel: asyncio.Event, timeout: float = 30.0) -> None:
    """Stop the processor at the next item boundary, waiting up to `timeout`."""
    cancel.set()
    try:
        await asyncio.wait_for(task, timeout=timeout)
    except asyncio.TimeoutError:
        # wait_for has cancelled the task at this point
        logger.error(f"Processor did not stop within {timeout}s and was cancelled")
