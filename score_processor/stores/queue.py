"""Queue backends used by queue processors.

A backend is the durable FIFO a processor drains. It only needs four
operations: push, pop (blocking up to a timeout), size and clear.

Backends:
- RedisQueueBackend: production transport, a Redis list of JSON payloads
- MemoryQueueBackend: in-process asyncio.Queue for local runs and tests
"""

from __future__ import annotations

import asyncio
import logging
from typing import Generic, Protocol, TypeVar

from pydantic import BaseModel, ValidationError

from score_processor.stores.redis import queue_clear, queue_length, queue_pop, queue_push

logger = logging.getLogger("uvicorn.error")

T = TypeVar("T")
M = TypeVar("M", bound=BaseModel)


class QueueDecodeError(ValueError):
    """A payload taken off the queue could not be decoded into an item."""

    def __init__(self, payload: str, cause: Exception):
        super().__init__(f"Undecodable queue payload: {payload[:200]!r} ({cause})")
        self.payload = payload


class QueueBackend(Protocol[T]):
    """Port: FIFO storage drained by a single consumer."""

    async def push(self, item: T) -> None: ...

    async def pop(self, timeout: float) -> T | None: ...

    async def size(self) -> int: ...

    async def clear(self) -> None: ...


class MemoryQueueBackend(Generic[T]):
    """In-process FIFO backed by asyncio.Queue."""

    def __init__(self) -> None:
        self._queue: asyncio.Queue[T] = asyncio.Queue()

    async def push(self, item: T) -> None:
        self._queue.put_nowait(item)

    async def pop(self, timeout: float) -> T | None:
        try:
            return await asyncio.wait_for(self._queue.get(), timeout=timeout)
        except asyncio.TimeoutError:
            return None

    async def size(self) -> int:
        return self._queue.qsize()

    async def clear(self) -> None:
        while not self._queue.empty():
            self._queue.get_nowait()


class RedisQueueBackend(Generic[M]):
    """Redis list of JSON-encoded pydantic models."""

    def __init__(self, queue_name: str, model: type[M]):
        self.queue_name = queue_name
        self.model = model

    async def push(self, item: M) -> None:
        await queue_push(self.queue_name, item.model_dump_json())

    async def pop(self, timeout: float) -> M | None:
        payload = await queue_pop(self.queue_name, timeout=timeout)
        if payload is None:
            return None
        try:
            return self.model.model_validate_json(payload)
        except ValidationError as e:
            raise QueueDecodeError(payload, e) from e

    async def size(self) -> int:
        return await queue_length(self.queue_name)

    async def clear(self) -> None:
        logger.warning(f"Clearing queue {self.queue_name}")
        await queue_clear(self.queue_name)
