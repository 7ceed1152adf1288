"""Generic queue processor: a single consumer draining a FIFO backend.

Guarantees:
- Items are processed one at a time, in arrival order, by `run()`.
- `total_processed` only increases, and only after an item succeeded.
- A failing item is reported to every error handler as (error, item) and
  the loop moves on to the next item. Failures never stop the loop.
- Cancellation is observed between items, never in the middle of one.

Single-file mode (`max_in_flight=1`) makes `push_to_queue()` refuse new items
while one is still queued or processing. Tests and ops tooling use it to keep
flows simple; production runs leave it unset.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from enum import Enum
from typing import Any, Generic, TypeVar

from score_processor.services.errors import InvalidState
from score_processor.stores.queue import QueueBackend

logger = logging.getLogger("uvicorn.error")

T = TypeVar("T")

ErrorHandler = Callable[[BaseException, Any], None]


class ProcessorState(Enum):
    IDLE = "idle"
    DRAINING = "draining"
    STOPPED = "stopped"


class QueueProcessor(Generic[T]):
    """Base class for queue consumers. Subclasses implement `process_result()`."""

    def __init__(
        self,
        backend: QueueBackend[T],
        *,
        max_in_flight: int | None = None,
        poll_interval: float = 1.0,
        name: str | None = None,
    ):
        if max_in_flight is not None and max_in_flight < 1:
            raise ValueError("max_in_flight must be at least 1")

        self.backend = backend
        self.max_in_flight = max_in_flight
        self.poll_interval = poll_interval
        self.name = name or type(self).__name__

        self.state = ProcessorState.IDLE
        self.total_processed = 0
        self.total_failed = 0
        self._in_flight = 0
        self._error_handlers: list[ErrorHandler] = []
        # Serializes the single-file check with the push it guards
        self._push_lock = asyncio.Lock()

    # ------------------------------------------------------------
    # Producer side
    # ------------------------------------------------------------

    async def push_to_queue(self, item: T) -> None:
        """Enqueue an item for processing.

        Raises:
            InvalidState: In single-file mode, when the limit of queued or
                in-flight items is already reached.
        """
        if self.max_in_flight is None:
            await self.backend.push(item)
            return

        async with self._push_lock:
            pending = await self.get_queue_size() + self._in_flight
            if pending >= self.max_in_flight:
                raise InvalidState(
                    f"{self.name}: {pending} item(s) still pending, refusing to push another "
                    f"(max_in_flight={self.max_in_flight})"
                )
            await self.backend.push(item)

    async def get_queue_size(self) -> int:
        """Number of items waiting to be dequeued (excludes the one in flight)."""
        return await self.backend.size()

    async def clear_queue(self) -> None:
        """Discard the backlog. Only meant for controlled resets."""
        await self.backend.clear()

    @property
    def in_flight(self) -> int:
        return self._in_flight

    # ------------------------------------------------------------
    # Error observers
    # ------------------------------------------------------------

    def add_error_handler(self, handler: ErrorHandler) -> ErrorHandler:
        """Register a handler called with (error, item) on each failed item.

        Returns:
            The handler, usable as a handle for `remove_error_handler()`.
        """
        self._error_handlers.append(handler)
        return handler

    def remove_error_handler(self, handler: ErrorHandler) -> None:
        if handler in self._error_handlers:
            self._error_handlers.remove(handler)

    def _notify_error(self, error: BaseException, item: T | None) -> None:
        for handler in list(self._error_handlers):
            try:
                handler(error, item)
            except Exception:
                logger.exception(f"{self.name}: error handler {handler!r} raised")

    # ------------------------------------------------------------
    # Consumer side
    # ------------------------------------------------------------

    async def process_result(self, item: T) -> None:
        """Process a single item. Raise to mark it as failed."""
        raise NotImplementedError

    async def run(self, cancel: asyncio.Event, *, exit_when_empty: bool = False) -> None:
        """Drain the queue until cancelled.

        Args:
            cancel: Set to stop the loop at the next item boundary.
            exit_when_empty: Stop once a poll finds the queue empty
                (one-off batch runs).
        """
        if self.state is ProcessorState.DRAINING:
            raise InvalidState(f"{self.name} is already running")

        self.state = ProcessorState.DRAINING
        logger.info(f"{self.name}: started consuming")

        try:
            while not cancel.is_set():
                try:
                    item = await self.backend.pop(timeout=self.poll_interval)
                except Exception as e:
                    # Transport hiccup or undecodable payload: report, back off, keep going.
                    logger.exception(f"{self.name}: failed to dequeue item")
                    self.total_failed += 1
                    self._notify_error(e, None)
                    await asyncio.sleep(self.poll_interval)
                    continue

                if item is None:
                    if exit_when_empty:
                        break
                    continue

                await self._process_one(item)
        finally:
            self.state = ProcessorState.STOPPED
            logger.info(
                f"{self.name}: stopped (processed={self.total_processed}, failed={self.total_failed})"
            )

    async def _process_one(self, item: T) -> None:
        self._in_flight += 1
        started = time.monotonic()
        try:
            await self.process_result(item)
        except Exception as e:
            self.total_failed += 1
            logger.exception(f"{self.name}: error processing {item!r}")
            self._notify_error(e, item)
        else:
            self.total_processed += 1
            logger.debug(f"{self.name}: processed {item!r} in {(time.monotonic() - started) * 1000:.1f}ms")
        finally:
            self._in_flight -= 1

    async def wait_for_total_processed(self, count: int, timeout: float, poll: float = 0.05) -> None:
        """Wait until `total_processed` reaches `count`.

        Raises:
            TimeoutError: If the count is not reached in time (e.g. the loop
                was cancelled or items failed).
        """
        deadline = time.monotonic() + timeout
        while self.total_processed < count:
            if time.monotonic() >= deadline:
                raise TimeoutError(
                    f"{self.name}: processed {self.total_processed}/{count} item(s) within {timeout}s"
                )
            await asyncio.sleep(poll)
