#!/usr/bin/env python3
"""Standalone score statistics worker (no HTTP surface).

Behavior:
- Connect to the database and Redis, load the beatmap store (blacklist).
- Drain the score statistics queue until SIGINT/SIGTERM, or until the queue
  is empty when --once is given.

Run:
  python -m scripts.process_queue
  python -m scripts.process_queue --once

Optional env vars (see score_processor/settings.py):
  QUEUE_NAME="osu-queue:score-statistics"
  REALTIME_DIFFICULTY=0
  MAX_IN_FLIGHT=1
"""

import asyncio
import logging
import os
import signal
import sys

# Ensure imports work when executed as a script/module
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from score_processor.stores.postgres import close_db, init_db, ping_db  # noqa: E402
from score_processor.stores.redis import close_redis, init_redis  # noqa: E402
from score_processor.worker import create_processor  # noqa: E402


async def main(once: bool = False) -> None:
    await init_db()
    await ping_db()
    await init_redis()

    try:
        processor = await create_processor()

        cancel = asyncio.Event()
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, cancel.set)
            except NotImplementedError:
                # Windows event loops have no signal handlers; Ctrl+C still raises.
                pass

        await processor.run(cancel, exit_when_empty=once)

        print(
            {
                "ok": processor.total_failed == 0,
                "processed": processor.total_processed,
                "failed": processor.total_failed,
                "remaining": await processor.get_queue_size(),
                "beatmap_cache": vars(processor.beatmap_store.stats),
            }
        )
    finally:
        await close_redis()
        await close_db()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
    asyncio.run(main(once="--once" in sys.argv[1:]))
