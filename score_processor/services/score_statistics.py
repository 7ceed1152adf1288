"""Score statistics queue processor.

Flow per ScoreItem (one DB transaction):
1. Skip if a score_process_history row already exists for the score
2. Resolve the beatmap via the BeatmapStore (None if unknown)
3. Check performance eligibility (blacklist + approval status)
4. Resolve difficulty attributes for eligible scores
5. Run the statistics pipeline against the user's UserStats row
6. Persist the score (with pp, if awarded)
7. Write the score_process_history completion marker

Any exception rolls the transaction back and is reported by the queue loop.
"""

import logging
from collections.abc import Callable, Sequence
from contextlib import AbstractAsyncContextManager
from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import AsyncSession

from score_processor.models import Score, ScoreProcessHistory, UserStats
from score_processor.schemas.score_item import ProcessHistory, ScoreItem, SoloScoreInfo
from score_processor.services.beatmap_store import BeatmapStore
from score_processor.services.queue_processor import QueueProcessor
from score_processor.services.statistics import (
    PerformanceCalculator,
    ScoreContext,
    StatisticsStep,
    default_steps,
)
from score_processor.settings import get_settings
from score_processor.stores.postgres import get_session
from score_processor.stores.queue import QueueBackend

logger = logging.getLogger("uvicorn.error")

SessionFactory = Callable[[], AbstractAsyncContextManager[AsyncSession]]


class ScoreStatisticsQueueProcessor(QueueProcessor[ScoreItem]):
    """Turns queued scores into persisted user statistics."""

    def __init__(
        self,
        backend: QueueBackend[ScoreItem],
        beatmap_store: BeatmapStore,
        *,
        performance_calculator: PerformanceCalculator | None = None,
        steps: Sequence[StatisticsStep] | None = None,
        session_factory: SessionFactory = get_session,
        processed_version: int | None = None,
        max_in_flight: int | None = None,
        poll_interval: float | None = None,
    ):
        settings = get_settings()
        super().__init__(
            backend,
            max_in_flight=settings.max_in_flight if max_in_flight is None else max_in_flight,
            poll_interval=settings.queue_poll_interval if poll_interval is None else poll_interval,
        )
        self.beatmap_store = beatmap_store
        self.steps = list(steps) if steps is not None else default_steps(performance_calculator)
        self.session_factory = session_factory
        self.processed_version = processed_version or settings.processed_version

    async def process_result(self, item: ScoreItem) -> None:
        score = item.score

        async with self.session_factory() as session:
            history = await session.get(ScoreProcessHistory, score.id)
            if history is not None:
                logger.info(
                    f"Score {score.id} already processed (v{history.processed_version}), skipping"
                )
                item.processed_history = ProcessHistory(
                    score_id=score.id,
                    processed_version=history.processed_version,
                    processed_at=history.processed_at,
                )
                return

            context = await self._build_context(session, score)

            user_stats = await _get_or_create_user_stats(session, score.user_id, score.ruleset_id)
            for step in self.steps:
                step.apply(context, user_stats)

            await _upsert_score(session, score, pp=context.pp)

            processed_at = datetime.now(timezone.utc)
            session.add(
                ScoreProcessHistory(
                    score_id=score.id,
                    processed_version=self.processed_version,
                    processed_at=processed_at,
                )
            )

        item.processed_history = ProcessHistory(
            score_id=score.id,
            processed_version=self.processed_version,
            processed_at=processed_at,
        )
        logger.info(
            f"Processed score {score.id} (user={score.user_id}, beatmap={score.beatmap_id}, "
            f"ruleset={score.ruleset_id}, eligible={context.performance_eligible}, pp={context.pp})"
        )

    async def _build_context(self, session: AsyncSession, score: SoloScoreInfo) -> ScoreContext:
        store = self.beatmap_store

        beatmap = await store.get_beatmap(session, score.beatmap_id)
        if beatmap is None:
            logger.warning(f"Score {score.id} references unknown beatmap {score.beatmap_id}")
            return ScoreContext(score=score, beatmap=None, difficulty_attributes=None, performance_eligible=False)

        eligible = score.ranked and store.is_valid_for_performance(beatmap, score.ruleset_id)
        attributes = None
        if eligible:
            attributes = await store.get_difficulty_attributes(session, beatmap, score.ruleset_id, score.mods)

        return ScoreContext(
            score=score,
            beatmap=beatmap,
            difficulty_attributes=attributes,
            performance_eligible=eligible,
        )


async def _get_or_create_user_stats(session: AsyncSession, user_id: int, ruleset_id: int) -> UserStats:
    user_stats = await session.get(UserStats, (user_id, ruleset_id))
    if user_stats is None:
        user_stats = UserStats(
            user_id=user_id,
            ruleset_id=ruleset_id,
            playcount=0,
            total_score=0,
            ranked_score=0,
            max_combo=0,
            total_hits=0,
            rank_score=0.0,
        )
        session.add(user_stats)
    return user_stats


async def _upsert_score(session: AsyncSession, score: SoloScoreInfo, pp: float | None) -> Score:
    row = await session.get(Score, score.id)
    if row is None:
        row = Score(
            id=score.id,
            user_id=score.user_id,
            ruleset_id=score.ruleset_id,
            beatmap_id=score.beatmap_id,
            data={
                "mods": [mod.model_dump() for mod in score.mods],
                "statistics": score.statistics,
                "maximum_statistics": score.maximum_statistics,
            },
            total_score=score.total_score,
            accuracy=score.accuracy,
            max_combo=score.max_combo,
            rank=score.rank,
            passed=score.passed,
            ranked=score.ranked,
            build_id=score.build_id,
            started_at=score.started_at,
            ended_at=score.ended_at,
        )
        session.add(row)
    row.pp = pp
    return row
