"""Statistics pipeline: apply one processed score to a user's statistics.

Each step looks at the score context and updates the user's per-ruleset
UserStats row in place. Steps run in order inside the processor's DB
transaction, so a failing step leaves nothing behind.

Performance points are computed by an injected PerformanceCalculator and
only for scores on eligible beatmaps with resolved difficulty attributes.
"""

from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

from score_processor.models import Beatmap, UserStats
from score_processor.schemas.score_item import SoloScoreInfo
from score_processor.services.beatmap_store import DifficultyAttributes
from score_processor.services.eligibility import BeatmapOnlineStatus

PerformanceCalculator = Callable[[SoloScoreInfo, DifficultyAttributes], float]

# Hit results that count towards total hits
HIT_RESULTS = frozenset({"perfect", "great", "good", "ok", "meh", "large_tick_hit", "small_tick_hit"})

# Statuses whose scores count towards ranked score
RANKED_SCORE_STATUSES = frozenset(
    {BeatmapOnlineStatus.RANKED, BeatmapOnlineStatus.APPROVED, BeatmapOnlineStatus.LOVED}
)


@dataclass
class ScoreContext:
    """Everything the pipeline knows about one score."""

    score: SoloScoreInfo
    beatmap: Beatmap | None
    difficulty_attributes: DifficultyAttributes | None
    performance_eligible: bool
    pp: float | None = None


class StatisticsStep(Protocol):
    def apply(self, context: ScoreContext, user_stats: UserStats) -> None: ...


class PlayCountProcessor:
    def apply(self, context: ScoreContext, user_stats: UserStats) -> None:
        user_stats.playcount = (user_stats.playcount or 0) + 1


class TotalScoreProcessor:
    """Total score always counts; ranked score only for passes on ranked/loved beatmaps."""

    def apply(self, context: ScoreContext, user_stats: UserStats) -> None:
        score = context.score
        user_stats.total_score = (user_stats.total_score or 0) + score.total_score

        beatmap = context.beatmap
        if score.passed and beatmap is not None and beatmap.approved in RANKED_SCORE_STATUSES:
            user_stats.ranked_score = (user_stats.ranked_score or 0) + score.total_score


class MaxComboProcessor:
    def apply(self, context: ScoreContext, user_stats: UserStats) -> None:
        user_stats.max_combo = max(user_stats.max_combo or 0, context.score.max_combo)


class HitStatisticsProcessor:
    def apply(self, context: ScoreContext, user_stats: UserStats) -> None:
        hits = 0
        for result, count in context.score.statistics.items():
            if count < 0:
                raise ValueError(f"Negative count for hit result {result!r} on score {context.score.id}")
            if result in HIT_RESULTS:
                hits += count
        user_stats.total_hits = (user_stats.total_hits or 0) + hits


class PerformanceProcessor:
    """Credit pp for passed scores on eligible beatmaps."""

    def __init__(self, calculator: PerformanceCalculator | None = None):
        self.calculator = calculator

    def apply(self, context: ScoreContext, user_stats: UserStats) -> None:
        if self.calculator is None:
            return
        if not context.performance_eligible or context.difficulty_attributes is None:
            return
        if not context.score.passed:
            return

        pp = float(self.calculator(context.score, context.difficulty_attributes))
        if pp < 0:
            raise ValueError(f"Performance calculator returned negative pp ({pp}) for score {context.score.id}")

        context.pp = pp
        user_stats.rank_score = (user_stats.rank_score or 0) + pp


def default_steps(calculator: PerformanceCalculator | None = None) -> list[StatisticsStep]:
    """The standard pipeline, in application order."""
    return [
        PlayCountProcessor(),
        TotalScoreProcessor(),
        MaxComboProcessor(),
        HitStatisticsProcessor(),
        PerformanceProcessor(calculator),
    ]
