"""SQLAlchemy ORM models.

Models represent database tables:
- osu_beatmaps: Beatmap difficulties with approval status
- osu_beatmap_difficulty_attribs: Precomputed difficulty attributes
- osu_beatmap_performance_blacklist: Beatmaps excluded from pp
- scores: Submitted scores
- score_process_history: Completion markers for processed scores
- osu_user_stats: Aggregated per-ruleset user statistics
"""

from score_processor.models.beatmap import Beatmap
from score_processor.models.difficulty_attribute import BeatmapDifficultyAttribute
from score_processor.models.performance_blacklist import PerformanceBlacklistEntry
from score_processor.models.score import Score, ScoreProcessHistory
from score_processor.models.user_stats import UserStats

__all__ = [
    "Beatmap",
    "BeatmapDifficultyAttribute",
    "PerformanceBlacklistEntry",
    "Score",
    "ScoreProcessHistory",
    "UserStats",
]
