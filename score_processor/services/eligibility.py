"""Eligibility gate: may performance points be awarded on a beatmap?

A beatmap is eligible for a ruleset when:
- (beatmap_id, ruleset_id) is not on the performance blacklist, and
- its approval status is Ranked or Approved.

Loved, Qualified and everything below Pending are never eligible.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from enum import IntEnum


class BeatmapOnlineStatus(IntEnum):
    """Approval status, as stored in `osu_beatmaps.approved`."""

    LOCALLY_MODIFIED = -4
    NONE = -3
    GRAVEYARD = -2
    WIP = -1
    PENDING = 0
    RANKED = 1
    APPROVED = 2
    QUALIFIED = 3
    LOVED = 4


PERFORMANCE_STATUSES = frozenset({BeatmapOnlineStatus.RANKED, BeatmapOnlineStatus.APPROVED})


@dataclass(frozen=True)
class BlacklistEntry:
    beatmap_id: int
    ruleset_id: int


def build_blacklist(entries: Iterable[tuple[int, int]]) -> frozenset[BlacklistEntry]:
    """Build the immutable blacklist set from (beatmap_id, ruleset_id) pairs."""
    return frozenset(BlacklistEntry(int(beatmap_id), int(ruleset_id)) for beatmap_id, ruleset_id in entries)


def is_beatmap_valid_for_performance(
    beatmap_id: int,
    status: BeatmapOnlineStatus | int,
    ruleset_id: int,
    blacklist: frozenset[BlacklistEntry],
) -> bool:
    """Whether performance points may be awarded for the beatmap and ruleset.

    Args:
        beatmap_id: Beatmap ID.
        status: Beatmap approval status.
        ruleset_id: Ruleset of the score.
        blacklist: Blacklisted (beatmap, ruleset) pairs.

    Returns:
        True if eligible, False otherwise.
    """
    if BlacklistEntry(beatmap_id, ruleset_id) in blacklist:
        return False

    try:
        status = BeatmapOnlineStatus(status)
    except ValueError:
        return False
    return status in PERFORMANCE_STATUSES
