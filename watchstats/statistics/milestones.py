"""Milestone derivation.

Milestones are never stored: they are recomputed from running totals each time
statistics are built, for single profiles and for merged accounts alike.
"""

import math
from collections.abc import Sequence
from datetime import UTC, datetime

from watchstats.statistics.models import Achievement, Milestone, MilestoneType

# =============================================================================
# Constants
# =============================================================================

MILESTONE_THRESHOLDS: dict[MilestoneType, tuple[int, ...]] = {
    MilestoneType.EPISODES: (100, 500, 1000, 5000, 10000),
    MilestoneType.MOVIES: (25, 50, 100, 250, 500),
    MilestoneType.HOURS: (100, 500, 1000, 5000, 10000),
}

# A milestone counts as "recent" while the total is still within this margin
RECENT_ACHIEVEMENT_WINDOWS: dict[MilestoneType, int] = {
    MilestoneType.EPISODES: 10,
    MilestoneType.MOVIES: 5,
    MilestoneType.HOURS: 10,
}

ACHIEVEMENT_LABELS: dict[MilestoneType, str] = {
    MilestoneType.EPISODES: "Episodes Watched",
    MilestoneType.MOVIES: "Movies Watched",
    MilestoneType.HOURS: "Hours Watched",
}


def _round_progress(value: float) -> float:
    # Round half up; round() would use banker's rounding
    return math.floor(value * 10 + 0.5) / 10


def calculate_milestones(
    current: float,
    thresholds: Sequence[int],
    milestone_type: MilestoneType | str,
) -> list[Milestone]:
    """Calculate milestone progress for one metric.

    Args:
        current: Current total (episodes, movies or hours)
        thresholds: Ordered threshold values
        milestone_type: Unit the thresholds are measured in

    Returns:
        One milestone per threshold, in the same order
    """
    milestone_type = MilestoneType(milestone_type)
    milestones = []
    for threshold in thresholds:
        progress = min(current / threshold * 100, 100) if threshold > 0 else 100.0
        milestones.append(
            Milestone(
                type=milestone_type,
                threshold=threshold,
                achieved=current >= threshold,
                progress=_round_progress(progress),
            )
        )
    return milestones


def calculate_all_milestones(episodes: int, movies: int, hours: int) -> list[Milestone]:
    """Episode, movie and hour milestones against the standard thresholds."""
    return (
        calculate_milestones(episodes, MILESTONE_THRESHOLDS[MilestoneType.EPISODES], MilestoneType.EPISODES)
        + calculate_milestones(movies, MILESTONE_THRESHOLDS[MilestoneType.MOVIES], MilestoneType.MOVIES)
        + calculate_milestones(hours, MILESTONE_THRESHOLDS[MilestoneType.HOURS], MilestoneType.HOURS)
    )


def detect_recent_achievements(
    totals: dict[MilestoneType, int],
    milestones: Sequence[Milestone],
    now: datetime | None = None,
) -> list[Achievement]:
    """Report milestones that were crossed only a short while ago.

    For each type, the highest achieved threshold is reported when the total
    has not yet moved more than ``RECENT_ACHIEVEMENT_WINDOWS`` past it.

    Args:
        totals: Current total per milestone type
        milestones: Milestones calculated from those totals
        now: Timestamp to stamp achievements with (defaults to current UTC time)

    Returns:
        Achievements ordered episodes, movies, hours
    """
    achieved_date = (now or datetime.now(UTC)).isoformat()
    achievements = []

    for milestone_type in MilestoneType:
        achieved = [m for m in milestones if m.type == milestone_type and m.achieved]
        if not achieved:
            continue

        latest = max(achieved, key=lambda m: m.threshold)
        total = totals.get(milestone_type, 0)
        if latest.threshold <= total < latest.threshold + RECENT_ACHIEVEMENT_WINDOWS[milestone_type]:
            achievements.append(
                Achievement(
                    description=f"{latest.threshold} {ACHIEVEMENT_LABELS[milestone_type]}",
                    achieved_date=achieved_date,
                )
            )

    return achievements
