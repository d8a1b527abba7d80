"""Rank ladder and promotion checks.

Users climb one level at a time. The next rank is reached once the user's
experience, completed mission count and competency points all meet its
minimums. A campaign may define its own ladder; campaigns without one use
the global ladder.
"""

from collections.abc import Iterable
from dataclasses import dataclass, field

from missionflow.progression.models import Rank, UserStanding
from missionflow.progression.presentation import ThemeConfig, themed_competency_name


@dataclass
class RankCheck:
    """Which requirements of a rank a user meets."""

    rank: Rank
    experience_met: bool
    missions_met: bool
    competencies_met: bool
    missing: list[str] = field(default_factory=list)

    @property
    def eligible(self) -> bool:
        return self.experience_met and self.missions_met and self.competencies_met


@dataclass
class RankProgress:
    """A user's position on a ladder.

    Attributes:
        standing: The user's experience, missions and competencies
        ladder: Ranks ordered by level
        current: Rank the user holds (None below the first rank)
        next: Rank the user works towards (None at the top)
        next_check: Requirements status for the next rank
        custom: True if the ladder belongs to a campaign
    """

    standing: UserStanding
    ladder: list[Rank]
    current: Rank | None
    next: Rank | None
    next_check: RankCheck | None
    custom: bool = False

    @property
    def ready_for_promotion(self) -> bool:
        return self.next_check is not None and self.next_check.eligible

    @property
    def percentage(self) -> float:
        """Experience progress towards the next rank, capped at 100."""
        if self.next is None or self.next.min_experience <= 0:
            return 100.0
        return round(min(100.0, 100.0 * self.standing.experience / self.next.min_experience), 1)


def ladder_for(ranks: Iterable[Rank], campaign_id: int | None = None) -> list[Rank]:
    """Pick the campaign's own ranks if it has any, else the global ones."""
    ranks = list(ranks)
    if campaign_id is not None:
        own = [r for r in ranks if r.campaign_id == campaign_id]
        if own:
            return sorted(own, key=lambda r: r.level)
    return sorted((r for r in ranks if r.campaign_id is None), key=lambda r: r.level)


def find_rank(ladder: Iterable[Rank], level: int) -> Rank | None:
    for rank in ladder:
        if rank.level == level:
            return rank
    return None


def check_rank(
    rank: Rank, standing: UserStanding, theme: ThemeConfig | None = None
) -> RankCheck:
    """Compare a user's standing with a rank's requirements.

    Args:
        rank: The rank to check
        standing: The user's current totals
        theme: Used to name competencies in the missing-requirement texts

    Returns:
        RankCheck with one human-readable entry per unmet requirement
    """
    missing = []

    experience_met = standing.experience >= rank.min_experience
    if not experience_met:
        missing.append(
            f"{rank.min_experience - standing.experience} more experience needed"
        )

    missions_met = standing.missions_completed >= rank.min_missions
    if not missions_met:
        missing.append(
            f"{rank.min_missions - standing.missions_completed} more missions to complete"
        )

    competencies_met = True
    for name, required in sorted(rank.required_competencies.items()):
        points = standing.competencies.get(name, 0)
        if points < required:
            competencies_met = False
            missing.append(f"{themed_competency_name(name, theme)}: {points}/{required} points")

    return RankCheck(
        rank=rank,
        experience_met=experience_met,
        missions_met=missions_met,
        competencies_met=competencies_met,
        missing=missing,
    )


def rank_progress(
    ranks: Iterable[Rank],
    standing: UserStanding,
    campaign_id: int | None = None,
    theme: ThemeConfig | None = None,
) -> RankProgress:
    """Describe where a user stands on the applicable ladder."""
    ladder = ladder_for(ranks, campaign_id)
    next_rank = find_rank(ladder, standing.current_rank + 1)
    return RankProgress(
        standing=standing,
        ladder=ladder,
        current=find_rank(ladder, standing.current_rank),
        next=next_rank,
        next_check=check_rank(next_rank, standing, theme) if next_rank else None,
        custom=campaign_id is not None and any(r.campaign_id == campaign_id for r in ladder),
    )
