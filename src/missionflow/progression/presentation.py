"""Themed wording for notifications.

Campaigns can rename currencies and competencies. The theme is always passed
in explicitly so formatting never depends on global state.
"""

from dataclasses import dataclass, field
from typing import Any

from missionflow.progression.models import MissionNode, Rank


@dataclass(frozen=True)
class ThemeConfig:
    """Per-campaign label overrides.

    Attributes:
        experience_label: Label for experience points
        currency_label: Label for the in-app currency
        competency_overrides: Original competency name -> themed name
    """

    experience_label: str = "XP"
    currency_label: str = "mana"
    competency_overrides: dict[str, str] = field(default_factory=dict, hash=False)

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "ThemeConfig":
        """Build from a campaign's stored theme JSON (camelCase keys)."""
        if not data:
            return cls()
        return cls(
            experience_label=data.get("experienceLabel") or cls.experience_label,
            currency_label=data.get("currencyLabel") or cls.currency_label,
            competency_overrides=dict(data.get("competencyOverrides") or {}),
        )


DEFAULT_THEME = ThemeConfig()


def themed_competency_name(name: str, theme: ThemeConfig | None = None) -> str:
    """Get the themed name of a competency, falling back to the original."""
    if theme is None:
        return name
    return theme.competency_overrides.get(name) or name


def completion_message(mission: MissionNode, theme: ThemeConfig | None = None) -> str:
    theme = theme or DEFAULT_THEME
    return (
        f"You earned {mission.experience_reward} {theme.experience_label} "
        f"and {mission.currency_reward} {theme.currency_label}"
    )


def unlock_message(mission: MissionNode) -> str:
    return f'Mission "{mission.name}" is now available'


def rank_up_message(rank: Rank, theme: ThemeConfig | None = None) -> str:
    theme = theme or DEFAULT_THEME
    message = f'You reached the rank "{rank.name}"'
    if rank.title:
        message += f" ({rank.title})"
    if rank.currency_reward:
        message += f" and earned {rank.currency_reward} {theme.currency_label}"
    return message
