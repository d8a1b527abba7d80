"""In-memory ProgressStore.

Used to run the tracker without a database (campaign dry runs, tests).
Reads hand out copies so that callers mutating a state record do not change
stored data until save_state() is called, matching the database store.
"""

from collections.abc import Iterable
from dataclasses import dataclass, field, replace
from typing import Any

from missionflow.progression.models import (
    MissionNode,
    MissionStatus,
    Rank,
    UserMissionState,
    UserStanding,
)


@dataclass
class UserBalance:
    """Credited totals for one user."""

    experience: int = 0
    currency: int = 0
    competencies: dict[int, int] = field(default_factory=dict)
    current_rank: int = 0


@dataclass
class Notification:
    user_id: int
    kind: str
    title: str
    message: str
    metadata: dict[str, Any]


class InMemoryProgressStore:
    """ProgressStore keeping everything in dictionaries.

    Args:
        ranks: Rank definitions (global and campaign-specific)
        competency_names: Competency ID -> name, used by rank requirements
    """

    def __init__(
        self,
        ranks: Iterable[Rank] = (),
        competency_names: dict[int, str] | None = None,
    ) -> None:
        self.states: dict[tuple[int, int], UserMissionState] = {}
        self.balances: dict[int, UserBalance] = {}
        self.notifications: list[Notification] = []
        self.ranks: list[Rank] = list(ranks)
        self.competency_names = competency_names or {}

    async def get_state(
        self, user_id: int, mission_id: int, for_update: bool = False
    ) -> UserMissionState | None:
        state = self.states.get((user_id, mission_id))
        return replace(state) if state is not None else None

    async def get_states(
        self, user_id: int, mission_ids: Iterable[int]
    ) -> dict[int, UserMissionState]:
        result = {}
        for mission_id in mission_ids:
            state = self.states.get((user_id, mission_id))
            if state is not None:
                result[mission_id] = replace(state)
        return result

    async def create_states(
        self, states: list[UserMissionState]
    ) -> list[UserMissionState]:
        created = []
        for state in states:
            if state.key in self.states:
                continue
            self.states[state.key] = replace(state)
            created.append(state)
        return created

    async def save_state(self, state: UserMissionState) -> None:
        self.states[state.key] = replace(state)

    async def credit_rewards(self, user_id: int, mission: MissionNode) -> None:
        balance = self.balances.setdefault(user_id, UserBalance())
        balance.experience += mission.experience_reward
        balance.currency += mission.currency_reward
        for competency_id, points in mission.competencies.items():
            balance.competencies[competency_id] = (
                balance.competencies.get(competency_id, 0) + points
            )

    async def add_notification(
        self,
        user_id: int,
        kind: str,
        title: str,
        message: str,
        metadata: dict[str, Any],
    ) -> None:
        self.notifications.append(
            Notification(
                user_id=user_id,
                kind=kind,
                title=title,
                message=message,
                metadata=metadata,
            )
        )

    async def get_standing(
        self, user_id: int, for_update: bool = False
    ) -> UserStanding:
        # Users exist implicitly; an unknown user stands at zero
        balance = self.balance(user_id)
        completed = sum(
            1
            for (uid, _), state in self.states.items()
            if uid == user_id and state.status is MissionStatus.COMPLETED
        )
        return UserStanding(
            user_id=user_id,
            current_rank=balance.current_rank,
            experience=balance.experience,
            missions_completed=completed,
            competencies={
                self.competency_names.get(cid, str(cid)): points
                for cid, points in balance.competencies.items()
            },
        )

    async def list_ranks(self, campaign_id: int | None) -> list[Rank]:
        return [
            r for r in self.ranks if r.campaign_id is None or r.campaign_id == campaign_id
        ]

    async def promote(self, user_id: int, rank: Rank) -> None:
        balance = self.balances.setdefault(user_id, UserBalance())
        balance.current_rank = rank.level
        balance.currency += rank.currency_reward

    def balance(self, user_id: int) -> UserBalance:
        """Credited totals for a user (zero if never credited)."""
        return self.balances.get(user_id, UserBalance())
