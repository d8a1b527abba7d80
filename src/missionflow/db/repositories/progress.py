"""PostgreSQL-backed ProgressStore.

Covers the tables a status change touches: user_missions (state),
users/user_competencies (rewards and rank), ranks and user_notifications.
Nothing here commits; the route handler commits the whole transition at once.
"""

import logging
from collections.abc import Iterable
from typing import Any

from sqlalchemy import func, or_, select, update
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from missionflow.db.models import (
    Competency,
    User,
    UserCompetency,
    UserMission,
    UserNotification,
)
from missionflow.db.models import Rank as RankRow
from missionflow.progression.models import (
    MissionNode,
    MissionStatus,
    Rank,
    UserMissionState,
    UserStanding,
)

logger = logging.getLogger(__name__)


def row_to_rank(row: RankRow) -> Rank:
    """Convert a ranks row to a plain Rank."""
    return Rank(
        id=row.id,
        campaign_id=row.campaign_id,
        level=row.level,
        name=row.name,
        title=row.title or "",
        min_experience=row.min_experience,
        min_missions=row.min_missions,
        required_competencies=dict(row.required_competencies or {}),
        currency_reward=row.currency_reward,
    )


def row_to_state(row: UserMission) -> UserMissionState:
    """Convert a UserMission row to a detached state record."""
    return UserMissionState(
        user_id=row.user_id,
        mission_id=row.mission_id,
        status=MissionStatus(row.status),
        created_at=row.created_at,
        updated_at=row.updated_at,
        started_at=row.started_at,
        submitted_at=row.submitted_at,
        completed_at=row.completed_at,
        rewarded_at=row.rewarded_at,
        submission=dict(row.submission) if row.submission is not None else None,
    )


class SqlProgressStore:
    """ProgressStore implementation over an AsyncSession."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize the store.

        Args:
            session: The database session to use
        """
        self.session = session

    async def get_state(
        self, user_id: int, mission_id: int, for_update: bool = False
    ) -> UserMissionState | None:
        """Get one state record.

        Args:
            user_id: The user ID
            mission_id: The mission ID
            for_update: Lock the row until the transaction ends

        Returns:
            The state, or None if the user was never initialized for the mission
        """
        stmt = select(UserMission).where(
            UserMission.user_id == user_id,
            UserMission.mission_id == mission_id,
        )
        if for_update:
            stmt = stmt.with_for_update()
        result = await self.session.execute(stmt)
        row = result.scalar_one_or_none()
        return row_to_state(row) if row is not None else None

    async def get_states(
        self, user_id: int, mission_ids: Iterable[int]
    ) -> dict[int, UserMissionState]:
        """Get the user's states for several missions, keyed by mission ID."""
        ids = list(mission_ids)
        if not ids:
            return {}
        result = await self.session.execute(
            select(UserMission).where(
                UserMission.user_id == user_id,
                UserMission.mission_id.in_(ids),
            )
        )
        return {row.mission_id: row_to_state(row) for row in result.scalars().all()}

    async def create_states(
        self, states: list[UserMissionState]
    ) -> list[UserMissionState]:
        """Insert state records, skipping keys that already exist.

        Uses INSERT ... ON CONFLICT DO NOTHING so concurrent initialization of
        the same user never duplicates or overwrites a record.

        Returns:
            The states that were actually inserted
        """
        if not states:
            return []

        stmt = (
            insert(UserMission)
            .values(
                [
                    {
                        "user_id": s.user_id,
                        "mission_id": s.mission_id,
                        "status": s.status.value,
                        "created_at": s.created_at,
                        "updated_at": s.updated_at,
                    }
                    for s in states
                ]
            )
            .on_conflict_do_nothing(constraint="uq_user_missions_user_mission")
            .returning(UserMission.user_id, UserMission.mission_id)
        )
        result = await self.session.execute(stmt)
        inserted = {(user_id, mission_id) for user_id, mission_id in result.all()}
        await self.session.flush()

        return [s for s in states if s.key in inserted]

    async def save_state(self, state: UserMissionState) -> None:
        """Write a state record back."""
        await self.session.execute(
            update(UserMission)
            .where(
                UserMission.user_id == state.user_id,
                UserMission.mission_id == state.mission_id,
            )
            .values(
                status=state.status.value,
                updated_at=state.updated_at,
                started_at=state.started_at,
                submitted_at=state.submitted_at,
                completed_at=state.completed_at,
                rewarded_at=state.rewarded_at,
                submission=state.submission,
            )
        )
        await self.session.flush()

    async def credit_rewards(self, user_id: int, mission: MissionNode) -> None:
        """Add a mission's experience, currency and competency points to a user."""
        await self.session.execute(
            update(User)
            .where(User.id == user_id)
            .values(
                experience=User.experience + mission.experience_reward,
                currency=User.currency + mission.currency_reward,
            )
        )

        for competency_id, points in mission.competencies.items():
            stmt = insert(UserCompetency).values(
                user_id=user_id,
                competency_id=competency_id,
                points=points,
            )
            stmt = stmt.on_conflict_do_update(
                constraint="uq_user_competencies_user_competency",
                set_={"points": UserCompetency.points + stmt.excluded.points},
            )
            await self.session.execute(stmt)

        await self.session.flush()

    async def add_notification(
        self,
        user_id: int,
        kind: str,
        title: str,
        message: str,
        metadata: dict[str, Any],
    ) -> None:
        """Record a notification for the user."""
        self.session.add(
            UserNotification(
                user_id=user_id,
                kind=kind,
                title=title,
                message=message,
                details=metadata,
            )
        )
        await self.session.flush()

    async def get_standing(
        self, user_id: int, for_update: bool = False
    ) -> UserStanding | None:
        """Get the totals rank promotion is based on.

        Args:
            user_id: The user ID
            for_update: Lock the user's row until the transaction ends

        Returns:
            The standing, or None if the user does not exist
        """
        stmt = select(User.id, User.current_rank, User.experience).where(User.id == user_id)
        if for_update:
            stmt = stmt.with_for_update()
        row = (await self.session.execute(stmt)).one_or_none()
        if row is None:
            return None

        completed = await self.session.scalar(
            select(func.count(UserMission.id)).where(
                UserMission.user_id == user_id,
                UserMission.status == MissionStatus.COMPLETED.value,
            )
        )
        competencies = await self.session.execute(
            select(Competency.name, UserCompetency.points)
            .join(Competency, Competency.id == UserCompetency.competency_id)
            .where(UserCompetency.user_id == user_id)
        )

        return UserStanding(
            user_id=row.id,
            current_rank=row.current_rank,
            experience=row.experience,
            missions_completed=completed or 0,
            competencies={name: points for name, points in competencies.all()},
        )

    async def list_ranks(self, campaign_id: int | None) -> list[Rank]:
        """Get the global ranks plus the campaign's own ranks, by level."""
        condition = RankRow.campaign_id.is_(None)
        if campaign_id is not None:
            condition = or_(condition, RankRow.campaign_id == campaign_id)
        result = await self.session.execute(
            select(RankRow).where(condition).order_by(RankRow.level)
        )
        return [row_to_rank(row) for row in result.scalars().all()]

    async def promote(self, user_id: int, rank: Rank) -> None:
        """Set the user's rank and credit the rank's currency reward."""
        await self.session.execute(
            update(User)
            .where(User.id == user_id)
            .values(
                current_rank=rank.level,
                currency=User.currency + rank.currency_reward,
            )
        )
        await self.session.flush()
