"""Campaign, mission and dependency repository."""

import logging

from sqlalchemy import delete, or_, select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from missionflow.db.models import Campaign, Mission
from missionflow.db.models import MissionDependency as MissionDependencyRow
from missionflow.progression.models import (
    ConfirmationType,
    MissionDependency,
    MissionNode,
)

logger = logging.getLogger(__name__)


def mission_to_node(mission: Mission) -> MissionNode:
    """Convert a Mission row to the plain record used by the graph."""
    return MissionNode(
        id=mission.id,
        campaign_id=mission.campaign_id,
        name=mission.name,
        experience_reward=mission.experience_reward,
        currency_reward=mission.currency_reward,
        confirmation_type=ConfirmationType(mission.confirmation_type),
        competencies={mc.competency_id: mc.points for mc in mission.competencies},
        description=mission.description or "",
        check_in_window_seconds=mission.check_in_window_seconds,
    )


class CampaignRepository:
    """Read access to campaign structure plus dependency editing."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize the repository.

        Args:
            session: The database session to use
        """
        self.session = session

    async def get_campaign(self, campaign_id: int) -> Campaign | None:
        """Get a campaign by ID."""
        return await self.session.get(Campaign, campaign_id)

    async def get_mission(self, mission_id: int) -> MissionNode | None:
        """Get a single mission as a plain record."""
        result = await self.session.execute(
            select(Mission)
            .options(selectinload(Mission.competencies))
            .where(Mission.id == mission_id)
        )
        mission = result.scalar_one_or_none()
        return mission_to_node(mission) if mission is not None else None

    async def list_missions(self, campaign_id: int) -> list[MissionNode]:
        """Get all missions of a campaign, ordered by builder position."""
        result = await self.session.execute(
            select(Mission)
            .options(selectinload(Mission.competencies))
            .where(Mission.campaign_id == campaign_id)
            .order_by(Mission.position, Mission.id)
        )
        return [mission_to_node(m) for m in result.scalars().all()]

    async def list_dependencies(self, campaign_id: int) -> list[MissionDependency]:
        """Get every edge touching a mission of the campaign.

        Edges with only one end in the campaign are included so the graph
        builder can reject them.
        """
        campaign_missions = select(Mission.id).where(Mission.campaign_id == campaign_id)
        result = await self.session.execute(
            select(
                MissionDependencyRow.source_mission_id,
                MissionDependencyRow.target_mission_id,
            )
            .where(
                or_(
                    MissionDependencyRow.source_mission_id.in_(campaign_missions),
                    MissionDependencyRow.target_mission_id.in_(campaign_missions),
                )
            )
            .order_by(
                MissionDependencyRow.source_mission_id,
                MissionDependencyRow.target_mission_id,
            )
        )
        return [
            MissionDependency(source_id=source, target_id=target)
            for source, target in result.all()
        ]

    async def add_dependency(self, source_id: int, target_id: int) -> bool:
        """Insert a dependency edge.

        Uses INSERT ... ON CONFLICT DO NOTHING for idempotency.

        Returns:
            True if the edge was added, False if it already existed
        """
        stmt = (
            insert(MissionDependencyRow)
            .values(source_mission_id=source_id, target_mission_id=target_id)
            .on_conflict_do_nothing(constraint="uq_mission_dependencies_pair")
        )
        result = await self.session.execute(stmt)
        await self.session.flush()

        if result.rowcount > 0:
            logger.debug(f"Added dependency {source_id} -> {target_id}")
            return True
        return False

    async def remove_dependency(self, source_id: int, target_id: int) -> bool:
        """Delete a dependency edge.

        Returns:
            True if the edge was removed, False if it did not exist
        """
        result = await self.session.execute(
            delete(MissionDependencyRow).where(
                MissionDependencyRow.source_mission_id == source_id,
                MissionDependencyRow.target_mission_id == target_id,
            )
        )
        await self.session.flush()

        if result.rowcount > 0:
            logger.debug(f"Removed dependency {source_id} -> {target_id}")
            return True
        return False
