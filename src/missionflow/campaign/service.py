"""Campaign service: loads campaign structure and wires up trackers."""

import logging

from missionflow.db.repositories.campaigns import CampaignRepository
from missionflow.progression.errors import NotFoundError, ValidationError
from missionflow.progression.graph import MissionGraph
from missionflow.progression.models import MissionDependency
from missionflow.progression.presentation import ThemeConfig
from missionflow.progression.tracker import ProgressStore, ProgressTracker
from missionflow.progression.validation import CampaignReport, validate_campaign

logger = logging.getLogger(__name__)


class CampaignService:
    """Campaign business logic on top of the repository."""

    def __init__(self, campaign_repo: CampaignRepository, store: ProgressStore) -> None:
        """Initialize the service.

        Args:
            campaign_repo: Repository for campaigns, missions and dependencies
            store: Persistence for user mission state
        """
        self.campaign_repo = campaign_repo
        self.store = store

    async def get_theme(self, campaign_id: int) -> ThemeConfig:
        """Get a campaign's label overrides.

        Raises:
            NotFoundError: If the campaign does not exist
        """
        campaign = await self.campaign_repo.get_campaign(campaign_id)
        if campaign is None:
            raise NotFoundError(f"Campaign {campaign_id} not found")
        return ThemeConfig.from_dict(campaign.theme)

    async def load_graph(self, campaign_id: int) -> MissionGraph:
        """Load and validate a campaign's dependency graph.

        Raises:
            NotFoundError: If the campaign does not exist
            ValidationError: If the stored graph is malformed
        """
        if await self.campaign_repo.get_campaign(campaign_id) is None:
            raise NotFoundError(f"Campaign {campaign_id} not found")

        missions = await self.campaign_repo.list_missions(campaign_id)
        dependencies = await self.campaign_repo.list_dependencies(campaign_id)
        try:
            return MissionGraph.build(missions, dependencies, campaign_id=campaign_id)
        except ValidationError as e:
            logger.error(f"Campaign {campaign_id} has an invalid graph: {e.message}")
            raise

    async def tracker_for_campaign(self, campaign_id: int) -> ProgressTracker:
        """Build a tracker for a campaign."""
        graph = await self.load_graph(campaign_id)
        theme = await self.get_theme(campaign_id)
        return ProgressTracker(graph, self.store, theme=theme)

    async def tracker_for_mission(self, mission_id: int) -> ProgressTracker:
        """Build a tracker for the campaign owning a mission.

        Raises:
            NotFoundError: If the mission does not exist
        """
        mission = await self.campaign_repo.get_mission(mission_id)
        if mission is None:
            raise NotFoundError(f"Mission {mission_id} not found")
        return await self.tracker_for_campaign(mission.campaign_id)

    async def validate(self, campaign_id: int) -> CampaignReport:
        """Produce a structure health report for a campaign."""
        if await self.campaign_repo.get_campaign(campaign_id) is None:
            raise NotFoundError(f"Campaign {campaign_id} not found")

        missions = await self.campaign_repo.list_missions(campaign_id)
        dependencies = await self.campaign_repo.list_dependencies(campaign_id)
        return validate_campaign(missions, dependencies)

    async def add_dependency(self, source_id: int, target_id: int) -> MissionDependency:
        """Link two missions of the same campaign.

        The candidate edge is checked by rebuilding the campaign graph with
        it, so nothing is written if it would create a cycle.

        Raises:
            NotFoundError: If either mission does not exist
            ValidationError: If the edge is a duplicate, crosses campaigns,
                or creates a cycle
        """
        source = await self.campaign_repo.get_mission(source_id)
        target = await self.campaign_repo.get_mission(target_id)
        if source is None:
            raise NotFoundError(f"Mission {source_id} not found")
        if target is None:
            raise NotFoundError(f"Mission {target_id} not found")
        if source.campaign_id != target.campaign_id:
            raise ValidationError(
                f"Missions {source_id} and {target_id} belong to different campaigns"
            )

        candidate = MissionDependency(source_id=source_id, target_id=target_id)
        missions = await self.campaign_repo.list_missions(source.campaign_id)
        dependencies = await self.campaign_repo.list_dependencies(source.campaign_id)
        if candidate in dependencies:
            raise ValidationError("Dependency already exists")

        MissionGraph.build(missions, [*dependencies, candidate], campaign_id=source.campaign_id)

        if not await self.campaign_repo.add_dependency(source_id, target_id):
            raise ValidationError("Dependency already exists")

        logger.info(f"Campaign {source.campaign_id}: added dependency {source_id} -> {target_id}")
        return candidate

    async def remove_dependency(self, source_id: int, target_id: int) -> bool:
        """Unlink two missions.

        Existing user states are left alone; missions already unlocked stay
        unlocked.
        """
        removed = await self.campaign_repo.remove_dependency(source_id, target_id)
        if removed:
            logger.info(f"Removed dependency {source_id} -> {target_id}")
        return removed
