"""Tests for CampaignService."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from missionflow.campaign.service import CampaignService
from missionflow.progression import (
    InMemoryProgressStore,
    MissionDependency,
    MissionNode,
    NotFoundError,
    ValidationError,
)


def mission(mission_id: int, campaign_id: int = 1) -> MissionNode:
    return MissionNode(
        id=mission_id,
        campaign_id=campaign_id,
        name=f"Mission {mission_id}",
        experience_reward=10,
        description="Do it",
    )


def dep(source: int, target: int) -> MissionDependency:
    return MissionDependency(source_id=source, target_id=target)


@pytest.fixture
def campaign_repo() -> AsyncMock:
    """Repository holding campaign 1 with A(1) -> B(2) and a free C(3)."""
    missions = {m.id: m for m in [mission(1), mission(2), mission(3), mission(10, campaign_id=2)]}

    repo = AsyncMock()
    repo.get_campaign.side_effect = lambda cid: (
        MagicMock(theme={"experienceLabel": "stars"}) if cid in (1, 2) else None
    )
    repo.get_mission.side_effect = missions.get
    repo.list_missions.side_effect = lambda cid: [
        m for m in missions.values() if m.campaign_id == cid
    ]
    repo.list_dependencies.return_value = [dep(1, 2)]
    repo.add_dependency.return_value = True
    repo.remove_dependency.return_value = True
    return repo


@pytest.fixture
def service(campaign_repo: AsyncMock) -> CampaignService:
    return CampaignService(campaign_repo, InMemoryProgressStore())


class TestLoadGraph:
    """Tests for loading campaign graphs."""

    @pytest.mark.asyncio
    async def test_load_graph(self, service: CampaignService) -> None:
        """Test the stored missions and edges become a graph."""
        graph = await service.load_graph(1)

        assert len(graph) == 3
        assert graph.prerequisites_of(2) == frozenset({1})

    @pytest.mark.asyncio
    async def test_missing_campaign(self, service: CampaignService) -> None:
        """Test an unknown campaign raises NotFoundError."""
        with pytest.raises(NotFoundError):
            await service.load_graph(99)

    @pytest.mark.asyncio
    async def test_stored_cycle_rejected(
        self, service: CampaignService, campaign_repo: AsyncMock
    ) -> None:
        """Test a corrupt stored graph is reported as a validation error."""
        campaign_repo.list_dependencies.return_value = [dep(1, 2), dep(2, 1)]

        with pytest.raises(ValidationError) as exc_info:
            await service.load_graph(1)

        assert sorted(exc_info.value.cycle) == [1, 2]

    @pytest.mark.asyncio
    async def test_tracker_uses_campaign_theme(self, service: CampaignService) -> None:
        """Test the tracker gets the campaign's labels."""
        tracker = await service.tracker_for_campaign(1)

        assert tracker.theme.experience_label == "stars"
        assert tracker.store is service.store

    @pytest.mark.asyncio
    async def test_tracker_for_mission(self, service: CampaignService) -> None:
        """Test the owning campaign is looked up from the mission."""
        tracker = await service.tracker_for_mission(2)

        assert 2 in tracker.graph

    @pytest.mark.asyncio
    async def test_tracker_for_unknown_mission(self, service: CampaignService) -> None:
        """Test an unknown mission raises NotFoundError."""
        with pytest.raises(NotFoundError):
            await service.tracker_for_mission(99)


class TestValidate:
    """Tests for campaign health reports."""

    @pytest.mark.asyncio
    async def test_report(self, service: CampaignService) -> None:
        """Test the orphaned mission shows up in the report."""
        report = await service.validate(1)

        assert report.total_missions == 3
        assert report.orphaned == 1

    @pytest.mark.asyncio
    async def test_report_tolerates_cycle(
        self, service: CampaignService, campaign_repo: AsyncMock
    ) -> None:
        """Test validation reports a cycle instead of raising."""
        campaign_repo.list_dependencies.return_value = [dep(1, 2), dep(2, 1)]

        report = await service.validate(1)

        assert not report.is_valid

    @pytest.mark.asyncio
    async def test_missing_campaign(self, service: CampaignService) -> None:
        """Test an unknown campaign raises NotFoundError."""
        with pytest.raises(NotFoundError):
            await service.validate(99)


class TestDependencies:
    """Tests for editing dependency edges."""

    @pytest.mark.asyncio
    async def test_add(self, service: CampaignService, campaign_repo: AsyncMock) -> None:
        """Test a valid edge is written."""
        result = await service.add_dependency(2, 3)

        assert result == dep(2, 3)
        campaign_repo.add_dependency.assert_awaited_once_with(2, 3)

    @pytest.mark.asyncio
    async def test_add_cycle_rejected(
        self, service: CampaignService, campaign_repo: AsyncMock
    ) -> None:
        """Test an edge closing a cycle is refused before writing."""
        with pytest.raises(ValidationError) as exc_info:
            await service.add_dependency(2, 1)

        assert sorted(exc_info.value.cycle) == [1, 2]
        campaign_repo.add_dependency.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_add_self_rejected(
        self, service: CampaignService, campaign_repo: AsyncMock
    ) -> None:
        """Test a mission cannot depend on itself."""
        with pytest.raises(ValidationError):
            await service.add_dependency(3, 3)

        campaign_repo.add_dependency.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_add_duplicate_rejected(
        self, service: CampaignService, campaign_repo: AsyncMock
    ) -> None:
        """Test an existing edge is refused."""
        with pytest.raises(ValidationError, match="already exists"):
            await service.add_dependency(1, 2)

        campaign_repo.add_dependency.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_add_duplicate_race(
        self, service: CampaignService, campaign_repo: AsyncMock
    ) -> None:
        """Test a concurrent insert of the same edge is reported as duplicate."""
        campaign_repo.add_dependency.return_value = False

        with pytest.raises(ValidationError, match="already exists"):
            await service.add_dependency(2, 3)

    @pytest.mark.asyncio
    async def test_add_across_campaigns_rejected(self, service: CampaignService) -> None:
        """Test edges must stay inside one campaign."""
        with pytest.raises(ValidationError, match="different campaigns"):
            await service.add_dependency(1, 10)

    @pytest.mark.asyncio
    async def test_add_unknown_mission(self, service: CampaignService) -> None:
        """Test both ends must exist."""
        with pytest.raises(NotFoundError):
            await service.add_dependency(1, 99)

    @pytest.mark.asyncio
    async def test_remove(self, service: CampaignService, campaign_repo: AsyncMock) -> None:
        """Test removal is delegated to the repository."""
        assert await service.remove_dependency(1, 2) is True
        campaign_repo.remove_dependency.assert_awaited_once_with(1, 2)
