"""Fixtures for progression unit tests."""

import pytest

from missionflow.progression import (
    ConfirmationType,
    InMemoryProgressStore,
    MissionDependency,
    MissionGraph,
    MissionNode,
    ProgressTracker,
)


def _mission(mission_id: int, name: str, **kwargs) -> MissionNode:
    return MissionNode(
        id=mission_id,
        campaign_id=1,
        name=name,
        experience_reward=10 * mission_id,
        currency_reward=mission_id,
        **kwargs,
    )


def _edges(*pairs: tuple[int, int]) -> list[MissionDependency]:
    return [MissionDependency(source_id=s, target_id=t) for s, t in pairs]


@pytest.fixture
def store() -> InMemoryProgressStore:
    return InMemoryProgressStore()


@pytest.fixture
def chain_graph() -> MissionGraph:
    """A(1) -> B(2) -> C(3)."""
    return MissionGraph.build(
        [_mission(1, "A"), _mission(2, "B"), _mission(3, "C")],
        _edges((1, 2), (2, 3)),
    )


@pytest.fixture
def join_graph() -> MissionGraph:
    """A(1) and B(2) both required for D(4)."""
    return MissionGraph.build(
        [_mission(1, "A"), _mission(2, "B"), _mission(4, "D")],
        _edges((1, 4), (2, 4)),
    )


@pytest.fixture
def review_graph() -> MissionGraph:
    """Interview(1, manual review) and Office tour(2, QR) both required for Finish(3)."""
    return MissionGraph.build(
        [
            _mission(1, "Interview", confirmation_type=ConfirmationType.MANUAL_REVIEW),
            _mission(
                2,
                "Office tour",
                confirmation_type=ConfirmationType.QR_SCAN,
                competencies={7: 5},
            ),
            _mission(3, "Finish"),
        ],
        _edges((1, 3), (2, 3)),
    )


@pytest.fixture
def chain_tracker(chain_graph: MissionGraph, store: InMemoryProgressStore) -> ProgressTracker:
    return ProgressTracker(chain_graph, store)
