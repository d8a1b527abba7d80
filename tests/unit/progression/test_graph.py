"""Tests for the mission dependency graph."""

import itertools

import pytest

from missionflow.progression import (
    MissionDependency,
    MissionGraph,
    MissionNode,
    NotFoundError,
    ValidationError,
    find_cycle,
)


def mission(mission_id: int, campaign_id: int = 1) -> MissionNode:
    return MissionNode(id=mission_id, campaign_id=campaign_id, name=f"Mission {mission_id}")


def dep(source: int, target: int) -> MissionDependency:
    return MissionDependency(source_id=source, target_id=target)


def assert_is_cycle(cycle: list[int], dependencies: list[MissionDependency]) -> None:
    pairs = {(d.source_id, d.target_id) for d in dependencies}
    closed = [*cycle, cycle[0]]
    for source, target in zip(closed, closed[1:]):
        assert (source, target) in pairs


class TestBuild:
    """Tests for MissionGraph.build."""

    def test_chain(self) -> None:
        """Test a simple chain is built with the right adjacency."""
        graph = MissionGraph.build([mission(1), mission(2), mission(3)], [dep(1, 2), dep(2, 3)])

        assert len(graph) == 3
        assert graph.prerequisites_of(1) == frozenset()
        assert graph.prerequisites_of(2) == frozenset({1})
        assert graph.dependents_of(2) == frozenset({3})
        assert graph.dependents_of(3) == frozenset()

    def test_join(self) -> None:
        """Test a mission with two prerequisites."""
        graph = MissionGraph.build([mission(1), mission(2), mission(4)], [dep(1, 4), dep(2, 4)])

        assert graph.prerequisites_of(4) == frozenset({1, 2})
        assert [m.id for m in graph.root_missions()] == [1, 2]

    def test_empty_campaign(self) -> None:
        """Test a campaign without missions builds an empty graph."""
        graph = MissionGraph.build([], [])

        assert len(graph) == 0
        assert graph.topological_order() == []
        assert graph.root_missions() == []

    def test_no_dependencies_all_roots(self) -> None:
        """Test every mission is a root when there are no edges."""
        graph = MissionGraph.build([mission(3), mission(1), mission(2)], [])

        assert [m.id for m in graph.root_missions()] == [1, 2, 3]

    def test_contains(self) -> None:
        """Test membership by mission id."""
        graph = MissionGraph.build([mission(1)], [])

        assert 1 in graph
        assert 2 not in graph

    def test_duplicate_mission_rejected(self) -> None:
        """Test a mission listed twice is rejected."""
        with pytest.raises(ValidationError, match="listed twice"):
            MissionGraph.build([mission(1), mission(1)], [])

    def test_missions_from_several_campaigns_rejected(self) -> None:
        """Test the graph only holds one campaign."""
        with pytest.raises(ValidationError, match="several campaigns"):
            MissionGraph.build([mission(1, campaign_id=1), mission(2, campaign_id=2)], [])

    def test_expected_campaign_mismatch_rejected(self) -> None:
        """Test missions not owned by the expected campaign are rejected."""
        with pytest.raises(ValidationError):
            MissionGraph.build([mission(1, campaign_id=1)], [], campaign_id=5)

    def test_unknown_mission_in_edge_rejected(self) -> None:
        """Test an edge pointing outside the campaign is rejected."""
        with pytest.raises(ValidationError, match="not part of the campaign"):
            MissionGraph.build([mission(1)], [dep(1, 99)])

    def test_self_dependency_rejected(self) -> None:
        """Test a mission cannot depend on itself."""
        with pytest.raises(ValidationError, match="cannot depend on itself"):
            MissionGraph.build([mission(1)], [dep(1, 1)])

    def test_duplicate_edge_rejected(self) -> None:
        """Test the same edge twice is rejected."""
        with pytest.raises(ValidationError, match="Duplicate dependency"):
            MissionGraph.build([mission(1), mission(2)], [dep(1, 2), dep(1, 2)])

    def test_two_cycle_rejected(self) -> None:
        """Test A -> B -> A is rejected with the cycle attached."""
        dependencies = [dep(1, 2), dep(2, 1)]
        with pytest.raises(ValidationError) as exc_info:
            MissionGraph.build([mission(1), mission(2)], dependencies)

        assert sorted(exc_info.value.cycle) == [1, 2]
        assert "Dependency cycle detected" in exc_info.value.message
        assert_is_cycle(exc_info.value.cycle, dependencies)

    def test_three_cycle_behind_root_rejected(self) -> None:
        """Test a cycle downstream of a valid root is still found."""
        dependencies = [dep(1, 2), dep(2, 3), dep(3, 4), dep(4, 2)]
        with pytest.raises(ValidationError) as exc_info:
            MissionGraph.build([mission(i) for i in range(1, 5)], dependencies)

        assert sorted(exc_info.value.cycle) == [2, 3, 4]
        assert_is_cycle(exc_info.value.cycle, dependencies)


class TestLookups:
    """Tests for graph queries."""

    def test_unknown_mission_raises_not_found(self) -> None:
        """Test lookups of a foreign mission raise NotFoundError."""
        graph = MissionGraph.build([mission(1)], [])

        with pytest.raises(NotFoundError):
            graph.mission(2)
        with pytest.raises(NotFoundError):
            graph.prerequisites_of(2)
        with pytest.raises(NotFoundError):
            graph.dependents_of(2)

    def test_dependencies_sorted(self) -> None:
        """Test edges come back sorted by source then target."""
        graph = MissionGraph.build(
            [mission(1), mission(2), mission(3)], [dep(2, 3), dep(1, 3), dep(1, 2)]
        )

        assert graph.dependencies == [dep(1, 2), dep(1, 3), dep(2, 3)]

    def test_topological_order_respects_edges(self) -> None:
        """Test every prerequisite precedes its dependents."""
        dependencies = [dep(5, 1), dep(1, 3), dep(4, 3), dep(3, 2)]
        graph = MissionGraph.build([mission(i) for i in range(1, 6)], dependencies)
        order = graph.topological_order()

        assert sorted(order) == [1, 2, 3, 4, 5]
        for d in dependencies:
            assert order.index(d.source_id) < order.index(d.target_id)

    def test_topological_order_is_deterministic(self) -> None:
        """Test the order does not depend on input order."""
        missions = [mission(i) for i in range(1, 5)]
        dependencies = [dep(1, 3), dep(2, 3), dep(3, 4)]
        orders = {
            tuple(MissionGraph.build(list(perm), list(reversed(dependencies))).topological_order())
            for perm in itertools.permutations(missions)
        }

        assert orders == {(1, 2, 3, 4)}

    def test_missions_in_topological_order(self) -> None:
        """Test missions property follows the topological order."""
        graph = MissionGraph.build([mission(2), mission(1)], [dep(2, 1)])

        assert [m.id for m in graph.missions] == [2, 1]

    def test_topological_order_is_a_copy(self) -> None:
        """Test callers cannot mutate the graph's order."""
        graph = MissionGraph.build([mission(1), mission(2)], [])
        graph.topological_order().append(99)

        assert graph.topological_order() == [1, 2]


class TestFindCycle:
    """Tests for find_cycle."""

    def test_acyclic_returns_none(self) -> None:
        """Test no cycle in a DAG."""
        assert find_cycle([1, 2, 3], [dep(1, 2), dep(1, 3), dep(2, 3)]) is None

    def test_finds_cycle(self) -> None:
        """Test a cycle is returned in edge order."""
        dependencies = [dep(1, 2), dep(2, 3), dep(3, 1)]
        cycle = find_cycle([1, 2, 3], dependencies)

        assert cycle is not None
        assert sorted(cycle) == [1, 2, 3]
        assert_is_cycle(cycle, dependencies)

    def test_excludes_nodes_downstream_of_cycle(self) -> None:
        """Test missions only reachable from the cycle are not part of it."""
        dependencies = [dep(1, 2), dep(2, 1), dep(2, 3)]
        cycle = find_cycle([1, 2, 3], dependencies)

        assert cycle is not None
        assert sorted(cycle) == [1, 2]

    def test_ignores_foreign_edges(self) -> None:
        """Test edges to missions outside the set are ignored."""
        assert find_cycle([1, 2], [dep(1, 2), dep(2, 9), dep(9, 1)]) is None
