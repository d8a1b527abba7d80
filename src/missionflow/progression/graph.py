"""Mission dependency graph for a single campaign.

Missions are kept in an id-keyed arena with two adjacency maps:
- prerequisites: mission id -> ids that must be COMPLETED first
- dependents: mission id -> ids to re-evaluate when it completes

A graph is only ever handed out after it has been validated, so callers
never see a graph with a cycle or a dangling edge.
"""

import heapq
from collections.abc import Iterable

from missionflow.progression.errors import NotFoundError, ValidationError
from missionflow.progression.models import MissionDependency, MissionNode


def _topological_sort(
    mission_ids: Iterable[int],
    dependencies: Iterable[MissionDependency],
) -> tuple[list[int], set[int]]:
    """Kahn's algorithm with ties broken by id.

    Returns:
        (ordered ids, ids left over because they sit on or behind a cycle)
    """
    indegree: dict[int, int] = {mid: 0 for mid in mission_ids}
    outgoing: dict[int, list[int]] = {mid: [] for mid in indegree}
    for dep in dependencies:
        outgoing[dep.source_id].append(dep.target_id)
        indegree[dep.target_id] += 1

    ready = [mid for mid, count in indegree.items() if count == 0]
    heapq.heapify(ready)
    order: list[int] = []
    while ready:
        mid = heapq.heappop(ready)
        order.append(mid)
        for target in outgoing[mid]:
            indegree[target] -= 1
            if indegree[target] == 0:
                heapq.heappush(ready, target)

    return order, set(indegree) - set(order)


def find_cycle(
    mission_ids: Iterable[int],
    dependencies: Iterable[MissionDependency],
) -> list[int] | None:
    """Find one dependency cycle.

    Edges that reference ids outside ``mission_ids`` are ignored.

    Returns:
        Mission ids in edge order (a -> b -> ... -> a, without repeating a),
        or None if the graph is acyclic
    """
    ids = set(mission_ids)
    edges = [d for d in dependencies if d.source_id in ids and d.target_id in ids]
    _, leftover = _topological_sort(ids, edges)
    if not leftover:
        return None

    # Every leftover node has a leftover predecessor, so walking backwards
    # inside the leftover set must eventually repeat a node.
    incoming: dict[int, list[int]] = {mid: [] for mid in leftover}
    for dep in edges:
        if dep.source_id in leftover and dep.target_id in leftover:
            incoming[dep.target_id].append(dep.source_id)

    current = min(leftover)
    seen: dict[int, int] = {}
    path: list[int] = []
    while current not in seen:
        seen[current] = len(path)
        path.append(current)
        current = min(incoming[current])

    cycle = path[seen[current]:]
    cycle.reverse()
    return cycle


class MissionGraph:
    """Validated, read-only dependency structure of one campaign."""

    def __init__(
        self,
        missions: dict[int, MissionNode],
        prerequisites: dict[int, frozenset[int]],
        dependents: dict[int, frozenset[int]],
        order: list[int],
        campaign_id: int | None = None,
    ) -> None:
        # Use MissionGraph.build(); this constructor does no validation.
        self._missions = missions
        self._prerequisites = prerequisites
        self._dependents = dependents
        self._order = order
        self.campaign_id = campaign_id

    @classmethod
    def build(
        cls,
        missions: Iterable[MissionNode],
        dependencies: Iterable[MissionDependency],
        campaign_id: int | None = None,
    ) -> "MissionGraph":
        """Validate missions and edges and build the graph.

        Args:
            missions: All missions of the campaign
            dependencies: Dependency edges between those missions
            campaign_id: Expected owning campaign (inferred if omitted)

        Returns:
            The graph

        Raises:
            ValidationError: On duplicate missions or edges, self-edges, edges to
                unknown missions, missions from several campaigns, or a cycle
        """
        arena: dict[int, MissionNode] = {}
        for mission in missions:
            if mission.id in arena:
                raise ValidationError(f"Mission {mission.id} is listed twice")
            arena[mission.id] = mission

        campaigns = {m.campaign_id for m in arena.values()}
        if campaign_id is not None:
            campaigns.add(campaign_id)
        if len(campaigns) > 1:
            raise ValidationError(
                f"Missions belong to several campaigns: {sorted(campaigns)}"
            )

        edges: list[MissionDependency] = []
        seen_pairs: set[tuple[int, int]] = set()
        for dep in dependencies:
            for mid in (dep.source_id, dep.target_id):
                if mid not in arena:
                    raise ValidationError(
                        f"Dependency {dep.source_id} -> {dep.target_id} references "
                        f"mission {mid} which is not part of the campaign"
                    )
            if dep.source_id == dep.target_id:
                raise ValidationError(f"Mission {dep.source_id} cannot depend on itself")
            pair = (dep.source_id, dep.target_id)
            if pair in seen_pairs:
                raise ValidationError(
                    f"Duplicate dependency {dep.source_id} -> {dep.target_id}"
                )
            seen_pairs.add(pair)
            edges.append(dep)

        order, leftover = _topological_sort(arena, edges)
        if leftover:
            cycle = find_cycle(leftover, edges) or sorted(leftover)
            path = " -> ".join(str(mid) for mid in [*cycle, cycle[0]])
            raise ValidationError(f"Dependency cycle detected: {path}", cycle=cycle)

        prerequisites: dict[int, set[int]] = {mid: set() for mid in arena}
        dependents: dict[int, set[int]] = {mid: set() for mid in arena}
        for dep in edges:
            prerequisites[dep.target_id].add(dep.source_id)
            dependents[dep.source_id].add(dep.target_id)

        return cls(
            missions=arena,
            prerequisites={k: frozenset(v) for k, v in prerequisites.items()},
            dependents={k: frozenset(v) for k, v in dependents.items()},
            order=order,
            campaign_id=next(iter(campaigns), None),
        )

    def _require(self, mission_id: int) -> None:
        if mission_id not in self._missions:
            raise NotFoundError(f"Mission {mission_id} is not part of this campaign")

    def mission(self, mission_id: int) -> MissionNode:
        """Get a mission by ID."""
        self._require(mission_id)
        return self._missions[mission_id]

    @property
    def missions(self) -> list[MissionNode]:
        """Missions in topological order."""
        return [self._missions[mid] for mid in self._order]

    @property
    def dependencies(self) -> list[MissionDependency]:
        """All edges, sorted by (source, target)."""
        return [
            MissionDependency(source_id=source, target_id=target)
            for source in sorted(self._dependents)
            for target in sorted(self._dependents[source])
        ]

    def prerequisites_of(self, mission_id: int) -> frozenset[int]:
        """Missions that must be COMPLETED before this one can become AVAILABLE."""
        self._require(mission_id)
        return self._prerequisites[mission_id]

    def dependents_of(self, mission_id: int) -> frozenset[int]:
        """Missions to re-evaluate when this one completes."""
        self._require(mission_id)
        return self._dependents[mission_id]

    def root_missions(self) -> list[MissionNode]:
        """Missions without prerequisites, in topological order."""
        return [self._missions[mid] for mid in self._order if not self._prerequisites[mid]]

    def topological_order(self) -> list[int]:
        """Mission IDs such that every prerequisite precedes its dependents."""
        return list(self._order)

    def __contains__(self, mission_id: object) -> bool:
        return mission_id in self._missions

    def __len__(self) -> int:
        return len(self._missions)
