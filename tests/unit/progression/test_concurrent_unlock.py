"""Tests for unlocking a join mission from two concurrent transactions."""

import asyncio
from collections import defaultdict
from dataclasses import replace

import pytest

from missionflow.progression import (
    InMemoryProgressStore,
    MissionGraph,
    MissionStatus,
    ProgressTracker,
    UserMissionState,
)

USER_ID = 42


class CommittedRows:
    """Committed state records plus per-row locks, shared by all transactions."""

    def __init__(self, states: list[UserMissionState]) -> None:
        self.states = {s.key: s for s in states}
        self.locks: dict[tuple[int, int], asyncio.Lock] = defaultdict(asyncio.Lock)


class TransactionStore(InMemoryProgressStore):
    """One open READ COMMITTED transaction over CommittedRows.

    Reads see committed rows plus this transaction's own writes. Row locks
    taken with for_update are held until commit(). When a barrier is given,
    the first COMPLETED write waits on it, so two transactions both finish
    their completion before either looks at dependents.
    """

    def __init__(self, rows: CommittedRows, barrier: asyncio.Barrier | None = None) -> None:
        super().__init__()
        self.rows = rows
        self.pending: dict[tuple[int, int], UserMissionState] = {}
        self.held: list[tuple[int, int]] = []
        self.barrier = barrier

    def _visible(self, key: tuple[int, int]) -> UserMissionState | None:
        state = self.pending.get(key) or self.rows.states.get(key)
        return replace(state) if state is not None else None

    async def get_state(self, user_id, mission_id, for_update=False):
        key = (user_id, mission_id)
        if for_update and key not in self.held:
            await self.rows.locks[key].acquire()
            self.held.append(key)
        return self._visible(key)

    async def get_states(self, user_id, mission_ids):
        result = {}
        for mission_id in mission_ids:
            state = self._visible((user_id, mission_id))
            if state is not None:
                result[mission_id] = state
        return result

    async def save_state(self, state):
        self.pending[state.key] = replace(state)
        if state.status is MissionStatus.COMPLETED and self.barrier is not None:
            barrier, self.barrier = self.barrier, None
            await barrier.wait()

    async def commit(self) -> None:
        self.rows.states.update(self.pending)
        self.pending.clear()
        for key in self.held:
            self.rows.locks[key].release()
        self.held.clear()


def in_progress_join() -> CommittedRows:
    """Both prerequisites of mission 4 started, mission 4 still locked."""
    return CommittedRows(
        [
            UserMissionState(user_id=USER_ID, mission_id=1, status=MissionStatus.IN_PROGRESS),
            UserMissionState(user_id=USER_ID, mission_id=2, status=MissionStatus.IN_PROGRESS),
            UserMissionState(user_id=USER_ID, mission_id=4, status=MissionStatus.LOCKED),
        ]
    )


async def complete_and_commit(
    tracker: ProgressTracker, store: TransactionStore, mission_id: int
):
    result = await tracker.request_transition(USER_ID, mission_id, MissionStatus.COMPLETED)
    await store.commit()
    return result


class TestConcurrentJoinUnlock:
    """Completing both prerequisites of a join at the same time."""

    @pytest.mark.asyncio
    async def test_join_unlocked_exactly_once(self, join_graph: MissionGraph) -> None:
        """Test the join mission unlocks when its prerequisites complete concurrently."""
        rows = in_progress_join()
        barrier = asyncio.Barrier(2)
        first_store = TransactionStore(rows, barrier)
        second_store = TransactionStore(rows, barrier)

        first, second = await asyncio.wait_for(
            asyncio.gather(
                complete_and_commit(ProgressTracker(join_graph, first_store), first_store, 1),
                complete_and_commit(ProgressTracker(join_graph, second_store), second_store, 2),
            ),
            timeout=5,
        )

        assert sorted(first.unlocked + second.unlocked) == [4]
        assert rows.states[(USER_ID, 1)].status is MissionStatus.COMPLETED
        assert rows.states[(USER_ID, 2)].status is MissionStatus.COMPLETED
        assert rows.states[(USER_ID, 4)].status is MissionStatus.AVAILABLE

    @pytest.mark.asyncio
    async def test_single_transaction_still_waits_for_sibling(
        self, join_graph: MissionGraph
    ) -> None:
        """Test one committed completion alone leaves the join locked."""
        rows = in_progress_join()
        store = TransactionStore(rows)

        result = await complete_and_commit(ProgressTracker(join_graph, store), store, 1)

        assert result.unlocked == []
        assert rows.states[(USER_ID, 4)].status is MissionStatus.LOCKED
        assert not rows.locks[(USER_ID, 4)].locked()

    @pytest.mark.asyncio
    async def test_dependent_locked_before_prerequisites_read(
        self, join_graph: MissionGraph
    ) -> None:
        """Test the dependent's row lock is taken before its prerequisites are read."""
        calls = []

        class RecordingStore(InMemoryProgressStore):
            async def get_state(self, user_id, mission_id, for_update=False):
                if for_update:
                    calls.append(("lock", mission_id))
                return await super().get_state(user_id, mission_id, for_update)

            async def get_states(self, user_id, mission_ids):
                mission_ids = list(mission_ids)
                calls.append(("read", frozenset(mission_ids)))
                return await super().get_states(user_id, mission_ids)

        store = RecordingStore()
        tracker = ProgressTracker(join_graph, store)
        await tracker.initialize(USER_ID)
        await tracker.start(USER_ID, 1)
        await tracker.request_transition(USER_ID, 1, MissionStatus.COMPLETED)
        await tracker.start(USER_ID, 2)
        calls.clear()

        await tracker.request_transition(USER_ID, 2, MissionStatus.COMPLETED)

        assert calls.index(("lock", 4)) < calls.index(("read", frozenset({1, 2})))
