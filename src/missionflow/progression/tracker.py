"""Per-user mission progress tracking.

The tracker owns every status change of a user's missions in one campaign:
- seeding state records when a user joins (initialize)
- validating and applying transitions (request_transition)
- crediting rewards exactly once on completion
- unlocking dependents once all their prerequisites are completed
- promoting the user when they reach the next rank's requirements

Each public operation is meant to run inside one database transaction; the
store's ``get_state(..., for_update=True)`` takes the row lock that makes a
concurrent second completion observe COMPLETED and become a no-op.
Committing is the caller's responsibility.
"""

import logging
from collections import Counter
from collections.abc import Iterable
from datetime import datetime
from typing import Any, Protocol

from missionflow.progression.errors import (
    InvalidTransitionError,
    NotFoundError,
    QRVerificationError,
)
from missionflow.progression.graph import MissionGraph
from missionflow.progression.models import (
    ConfirmationType,
    MissionNode,
    MissionStatus,
    ProgressSummary,
    Rank,
    TransitionResult,
    UserMissionState,
    UserStanding,
    utcnow,
)
from missionflow.progression.presentation import (
    ThemeConfig,
    completion_message,
    rank_up_message,
    unlock_message,
)
from missionflow.progression.qr import (
    DEFAULT_MAX_AGE_SECONDS,
    parse_qr_payload,
    verify_qr_payload,
)
from missionflow.progression.ranks import check_rank, find_rank, ladder_for
from missionflow.progression.state_machine import is_noop, validate_transition

logger = logging.getLogger(__name__)

NOTIFICATION_MISSION_COMPLETED = "MISSION_COMPLETED"
NOTIFICATION_MISSION_AVAILABLE = "NEW_MISSION_AVAILABLE"
NOTIFICATION_RANK_UP = "RANK_UP"


class ProgressStore(Protocol):
    """Persistence the tracker needs. All reads return detached copies."""

    async def get_state(
        self, user_id: int, mission_id: int, for_update: bool = False
    ) -> UserMissionState | None: ...

    async def get_states(
        self, user_id: int, mission_ids: Iterable[int]
    ) -> dict[int, UserMissionState]: ...

    async def create_states(
        self, states: list[UserMissionState]
    ) -> list[UserMissionState]: ...

    async def save_state(self, state: UserMissionState) -> None: ...

    async def credit_rewards(self, user_id: int, mission: MissionNode) -> None: ...

    async def add_notification(
        self,
        user_id: int,
        kind: str,
        title: str,
        message: str,
        metadata: dict[str, Any],
    ) -> None: ...

    async def get_standing(
        self, user_id: int, for_update: bool = False
    ) -> UserStanding | None: ...

    async def list_ranks(self, campaign_id: int | None) -> list[Rank]: ...

    async def promote(self, user_id: int, rank: Rank) -> None: ...


class ProgressTracker:
    """Applies the mission state machine for users of one campaign."""

    def __init__(
        self,
        graph: MissionGraph,
        store: ProgressStore,
        theme: ThemeConfig | None = None,
    ) -> None:
        """Initialize the tracker.

        Args:
            graph: The campaign's validated dependency graph
            store: State, reward and notification persistence
            theme: Label overrides used in notification texts
        """
        self.graph = graph
        self.store = store
        self.theme = theme

    async def initialize(self, user_id: int) -> list[UserMissionState]:
        """Create the user's missing state records.

        Missions without prerequisites start AVAILABLE, the rest LOCKED.
        Existing records are never touched, so calling this again only fills
        in missions added to the campaign since; those start AVAILABLE when
        every prerequisite is already COMPLETED.

        Returns:
            The records that were created
        """
        mission_ids = self.graph.topological_order()
        existing = await self.store.get_states(user_id, mission_ids)

        new_states = []
        for mission_id in mission_ids:
            if mission_id in existing:
                continue
            prerequisites = self.graph.prerequisites_of(mission_id)
            unlocked = all(
                p in existing and existing[p].status is MissionStatus.COMPLETED
                for p in prerequisites
            )
            status = MissionStatus.AVAILABLE if unlocked else MissionStatus.LOCKED
            new_states.append(
                UserMissionState(user_id=user_id, mission_id=mission_id, status=status)
            )

        if not new_states:
            return []

        created = await self.store.create_states(new_states)
        logger.info(
            f"Initialized {len(created)} missions for user {user_id} "
            f"({len(existing)} already present)"
        )
        return created

    async def request_transition(
        self,
        user_id: int,
        mission_id: int,
        target: MissionStatus,
        submission: dict[str, Any] | None = None,
    ) -> TransitionResult:
        """Move one mission of one user to a new status.

        Completing a mission credits its rewards (once), checks for a rank
        promotion and unlocks dependents whose prerequisites are now all
        completed.

        Args:
            user_id: The user ID
            mission_id: The mission ID
            target: Requested status
            submission: Data merged into the stored submission

        Returns:
            TransitionResult describing what happened

        Raises:
            NotFoundError: If the mission or the user's state record is missing
            InvalidTransitionError: If the state machine forbids the change
        """
        mission = self.graph.mission(mission_id)
        state = await self._load(user_id, mission_id, for_update=True)
        previous = state.status

        if is_noop(previous, target):
            logger.debug(f"User {user_id} mission {mission_id} already completed")
            return TransitionResult(state=state, previous_status=previous, changed=False)

        prerequisites_met = True
        if previous is MissionStatus.LOCKED:
            prerequisites_met = await self._prerequisites_completed(user_id, mission_id)

        try:
            validate_transition(
                previous, target, mission.confirmation_type, prerequisites_met
            )
        except InvalidTransitionError as e:
            logger.warning(f"User {user_id} mission {mission_id}: {e.message}")
            raise

        now = utcnow()
        state.status = target
        state.updated_at = now
        if target is MissionStatus.IN_PROGRESS:
            state.started_at = now
        elif target is MissionStatus.PENDING_REVIEW:
            state.submitted_at = now
        elif target is MissionStatus.COMPLETED:
            state.completed_at = now
        if submission:
            state.submission = {**(state.submission or {}), **submission}

        result = TransitionResult(state=state, previous_status=previous)
        if target is MissionStatus.COMPLETED:
            result.rewarded = await self._apply_rewards(state, mission, now)

        await self.store.save_state(state)
        logger.debug(
            f"User {user_id} mission {mission_id}: {previous.value} -> {target.value}"
        )

        if target is MissionStatus.COMPLETED:
            logger.info(f"User {user_id} completed mission {mission_id}")
            result.new_rank = await self.check_promotion(user_id)
            result.unlocked = await self.on_mission_completed(user_id, mission_id)

        return result

    async def on_mission_completed(self, user_id: int, mission_id: int) -> list[int]:
        """Unlock dependents of a completed mission.

        A LOCKED dependent becomes AVAILABLE when every one of its
        prerequisites is COMPLETED. Unlocking does not complete anything, so
        the cascade stops there. Safe to call repeatedly; never credits rewards.

        Returns:
            Sorted IDs of missions unlocked by this call
        """
        self.graph.mission(mission_id)
        state = await self._load(user_id, mission_id)
        if state.status is not MissionStatus.COMPLETED:
            logger.debug(
                f"User {user_id} mission {mission_id} is {state.status.value}, nothing to unlock"
            )
            return []

        unlocked = []
        for dependent_id in sorted(self.graph.dependents_of(mission_id)):
            # Prerequisites are read only while the dependent's row lock is held.
            locked = await self.store.get_state(user_id, dependent_id, for_update=True)
            if locked is None:
                logger.warning(
                    f"User {user_id} has no state for mission {dependent_id}, skipping unlock"
                )
                continue
            if locked.status is not MissionStatus.LOCKED:
                continue
            if not await self._prerequisites_completed(user_id, dependent_id):
                continue

            locked.status = MissionStatus.AVAILABLE
            locked.updated_at = utcnow()
            await self.store.save_state(locked)

            dependent = self.graph.mission(dependent_id)
            await self.store.add_notification(
                user_id,
                NOTIFICATION_MISSION_AVAILABLE,
                "New mission available!",
                unlock_message(dependent),
                {"missionId": dependent.id, "missionName": dependent.name},
            )
            unlocked.append(dependent_id)

        if unlocked:
            logger.info(
                f"User {user_id} completing mission {mission_id} unlocked {unlocked}"
            )
        return unlocked

    async def check_promotion(self, user_id: int) -> Rank | None:
        """Promote the user one rank if they meet the next rank's requirements.

        Uses the campaign's own ladder when it has one, the global ladder
        otherwise. The user's row is locked so two completions cannot both
        promote.

        Returns:
            The new rank, or None if the user was not promoted
        """
        standing = await self.store.get_standing(user_id, for_update=True)
        if standing is None:
            logger.warning(f"User {user_id} not found, skipping rank check")
            return None

        campaign_id = self.graph.campaign_id
        ladder = ladder_for(await self.store.list_ranks(campaign_id), campaign_id)
        next_rank = find_rank(ladder, standing.current_rank + 1)
        if next_rank is None:
            return None

        check = check_rank(next_rank, standing, self.theme)
        if not check.eligible:
            logger.debug(
                f"User {user_id} not ready for rank {next_rank.level}: {check.missing}"
            )
            return None

        await self.store.promote(user_id, next_rank)
        await self.store.add_notification(
            user_id,
            NOTIFICATION_RANK_UP,
            f"New rank: {next_rank.name}",
            rank_up_message(next_rank, self.theme),
            {
                "rankId": next_rank.id,
                "rankLevel": next_rank.level,
                "rankName": next_rank.name,
                "rankTitle": next_rank.title,
                "currencyReward": next_rank.currency_reward,
            },
        )
        logger.info(f"User {user_id} promoted to rank {next_rank.level} ({next_rank.name})")
        return next_rank

    async def start(self, user_id: int, mission_id: int) -> TransitionResult:
        """Begin an AVAILABLE mission."""
        return await self.request_transition(
            user_id, mission_id, MissionStatus.IN_PROGRESS
        )

    async def submit(
        self,
        user_id: int,
        mission_id: int,
        submission: dict[str, Any] | None = None,
    ) -> TransitionResult:
        """Hand in a mission.

        An AVAILABLE mission is started first. AUTO missions complete right
        away, the others wait in PENDING_REVIEW.
        """
        mission = self.graph.mission(mission_id)
        state = await self._load(user_id, mission_id)
        if state.status is MissionStatus.AVAILABLE:
            await self.start(user_id, mission_id)

        target = (
            MissionStatus.PENDING_REVIEW
            if mission.confirmation_type.requires_review
            else MissionStatus.COMPLETED
        )
        return await self.request_transition(user_id, mission_id, target, submission)

    async def review(
        self,
        user_id: int,
        mission_id: int,
        approved: bool,
        comment: str | None = None,
    ) -> TransitionResult:
        """Approve (COMPLETED) or reject (back to AVAILABLE) a pending mission."""
        target = MissionStatus.COMPLETED if approved else MissionStatus.AVAILABLE
        submission = {"officerComment": comment} if comment else None
        return await self.request_transition(user_id, mission_id, target, submission)

    async def check_in(
        self,
        user_id: int,
        mission_id: int,
        qr_data: str | dict[str, Any],
        secret: str,
        default_max_age_seconds: int = DEFAULT_MAX_AGE_SECONDS,
        now_ms: int | None = None,
        checked_in_by: int | None = None,
    ) -> TransitionResult:
        """Complete an offline mission by scanning its signed QR code.

        The scan counts as the approval: the mission goes through
        IN_PROGRESS and PENDING_REVIEW to COMPLETED.

        Raises:
            QRVerificationError: If the mission is not a QR mission or the
                payload does not verify
        """
        mission = self.graph.mission(mission_id)
        if mission.confirmation_type is not ConfirmationType.QR_SCAN:
            raise QRVerificationError(f"Mission {mission_id} does not use QR check-in")

        payload = parse_qr_payload(qr_data)
        verify_qr_payload(
            payload,
            secret,
            expected_mission_id=mission_id,
            max_age_seconds=mission.check_in_window_seconds or default_max_age_seconds,
            now_ms=now_ms,
        )

        state = await self._load(user_id, mission_id)
        if state.status is MissionStatus.AVAILABLE:
            state = (await self.start(user_id, mission_id)).state
        if state.status is MissionStatus.IN_PROGRESS:
            attendance = {
                "type": "check-in",
                "attendedAt": utcnow().isoformat(),
                "checkedInBy": checked_in_by if checked_in_by is not None else user_id,
                "qrVerified": True,
            }
            await self.request_transition(
                user_id, mission_id, MissionStatus.PENDING_REVIEW, attendance
            )
        return await self.request_transition(user_id, mission_id, MissionStatus.COMPLETED)

    async def progress(self, user_id: int) -> ProgressSummary:
        """Summarize the user's progress through the campaign."""
        states = await self.store.get_states(user_id, self.graph.topological_order())
        by_status = Counter(state.status for state in states.values())
        completed = [
            self.graph.mission(mid)
            for mid, state in states.items()
            if state.status is MissionStatus.COMPLETED
        ]
        return ProgressSummary(
            total=len(self.graph),
            by_status=dict(by_status),
            experience_earned=sum(m.experience_reward for m in completed),
            currency_earned=sum(m.currency_reward for m in completed),
        )

    async def states(self, user_id: int) -> list[UserMissionState]:
        """The user's state records in topological order."""
        order = self.graph.topological_order()
        states = await self.store.get_states(user_id, order)
        return [states[mid] for mid in order if mid in states]

    async def _load(
        self, user_id: int, mission_id: int, for_update: bool = False
    ) -> UserMissionState:
        state = await self.store.get_state(user_id, mission_id, for_update=for_update)
        if state is None:
            raise NotFoundError(
                f"Mission {mission_id} is not initialized for user {user_id}"
            )
        return state

    async def _prerequisites_completed(self, user_id: int, mission_id: int) -> bool:
        prerequisites = self.graph.prerequisites_of(mission_id)
        if not prerequisites:
            return True
        states = await self.store.get_states(user_id, prerequisites)
        return all(
            p in states and states[p].status is MissionStatus.COMPLETED
            for p in prerequisites
        )

    async def _apply_rewards(
        self, state: UserMissionState, mission: MissionNode, now: datetime
    ) -> bool:
        """Credit mission rewards unless already credited for this user."""
        if state.rewarded_at is not None:
            logger.debug(
                f"Rewards for user {state.user_id} mission {mission.id} already credited"
            )
            return False

        await self.store.credit_rewards(state.user_id, mission)
        state.rewarded_at = now
        await self.store.add_notification(
            state.user_id,
            NOTIFICATION_MISSION_COMPLETED,
            "Mission completed!",
            completion_message(mission, self.theme),
            {
                "missionId": mission.id,
                "missionName": mission.name,
                "experienceReward": mission.experience_reward,
                "currencyReward": mission.currency_reward,
            },
        )
        logger.info(
            f"Credited user {state.user_id} {mission.experience_reward} XP and "
            f"{mission.currency_reward} currency for mission {mission.id}"
        )
        return True
