"""User repository for database operations."""

import logging

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from missionflow.db.models import User, UserNotification

logger = logging.getLogger(__name__)


class UserRepository:
    """Repository for user lookups and notifications."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize the repository.

        Args:
            session: The database session to use
        """
        self.session = session

    async def exists(self, user_id: int) -> bool:
        """Check if a user exists."""
        result = await self.session.execute(select(User.id).where(User.id == user_id))
        return result.scalar_one_or_none() is not None

    async def list_notifications(
        self, user_id: int, unread_only: bool = False, limit: int = 20
    ) -> list[UserNotification]:
        """Get the user's newest notifications.

        Args:
            user_id: The user ID
            unread_only: Skip notifications already read
            limit: Maximum number returned

        Returns:
            Notifications, newest first
        """
        stmt = select(UserNotification).where(UserNotification.user_id == user_id)
        if unread_only:
            stmt = stmt.where(UserNotification.is_read.is_(False))
        stmt = stmt.order_by(
            UserNotification.created_at.desc(), UserNotification.id.desc()
        ).limit(limit)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def count_unread_notifications(self, user_id: int) -> int:
        """Count the user's unread notifications."""
        result = await self.session.execute(
            select(func.count(UserNotification.id)).where(
                UserNotification.user_id == user_id,
                UserNotification.is_read.is_(False),
            )
        )
        return result.scalar_one()

    async def mark_notifications_read(
        self, user_id: int, notification_ids: list[int] | None = None
    ) -> int:
        """Mark notifications as read.

        Only the user's own notifications are touched, so IDs belonging to
        someone else are ignored.

        Args:
            user_id: The user ID
            notification_ids: Notifications to mark, or None for all unread

        Returns:
            Number of notifications updated
        """
        stmt = update(UserNotification).where(
            UserNotification.user_id == user_id,
            UserNotification.is_read.is_(False),
        )
        if notification_ids is not None:
            stmt = stmt.where(UserNotification.id.in_(notification_ids))
        result = await self.session.execute(stmt.values(is_read=True))
        await self.session.flush()

        logger.debug(f"Marked {result.rowcount} notifications read for user {user_id}")
        return result.rowcount
