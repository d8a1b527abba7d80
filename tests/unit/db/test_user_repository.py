"""Tests for UserRepository."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from missionflow.db.repositories.users import UserRepository


class TestUserRepository:
    """Tests for user lookups and notifications."""

    @pytest.mark.asyncio
    async def test_exists(self) -> None:
        """Test exists returns True when a row is found."""
        mock_result = MagicMock()
        mock_result.scalar_one_or_none.return_value = 1

        session = AsyncMock()
        session.execute.return_value = mock_result

        repo = UserRepository(session)

        assert await repo.exists(1) is True

    @pytest.mark.asyncio
    async def test_not_exists(self) -> None:
        """Test exists returns False when no row is found."""
        mock_result = MagicMock()
        mock_result.scalar_one_or_none.return_value = None

        session = AsyncMock()
        session.execute.return_value = mock_result

        repo = UserRepository(session)

        assert await repo.exists(1) is False

    @pytest.mark.asyncio
    async def test_count_unread_notifications(self) -> None:
        """Test the unread count is returned."""
        mock_result = MagicMock()
        mock_result.scalar_one.return_value = 4

        session = AsyncMock()
        session.execute.return_value = mock_result

        repo = UserRepository(session)

        assert await repo.count_unread_notifications(1) == 4

    @pytest.mark.asyncio
    async def test_list_notifications(self) -> None:
        """Test notifications come back newest first, limited."""
        notifications = [MagicMock(), MagicMock()]
        mock_result = MagicMock()
        mock_result.scalars.return_value.all.return_value = notifications

        session = AsyncMock()
        session.execute.return_value = mock_result

        repo = UserRepository(session)
        result = await repo.list_notifications(1, limit=2)

        assert result == notifications
        sql = str(session.execute.call_args[0][0])
        assert "ORDER BY user_notifications.created_at DESC" in sql
        assert "LIMIT" in sql
        assert "is_read" not in sql.split("WHERE")[1]

    @pytest.mark.asyncio
    async def test_list_unread_notifications(self) -> None:
        """Test unread_only filters out read notifications."""
        mock_result = MagicMock()
        mock_result.scalars.return_value.all.return_value = []

        session = AsyncMock()
        session.execute.return_value = mock_result

        repo = UserRepository(session)
        await repo.list_notifications(1, unread_only=True)

        sql = str(session.execute.call_args[0][0])
        assert "user_notifications.is_read" in sql.split("WHERE")[1]

    @pytest.mark.asyncio
    async def test_mark_notifications_read_returns_rowcount(self) -> None:
        """Test the number of updated rows is returned."""
        mock_result = MagicMock()
        mock_result.rowcount = 3

        session = AsyncMock()
        session.execute.return_value = mock_result

        repo = UserRepository(session)

        assert await repo.mark_notifications_read(1) == 3
        sql = str(session.execute.call_args[0][0])
        assert sql.startswith("UPDATE user_notifications")
        assert " IN " not in sql
        session.flush.assert_called_once()

    @pytest.mark.asyncio
    async def test_mark_selected_notifications_read(self) -> None:
        """Test only the given IDs are targeted."""
        mock_result = MagicMock()
        mock_result.rowcount = 1

        session = AsyncMock()
        session.execute.return_value = mock_result

        repo = UserRepository(session)

        assert await repo.mark_notifications_read(1, [7, 8]) == 1
        sql = str(session.execute.call_args[0][0])
        assert "user_notifications.id IN" in sql
