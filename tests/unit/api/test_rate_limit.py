"""Tests for rate limiting dependencies."""

from unittest.mock import MagicMock, patch

import pytest

from missionflow.api.rate_limit import CHECK_IN_LIMIT, create_rate_limit_dependency


class TestRateLimitDependency:
    """Tests for create_rate_limit_dependency."""

    @pytest.mark.asyncio
    async def test_disabled_skips_limiter(self) -> None:
        """Test nothing is checked when rate limiting is off."""
        settings = MagicMock()
        settings.rate_limiting_enabled = False
        dependency = create_rate_limit_dependency(CHECK_IN_LIMIT)

        with (
            patch("missionflow.api.rate_limit.get_settings", return_value=settings),
            patch("missionflow.api.rate_limit.limiter") as limiter,
        ):
            await dependency(MagicMock(), MagicMock())

        limiter.limit.assert_not_called()

    @pytest.mark.asyncio
    async def test_enabled_applies_limit(self) -> None:
        """Test the configured limit string is used when enabled."""
        settings = MagicMock()
        settings.rate_limiting_enabled = True
        dependency = create_rate_limit_dependency("3/minute")

        with (
            patch("missionflow.api.rate_limit.get_settings", return_value=settings),
            patch("missionflow.api.rate_limit.limiter") as limiter,
        ):
            limiter.limit.return_value = lambda func: func
            await dependency(MagicMock(), MagicMock())

        limiter.limit.assert_called_once_with("3/minute")
