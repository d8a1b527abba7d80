"""Rate limiting for check-in endpoints.

Uses SlowAPI to slow down guessing of QR payloads on the check-in endpoint.
"""

from collections.abc import Callable

from fastapi import Request, Response
from slowapi import Limiter
from slowapi.util import get_remote_address

from missionflow.settings import get_settings

limiter = Limiter(key_func=get_remote_address)

CHECK_IN_LIMIT = "10/minute"
QR_CODE_LIMIT = "30/minute"


def create_rate_limit_dependency(limit_string: str) -> Callable:
    """Build a per-IP limit for one endpoint.

    Args:
        limit_string: SlowAPI limit such as "10/minute"

    Returns:
        Dependency to list in the route's ``dependencies``
    """

    async def rate_limit_dependency(request: Request, response: Response) -> None:
        if not get_settings().rate_limiting_enabled:
            return

        @limiter.limit(limit_string)
        async def _check_limit(request: Request, response: Response) -> None:
            pass

        await _check_limit(request, response)

    return rate_limit_dependency


check_in_rate_limit = create_rate_limit_dependency(CHECK_IN_LIMIT)
qr_code_rate_limit = create_rate_limit_dependency(QR_CODE_LIMIT)
