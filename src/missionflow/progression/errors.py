"""Exceptions raised by the progression core."""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from missionflow.progression.models import MissionStatus


class ProgressionError(Exception):
    """Base class for progression failures."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(ProgressionError):
    """Raised when a mission graph is malformed.

    Attributes:
        cycle: Mission ids forming a dependency cycle, if that was the problem
    """

    def __init__(self, message: str, cycle: list[int] | None = None) -> None:
        super().__init__(message)
        self.cycle = cycle


class NotFoundError(ProgressionError):
    """Raised when a mission or user mission state does not exist."""


class InvalidTransitionError(ProgressionError):
    """Raised when a status change is not allowed by the state machine."""

    def __init__(
        self,
        current: "MissionStatus",
        target: "MissionStatus",
        reason: str | None = None,
    ) -> None:
        message = f"Cannot move mission from {current.value} to {target.value}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.current = current
        self.target = target


class QRVerificationError(ProgressionError):
    """Raised when a check-in QR payload is malformed, forged or expired."""
