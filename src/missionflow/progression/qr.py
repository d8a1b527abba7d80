"""Signed QR payloads for offline check-in missions.

An officer displays a QR code encoding a signed payload; scanning it proves
attendance. The signature is an HMAC-SHA256 over
``"{mission_id}:{event_id}:{timestamp_ms}"`` keyed with the server secret.
"""

import hashlib
import hmac
import json
import logging
import time
from dataclasses import dataclass
from typing import Any

from missionflow.progression.errors import QRVerificationError

logger = logging.getLogger(__name__)

DEFAULT_MAX_AGE_SECONDS = 24 * 60 * 60


@dataclass(frozen=True)
class QRPayload:
    """Decoded check-in payload."""

    mission_id: int
    timestamp_ms: int
    signature: str
    event_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Wire form (camelCase keys), as encoded in the QR image."""
        data: dict[str, Any] = {
            "missionId": self.mission_id,
            "timestamp": self.timestamp_ms,
            "signature": self.signature,
        }
        if self.event_id is not None:
            data["eventId"] = self.event_id
        return data

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), separators=(",", ":"))


def _now_ms() -> int:
    return int(time.time() * 1000)


def _signing_string(mission_id: int, event_id: str | None, timestamp_ms: int) -> str:
    return f"{mission_id}:{event_id or ''}:{timestamp_ms}"


def sign(mission_id: int, event_id: str | None, timestamp_ms: int, secret: str) -> str:
    """Compute the hex HMAC signature for a payload."""
    message = _signing_string(mission_id, event_id, timestamp_ms)
    return hmac.new(secret.encode(), message.encode(), hashlib.sha256).hexdigest()


def generate_qr_payload(
    mission_id: int,
    secret: str,
    event_id: str | None = None,
    now_ms: int | None = None,
) -> QRPayload:
    """Create a freshly signed payload for a mission."""
    timestamp_ms = _now_ms() if now_ms is None else now_ms
    return QRPayload(
        mission_id=mission_id,
        timestamp_ms=timestamp_ms,
        signature=sign(mission_id, event_id, timestamp_ms, secret),
        event_id=event_id,
    )


def parse_qr_payload(raw: str | dict[str, Any]) -> QRPayload:
    """Decode a scanned payload.

    Args:
        raw: JSON text from the QR code, or the already-decoded object

    Raises:
        QRVerificationError: If the payload is not valid JSON or misses fields
    """
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError as e:
            raise QRVerificationError("Invalid QR code format") from e

    if not isinstance(raw, dict):
        raise QRVerificationError("Invalid QR code format")

    try:
        mission_id = int(raw["missionId"])
        timestamp_ms = int(raw["timestamp"])
        signature = str(raw["signature"])
    except (KeyError, TypeError, ValueError) as e:
        raise QRVerificationError("Invalid QR code format") from e

    if not signature:
        raise QRVerificationError("Invalid QR code format")

    event_id = raw.get("eventId")
    return QRPayload(
        mission_id=mission_id,
        timestamp_ms=timestamp_ms,
        signature=signature,
        event_id=str(event_id) if event_id else None,
    )


def verify_qr_payload(
    payload: QRPayload,
    secret: str,
    expected_mission_id: int,
    max_age_seconds: int = DEFAULT_MAX_AGE_SECONDS,
    now_ms: int | None = None,
) -> None:
    """Check signature, freshness and target mission of a payload.

    Raises:
        QRVerificationError: With a message describing the first failed check
    """
    expected = sign(payload.mission_id, payload.event_id, payload.timestamp_ms, secret)
    if not hmac.compare_digest(expected, payload.signature):
        logger.warning(f"Rejected QR payload with bad signature for mission {payload.mission_id}")
        raise QRVerificationError("Invalid signature")

    age_ms = (_now_ms() if now_ms is None else now_ms) - payload.timestamp_ms
    if age_ms < 0:
        raise QRVerificationError("Invalid timestamp")
    if age_ms > max_age_seconds * 1000:
        raise QRVerificationError("QR code expired")

    if payload.mission_id != expected_mission_id:
        raise QRVerificationError("QR code is for a different mission")
