"""Signed, time-limited waitlist invite tokens."""

from datetime import datetime, timedelta

from jose import JWTError, jwt

from eventlane.config import get_settings

INVITE_PURPOSE = "waitlist_invite"


def create_invite_token(
    attendee_id: int,
    event_id: int,
    ttl_hours: int | None = None,
    now: datetime | None = None,
) -> tuple[str, datetime]:
    """
    Create an invite token for a waitlisted attendee.
    Returns (token, expires_at).
    """
    settings = get_settings()
    issued_at = now or datetime.utcnow()
    expires_at = issued_at + timedelta(hours=ttl_hours or settings.WAITLIST_INVITE_TTL_HOURS)
    payload = {
        "sub": str(attendee_id),
        "event_id": event_id,
        "purpose": INVITE_PURPOSE,
        "exp": expires_at,
        "iat": issued_at,
    }
    token = jwt.encode(payload, settings.AUTOMATION_API_SECRET, algorithm=settings.JWT_ALGORITHM)
    return token, expires_at


def verify_invite_token(token: str, event_id: int | None = None) -> int | None:
    """
    Verify an invite token.
    Returns the attendee id, or None if the token is invalid, expired or
    was issued for a different event.
    """
    settings = get_settings()
    try:
        payload = jwt.decode(token, settings.AUTOMATION_API_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        return None

    if payload.get("purpose") != INVITE_PURPOSE:
        return None
    if event_id is not None and payload.get("event_id") != event_id:
        return None

    try:
        return int(payload["sub"])
    except (KeyError, TypeError, ValueError):
        return None
