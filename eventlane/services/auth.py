"""Operator authentication: JWT generation and verification for the automation API."""

from datetime import datetime, timedelta

from jose import JWTError, jwt

from eventlane.config import get_settings

settings = get_settings()

OPERATOR_SCOPE = "automation"


def generate_operator_token(subject: str, expires_hours: int | None = None) -> tuple[str, datetime]:
    """
    Generate a JWT for an operator or a cron client.
    Returns (token, expires_at).
    """
    expires_at = datetime.utcnow() + timedelta(hours=expires_hours or settings.JWT_EXPIRATION_HOURS)
    payload = {
        "sub": subject,
        "scope": OPERATOR_SCOPE,
        "exp": expires_at,
        "iat": datetime.utcnow(),
    }
    token = jwt.encode(payload, settings.AUTOMATION_API_SECRET, algorithm=settings.JWT_ALGORITHM)
    return token, expires_at


def decode_operator_token(token: str) -> str:
    """
    Verify an operator token and return its subject.
    Raises JWTError if the token is invalid, expired or lacks the operator scope.
    """
    payload = jwt.decode(token, settings.AUTOMATION_API_SECRET, algorithms=[settings.JWT_ALGORITHM])
    subject = payload.get("sub")
    if not subject or payload.get("scope") != OPERATOR_SCOPE:
        raise JWTError("Token is not an operator token")
    return subject
