"""API dependencies for dependency injection."""

from collections.abc import Generator
from typing import Annotated

from fastapi import Depends, HTTPException, Request, Response, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from sqlmodel import Session

from eventlane.config import get_settings
from eventlane.db.session import get_session
from eventlane.services.auth import decode_operator_token
from eventlane.services.rate_limiter import PERIOD_MINUTE, RateLimiterService, client_identifier

settings = get_settings()
security = HTTPBearer()


def get_db_session() -> Generator[Session, None, None]:
    """Get database session dependency."""
    yield from get_session()


DBSession = Annotated[Session, Depends(get_db_session)]


def get_current_operator(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(security)],
) -> str:
    """Get the authenticated operator from the JWT bearer token."""
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid or expired token",
        headers={"WWW-Authenticate": "Bearer"},
    )

    try:
        return decode_operator_token(credentials.credentials)
    except JWTError:
        raise credentials_exception


CurrentOperator = Annotated[str, Depends(get_current_operator)]


def enforce_rate_limit(request: Request, response: Response, session: DBSession) -> None:
    """Apply the per-client fixed-window limit and expose it in headers."""
    ip = request.client.host if request.client else "unknown"
    limiter = RateLimiterService(session, cleanup_probability=settings.RATE_LIMIT_CLEANUP_PROBABILITY)
    limit = settings.RATE_LIMIT_PUBLIC_PER_MINUTE
    result = limiter.check_limit(client_identifier(ip), limit, PERIOD_MINUTE)

    headers = {
        "X-RateLimit-Limit": str(limit),
        "X-RateLimit-Remaining": str(result.remaining),
        "X-RateLimit-Reset": str(result.reset),
    }
    if not result.allowed:
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Rate limit exceeded",
            headers=headers,
        )
    for name, value in headers.items():
        response.headers[name] = value


RateLimited = Depends(enforce_rate_limit)
