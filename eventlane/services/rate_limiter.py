"""Trailing-window rate limiting for the HTTP API."""

import hashlib
import ipaddress
import logging
import random
import time
from dataclasses import dataclass

from sqlalchemy import func
from sqlmodel import Session, select

from eventlane.models.state import RateLimitEntry

logger = logging.getLogger(__name__)

# Periods in seconds
PERIOD_MINUTE = 60
PERIOD_HOUR = 3600
PERIOD_DAY = 86400

DEFAULT_PUBLIC_LIMIT = 60  # per minute
DEFAULT_VENDOR_LIMIT = 1000  # per hour


@dataclass
class RateLimitResult:
    """Outcome of a rate limit check.

    Attributes:
        allowed: Whether the request may proceed
        remaining: Requests left in the current window
        reset: Unix timestamp of the next period boundary
    """

    allowed: bool
    remaining: int
    reset: int


class RateLimiterService:
    """Counts requests per identifier over the trailing [now - period, now] window.

    The count is not reset at period boundaries. `reset` reports the next
    multiple of period as a hint; requests made before it keep counting
    until they are a full period old.

    Only allowed requests are recorded. Old rows are deleted on a random
    subset of calls rather than on every call.
    """

    def __init__(self, session: Session, cleanup_probability: float = 0.1) -> None:
        self.session = session
        self.cleanup_probability = cleanup_probability

    def check_limit(
        self,
        identifier: str,
        limit: int,
        period: int = PERIOD_MINUTE,
        now: int | None = None,
    ) -> RateLimitResult:
        """Check and record one request.

        Args:
            identifier: Client IP (see client_identifier) or vendor token id
            limit: Maximum requests allowed per window
            period: Window length in seconds
            now: Unix timestamp of the request (defaults to current time)

        Returns:
            RateLimitResult; remaining already accounts for this request
        """
        now = int(time.time()) if now is None else now
        window_start = now - period

        self._maybe_cleanup(window_start)

        count = self.session.exec(
            select(func.count())
            .select_from(RateLimitEntry)
            .where(RateLimitEntry.identifier == identifier)
            .where(RateLimitEntry.timestamp >= window_start)
        ).one()

        allowed = count < limit
        if allowed:
            self.session.add(RateLimitEntry(identifier=identifier, timestamp=now))
            self.session.commit()
            count += 1

        remaining = max(0, limit - count)
        reset = (now // period + 1) * period

        if not allowed:
            logger.info(
                "Rate limit exceeded",
                extra={"identifier": identifier, "limit": limit, "period": period},
            )

        return RateLimitResult(allowed=allowed, remaining=remaining, reset=reset)

    def _maybe_cleanup(self, before_timestamp: int) -> None:
        if random.random() >= self.cleanup_probability:
            return

        stale = self.session.exec(
            select(RateLimitEntry).where(RateLimitEntry.timestamp < before_timestamp)
        ).all()
        for entry in stale:
            self.session.delete(entry)
        self.session.commit()


def client_identifier(ip: str) -> str:
    """Normalize a client IP into a rate limit identifier.

    IPv6 addresses are replaced by a short hash so full addresses are
    never stored.
    """
    try:
        address = ipaddress.ip_address(ip)
    except ValueError:
        return ip

    if address.version == 6:
        return "ipv6:" + hashlib.sha256(ip.encode("utf-8")).hexdigest()[:16]
    return ip
