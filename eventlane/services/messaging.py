"""Messaging collaborator.

Template rendering and SMTP live outside this service. Workers hand a
template name, a recipient and a context dict to a Messenger, which
either logs the message (development) or posts it to the messaging API.
Any exception raised by queue() counts as a delivery failure.
"""

import logging
from functools import lru_cache
from typing import Any, Protocol

import httpx

from eventlane.config import get_settings

logger = logging.getLogger(__name__)


class Messenger(Protocol):
    """Queues one templated message for delivery."""

    def queue(self, template: str, recipient: str, context: dict[str, Any]) -> None: ...


class LoggingMessenger:
    """Simulated delivery: logs the template and context keys, keeps nothing.

    The recipient address is not logged.
    """

    def queue(self, template: str, recipient: str, context: dict[str, Any]) -> None:
        logger.info(
            f"[SIMULATED] Queued message {template}",
            extra={"template": template, "context_keys": sorted(context)},
        )


class HttpMessenger:
    """Posts messages to the external messaging API."""

    def __init__(self, base_url: str, timeout: float = 10.0) -> None:
        self.url = f"{base_url.rstrip('/')}/messages"
        self.timeout = timeout
        self._client: httpx.Client | None = None

    @property
    def client(self) -> httpx.Client:
        """Lazy-initialize HTTP client."""
        if self._client is None:
            self._client = httpx.Client(timeout=self.timeout)
        return self._client

    def queue(self, template: str, recipient: str, context: dict[str, Any]) -> None:
        """Send the message to the messaging API.

        Raises:
            httpx.HTTPError: On connection problems or a non-2xx response
        """
        response = self.client.post(
            self.url,
            json={"template": template, "to": recipient, "context": context},
        )
        response.raise_for_status()
        logger.debug(
            f"Messaging API accepted {template}",
            extra={"template": template, "status_code": response.status_code},
        )

    def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            self._client.close()
            self._client = None


@lru_cache
def get_messenger() -> Messenger:
    """Get the configured messenger singleton.

    Falls back to LoggingMessenger when MESSAGING_API_URL is not set.
    """
    settings = get_settings()
    if settings.MESSAGING_API_URL:
        return HttpMessenger(settings.MESSAGING_API_URL, timeout=settings.MESSAGING_TIMEOUT_SECONDS)
    return LoggingMessenger()
