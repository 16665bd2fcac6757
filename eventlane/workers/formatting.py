"""Helpers for building message contexts."""

from datetime import datetime

from eventlane.config import get_settings
from eventlane.models.event import Event


def format_date(moment: datetime) -> str:
    """e.g. "October 19, 2026"."""
    return f"{moment:%B} {moment.day}, {moment.year}"


def format_time(moment: datetime) -> str:
    """e.g. "9:00am UTC". Times are stored as naive UTC."""
    hour = moment.hour % 12 or 12
    meridiem = "am" if moment.hour < 12 else "pm"
    return f"{hour}:{moment:%M}{meridiem} UTC"


def format_datetime(moment: datetime) -> str:
    """e.g. "October 19, 2026 9:00am UTC"."""
    return f"{format_date(moment)} {format_time(moment)}"


def event_url(event: Event) -> str:
    """Absolute public URL of an event."""
    return f"{get_settings().SITE_BASE_URL}/events/{event.id}"


def base_event_context(event: Event) -> dict[str, str]:
    """Context keys every event notification carries."""
    context = {
        "event_title": event.title,
        "event_url": event_url(event),
    }
    if event.event_start is not None:
        context["event_start"] = format_datetime(event.event_start)
    return context
