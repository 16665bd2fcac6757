"""Job payload definitions for the automation queues.

Every notification kind has its own payload model. The ``kind`` field is
the tag of the union; queue names and job models are resolved through the
registries below, which must cover every NotificationType.
"""

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter, ValidationError, model_validator

from eventlane.jobs.errors import MissingDataError
from eventlane.models.dispatch import NotificationType


class AutomationJob(BaseModel):
    """Fields shared by every automation job."""

    kind: str
    dispatch_id: int = Field(gt=0, description="Ledger record this job settles")

    model_config = {"extra": "ignore"}

    def to_payload(self) -> dict[str, Any]:
        """Convert to the JSON-safe dict stored on the queue."""
        return self.model_dump(mode="json", exclude_none=True)

    @property
    def notification_type(self) -> NotificationType:
        return NotificationType(self.kind)


class SalesOpenJob(AutomationJob):
    """Tell the event owner that ticket sales are open."""

    kind: Literal["sales_open"] = "sales_open"
    event_id: int = Field(gt=0)


class ReminderJob(AutomationJob):
    """Remind one attendee that an event starts soon."""

    kind: Literal["reminder_24h", "reminder_2h"]
    event_id: int = Field(gt=0)
    recipient_email: str = Field(min_length=1)


class WaitlistInviteJob(AutomationJob):
    """Invite one waitlisted attendee to claim a freed spot."""

    kind: Literal["waitlist_invite"] = "waitlist_invite"
    event_id: int = Field(gt=0)
    attendee_id: int = Field(gt=0)


class EventCancelledJob(AutomationJob):
    """Tell one attendee that an event was cancelled."""

    kind: Literal["event_cancelled"] = "event_cancelled"
    event_id: int = Field(gt=0)
    recipient_email: str = Field(min_length=1)
    cancel_reason: str | None = None


class ExportReadyJob(AutomationJob):
    """Tell the event owner that an attendee export can be downloaded."""

    kind: Literal["export_ready_csv", "export_ready_ics"]
    event_id: int = Field(gt=0)
    export_type: Literal["csv", "ics"]
    file_url: str = Field(min_length=1)

    @model_validator(mode="after")
    def _kind_matches_export_type(self) -> "ExportReadyJob":
        if self.kind != export_kind(self.export_type):
            raise ValueError(f"kind {self.kind} does not match export_type {self.export_type}")
        return self


class WeeklyDigestJob(AutomationJob):
    """Send one user the weekly digest of their followed categories."""

    kind: Literal["weekly_category_digest"] = "weekly_category_digest"
    user_id: int = Field(gt=0)


JobPayload = Annotated[
    Union[
        SalesOpenJob,
        ReminderJob,
        WaitlistInviteJob,
        EventCancelledJob,
        ExportReadyJob,
        WeeklyDigestJob,
    ],
    Field(discriminator="kind"),
]

_job_adapter: TypeAdapter[JobPayload] = TypeAdapter(JobPayload)


# -----------------------------------------------------------------------------
# Registries
# -----------------------------------------------------------------------------

JOB_MODELS: dict[NotificationType, type[AutomationJob]] = {
    NotificationType.SALES_OPEN: SalesOpenJob,
    NotificationType.REMINDER_24H: ReminderJob,
    NotificationType.REMINDER_2H: ReminderJob,
    NotificationType.WAITLIST_INVITE: WaitlistInviteJob,
    NotificationType.EVENT_CANCELLED: EventCancelledJob,
    NotificationType.EXPORT_READY_CSV: ExportReadyJob,
    NotificationType.EXPORT_READY_ICS: ExportReadyJob,
    NotificationType.WEEKLY_CATEGORY_DIGEST: WeeklyDigestJob,
}

QUEUE_NAMES: dict[NotificationType, str] = {
    NotificationType.SALES_OPEN: "automation_sales_open",
    NotificationType.REMINDER_24H: "automation_reminder_24h",
    NotificationType.REMINDER_2H: "automation_reminder_2h",
    NotificationType.WAITLIST_INVITE: "automation_waitlist_invite",
    NotificationType.EVENT_CANCELLED: "automation_event_cancelled",
    NotificationType.EXPORT_READY_CSV: "automation_export_ready",
    NotificationType.EXPORT_READY_ICS: "automation_export_ready",
    NotificationType.WEEKLY_CATEGORY_DIGEST: "automation_weekly_digest",
}


def job_model_for(kind: NotificationType) -> type[AutomationJob]:
    """Get the payload model for a notification kind."""
    return JOB_MODELS[kind]


def queue_for(kind: NotificationType) -> str:
    """Get the queue name jobs of this kind are pushed to."""
    return QUEUE_NAMES[kind]


def export_kind(export_type: str) -> NotificationType:
    """Map an export file type to its notification kind."""
    if export_type == "csv":
        return NotificationType.EXPORT_READY_CSV
    return NotificationType.EXPORT_READY_ICS


def parse_job(payload: dict[str, Any]) -> AutomationJob:
    """Validate a raw queue payload into its job model.

    Raises:
        MissingDataError: If the payload lacks required fields or its kind
            is unknown.
    """
    try:
        return _job_adapter.validate_python(payload)
    except ValidationError as e:
        missing = sorted({".".join(str(p) for p in err["loc"]) for err in e.errors()})
        raise MissingDataError(f"Invalid job payload: {', '.join(missing)}") from e
