"""Automation operator API endpoints."""

from typing import Any

from fastapi import APIRouter, HTTPException, Query, status
from sqlmodel import Session

from eventlane.api.deps import CurrentOperator, DBSession, RateLimited
from eventlane.models.attendee import (
    Attendee,
    AttendeeResponse,
    AttendeeStatus,
    PromotionResponse,
    WaitlistResponse,
)
from eventlane.models.audit_log import AuditLogListResponse, AuditLogResponse
from eventlane.models.dispatch import DispatchListResponse, DispatchResponse, NotificationType
from eventlane.models.event import (
    CancelEventRequest,
    Event,
    ExportNotificationRequest,
    TriggerResponse,
)
from eventlane.services.attendance import AttendanceManager, WaitlistManager
from eventlane.services.audit import AutomationAuditLogger
from eventlane.services.dispatch import DispatchLedger
from eventlane.services.event_state import CLOSED_STATES, EventStateResolver
from eventlane.services.invite_tokens import verify_invite_token
from eventlane.services.scheduler import AutomationScheduler
from eventlane.services.triggers import NotificationTriggers

router = APIRouter(prefix="/api/automation", tags=["Automation"], dependencies=[RateLimited])


def _get_event_or_404(session: Session, event_id: int) -> Event:
    event = session.get(Event, event_id)
    if event is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Event not found",
        )
    return event


@router.get("/dispatches", response_model=DispatchListResponse)
def list_dispatches_endpoint(
    session: DBSession,
    operator: CurrentOperator,
    notification_type: NotificationType = Query(description="Notification kind"),
    event_id: int | None = Query(default=None, description="Event ID (omit for account-wide)"),
) -> DispatchListResponse:
    """List ledger records for an event (or account-wide) and kind, newest first."""
    dispatches = DispatchLedger(session).get_dispatches(event_id, notification_type)
    return DispatchListResponse(
        dispatches=[DispatchResponse.model_validate(d) for d in dispatches],
        total=len(dispatches),
    )


@router.get("/audit", response_model=AuditLogListResponse)
def list_audit_endpoint(
    session: DBSession,
    operator: CurrentOperator,
    event_id: int | None = Query(default=None, description="Event ID (omit for all)"),
    limit: int = Query(default=100, ge=1, le=500),
) -> AuditLogListResponse:
    """List recent automation audit entries, newest first."""
    entries = AutomationAuditLogger(session).get_entries(event_id, limit)
    return AuditLogListResponse(
        entries=[AuditLogResponse.model_validate(e) for e in entries],
        total=len(entries),
    )


@router.post("/scan")
def run_scan_endpoint(session: DBSession, operator: CurrentOperator) -> dict[str, Any]:
    """Run the scanner once and return its report."""
    report = AutomationScheduler(session).scan()
    return report.to_dict()


@router.post(
    "/events/{event_id}/exports",
    response_model=TriggerResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
def queue_export_endpoint(
    session: DBSession,
    operator: CurrentOperator,
    event_id: int,
    request: ExportNotificationRequest,
) -> TriggerResponse:
    """Queue the export-ready notification for the event owner."""
    event = _get_event_or_404(session, event_id)
    queued = NotificationTriggers(session).queue_export_notification(
        event, request.export_type, request.file_url
    )
    return TriggerResponse(event_id=event_id, queued=1 if queued else 0)


@router.post(
    "/events/{event_id}/cancel",
    response_model=TriggerResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
def cancel_event_endpoint(
    session: DBSession,
    operator: CurrentOperator,
    event_id: int,
    request: CancelEventRequest,
) -> TriggerResponse:
    """Cancel the event and notify its attendees."""
    event = _get_event_or_404(session, event_id)
    queued = NotificationTriggers(session).notify_event_cancelled(event, request.reason)
    return TriggerResponse(event_id=event_id, queued=queued)


@router.post(
    "/events/{event_id}/waitlist/invites",
    response_model=TriggerResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
def invite_waitlist_endpoint(
    session: DBSession,
    operator: CurrentOperator,
    event_id: int,
    spots: int = Query(default=1, ge=1, le=100, description="Spots that became available"),
) -> TriggerResponse:
    """Queue invites for the first waitlisted attendees."""
    event = _get_event_or_404(session, event_id)
    queued = NotificationTriggers(session).queue_waitlist_invites(event, spots)
    return TriggerResponse(event_id=event_id, queued=queued)


@router.get("/events/{event_id}/waitlist", response_model=WaitlistResponse)
def get_waitlist_endpoint(
    session: DBSession,
    operator: CurrentOperator,
    event_id: int,
) -> WaitlistResponse:
    """Get the event's waitlist in promotion order."""
    _get_event_or_404(session, event_id)
    waitlist = WaitlistManager(session).get_waitlist(event_id)
    return WaitlistResponse(
        event_id=event_id,
        attendees=[AttendeeResponse.model_validate(a) for a in waitlist],
        total=len(waitlist),
    )


@router.get("/events/{event_id}/waitlist/analytics")
def get_waitlist_analytics_endpoint(
    session: DBSession,
    operator: CurrentOperator,
    event_id: int,
) -> dict[str, Any]:
    """Get conversion and wait-time statistics for the event's waitlist."""
    _get_event_or_404(session, event_id)
    return WaitlistManager(session).get_waitlist_analytics(event_id).to_dict()


@router.post("/events/{event_id}/waitlist/promote", response_model=PromotionResponse)
def promote_waitlist_endpoint(
    session: DBSession,
    operator: CurrentOperator,
    event_id: int,
    spots: int = Query(default=1, ge=1, le=100, description="Spots to fill"),
) -> PromotionResponse:
    """Confirm up to `spots` waitlisted attendees, earliest first."""
    _get_event_or_404(session, event_id)
    promoted = WaitlistManager(session).promote_multiple(event_id, spots)
    session.commit()
    return PromotionResponse(
        event_id=event_id,
        promoted=[AttendeeResponse.model_validate(a) for a in promoted],
        total=len(promoted),
    )


@router.post("/events/{event_id}/waitlist/claim/{token}", response_model=AttendeeResponse)
def claim_waitlist_invite_endpoint(
    session: DBSession,
    event_id: int,
    token: str,
) -> AttendeeResponse:
    """Claim a waitlist spot with the signed token from an invite email.

    The token is the credential; no operator token is needed.
    """
    event = _get_event_or_404(session, event_id)

    attendee_id = verify_invite_token(token, event_id)
    if attendee_id is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid or expired invite",
        )

    attendee = session.get(Attendee, attendee_id)
    if attendee is None or attendee.event_id != event_id:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Attendee not found",
        )
    if attendee.status != AttendeeStatus.WAITLIST:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Attendee is not on the waitlist",
        )
    if EventStateResolver(session).resolve_state(event) in CLOSED_STATES:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Event is closed",
        )

    AttendanceManager(session).promote_attendee(attendee)
    session.commit()
    session.refresh(attendee)
    return AttendeeResponse.model_validate(attendee)
