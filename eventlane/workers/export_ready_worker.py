"""Export-ready worker: sends the owner the download link for an export."""

from datetime import datetime

from sqlmodel import Session

from eventlane.jobs.errors import EntityNotFoundError
from eventlane.jobs.types import ExportReadyJob
from eventlane.models.dispatch import NotificationType
from eventlane.models.user import User
from eventlane.services.dispatch import DispatchLedger, hash_recipient
from eventlane.workers.automation import AutomationWorker
from eventlane.workers.formatting import base_event_context


class ExportReadyWorker(AutomationWorker):
    """Consumes the shared export queue for both CSV and ICS exports."""

    notification_types = (NotificationType.EXPORT_READY_CSV, NotificationType.EXPORT_READY_ICS)
    job_model = ExportReadyJob

    def deliver(self, session: Session, job: ExportReadyJob, now: datetime) -> None:
        ledger = DispatchLedger(session)
        event = self.load_event(session, job.event_id)

        owner = session.get(User, event.owner_id)
        if owner is None or not owner.email:
            raise EntityNotFoundError("Vendor email not found")

        owner_hash = hash_recipient(owner.email)
        self.ensure_not_sent(ledger, event.id, job.notification_type, owner_hash)

        context = base_event_context(event)
        context["export_type"] = job.export_type.upper()
        context["download_url"] = job.file_url

        self.send(
            session,
            job,
            event.id,
            owner_hash,
            f"export_ready_{job.export_type}",
            owner.email,
            context,
            audit_metadata={"export_type": job.export_type, "file_url": job.file_url},
        )
