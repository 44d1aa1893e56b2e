"""
Checklist submission pipeline.

Turns a driver's answers into a stored report:

    validated -> persisted -> documented -> (archived | archive-skipped)

Validation failures write nothing. The submission row is committed before
the document is rendered, so a render failure surfaces to the caller while
the structured data survives and can be re-rendered later. Archiving is
best-effort: failures are logged and audited, never raised.
"""

import asyncio
import logging
import re
from dataclasses import dataclass
from datetime import date as calendar_date
from typing import Any, Dict, List, Mapping, Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import joinedload

from fleetcheck.app.core.config import settings
from fleetcheck.app.core.exceptions import (
    DocumentRenderError,
    FailedPreconditionError,
    ResourceNotFoundError,
    ValidationFailedError,
)
from fleetcheck.app.core.reliability import run_with_timeout
from fleetcheck.app.models.assignment import Assignment
from fleetcheck.app.models.checklist import ChecklistSubmission, ChecklistTemplate
from fleetcheck.app.models.enums import ChecklistItemStatus
from fleetcheck.app.models.vehicle import Vehicle
from fleetcheck.app.services.archive import ArchiveUploader, ensure_vehicle_folder
from fleetcheck.app.services.assignments import get_active_assignment_for_driver
from fleetcheck.app.services.audit import log_event, AuditAction
from fleetcheck.app.services.document_renderer import (
    ChecklistReport,
    DocumentRenderer,
    ReportItem,
    PDF_MIME_TYPE,
)
from fleetcheck.app.services.metrics_schema import (
    METRICS_SCHEMA_VERSION,
    metrics_schema_payload,
    sanitize_metrics,
)
from fleetcheck.app.services.templates import get_current_template

logger = logging.getLogger(__name__)

VALID_STATUSES = {status.value for status in ChecklistItemStatus}
_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")


@dataclass
class DailyContext:
    assignment: Optional[Assignment]
    template: Optional[ChecklistTemplate]
    metrics_schema: Dict[str, Any]
    last_submission: Optional[ChecklistSubmission]


@dataclass
class SubmissionResult:
    submission_id: int
    archive_file_id: Optional[str]


async def get_last_submission(db: AsyncSession, user_id: int) -> Optional[ChecklistSubmission]:
    result = await db.execute(
        select(ChecklistSubmission)
        .options(joinedload(ChecklistSubmission.vehicle))
        .where(ChecklistSubmission.user_id == user_id)
        .order_by(ChecklistSubmission.created_at.desc(), ChecklistSubmission.id.desc())
        .limit(1)
    )
    return result.scalars().first()


async def get_daily_context(db: AsyncSession, user_id: int) -> DailyContext:
    """
    Everything a driver needs to fill in today's checklist.

    Without an active assignment the template is omitted and the driver
    cannot proceed; the metrics schema is always returned.

    Raises:
        FailedPreconditionError: the driver is assigned but no template is active
    """
    assignment = await get_active_assignment_for_driver(db, user_id)
    last_submission = await get_last_submission(db, user_id)

    if assignment is None:
        return DailyContext(None, None, metrics_schema_payload(), last_submission)

    template = await get_current_template(db)
    if template is None:
        raise FailedPreconditionError("No active checklist template is configured")

    return DailyContext(assignment, template, metrics_schema_payload(), last_submission)


async def list_submissions(
    db: AsyncSession,
    user_id: Optional[int] = None,
    vehicle_id: Optional[int] = None,
    limit: int = 100,
) -> list[ChecklistSubmission]:
    query = (
        select(ChecklistSubmission)
        .options(
            joinedload(ChecklistSubmission.user),
            joinedload(ChecklistSubmission.vehicle),
            joinedload(ChecklistSubmission.trailer),
        )
        .order_by(ChecklistSubmission.created_at.desc(), ChecklistSubmission.id.desc())
        .limit(limit)
    )
    if user_id is not None:
        query = query.where(ChecklistSubmission.user_id == user_id)
    if vehicle_id is not None:
        query = query.where(ChecklistSubmission.vehicle_id == vehicle_id)
    result = await db.execute(query)
    return list(result.scalars().all())


def resolve_date(value: Optional[str]) -> str:
    """Today's date when ``value`` is blank, otherwise ``value`` checked as YYYY-MM-DD."""
    if value is None or not str(value).strip():
        return calendar_date.today().isoformat()
    text = str(value).strip()
    try:
        if not _DATE_PATTERN.match(text):
            raise ValueError(text)
        return calendar_date.fromisoformat(text).isoformat()
    except ValueError:
        raise ValidationFailedError("date must be a calendar date in YYYY-MM-DD format", field="date")


def freeze_answers(answers: Sequence[Any], template_items: Sequence[str]) -> List[Dict[str, str]]:
    """
    Check answers against the template items, position by position.

    Returns the answers to store, each with its label of record.
    """
    if len(answers) != len(template_items):
        raise ValidationFailedError(
            f"Expected {len(template_items)} answers for this template, got {len(answers)}",
            field="answers",
            details={"expected": len(template_items), "received": len(answers)},
        )

    frozen = []
    for index, (answer, template_label) in enumerate(zip(answers, template_items)):
        answer = answer if isinstance(answer, Mapping) else {}
        status = answer.get("status")
        if isinstance(status, str):
            status = status.strip().lower()
        if status not in VALID_STATUSES:
            raise ValidationFailedError(
                "every item must have a status",
                field=f"answers[{index}].status",
                details={"allowed": sorted(VALID_STATUSES)},
            )

        label = answer.get("label")
        label = str(label).strip() if label is not None else ""
        note = answer.get("note")
        frozen.append({
            "label": label or template_label,
            "status": status,
            "note": str(note).strip() if note is not None else "",
        })
    return frozen


def report_filename(registration: str, date: str, submission_id: int) -> str:
    return re.sub(r"\s+", "_", f"checklist_{registration}_{date}_{submission_id}.pdf")


def build_report(submission: ChecklistSubmission, driver_email: str, vehicle: Vehicle,
                 trailer_number: Optional[str], template_name: str) -> ChecklistReport:
    return ChecklistReport(
        submission_id=submission.id,
        driver_email=driver_email,
        date=submission.date,
        vehicle_registration=vehicle.registration,
        vehicle_model=vehicle.model,
        trailer_number=trailer_number,
        template_name=template_name,
        items=[ReportItem(a["label"], a["status"], a.get("note") or "") for a in submission.answers],
        metrics=dict(submission.metrics or {}),
        submitted_at=submission.created_at.strftime("%Y-%m-%d %H:%M") if submission.created_at else None,
    )


class ChecklistPipeline:
    """
    Submission pipeline bound to its external collaborators.

    ``uploader`` may be None, in which case archiving is skipped.
    """

    def __init__(
        self,
        renderer: DocumentRenderer,
        uploader: Optional[ArchiveUploader] = None,
        render_timeout: Optional[float] = None,
        archive_timeout: Optional[float] = None,
    ):
        self.renderer = renderer
        self.uploader = uploader
        self.render_timeout = render_timeout or settings.render_timeout_seconds
        self.archive_timeout = archive_timeout or settings.archive_timeout_seconds

    async def submit(
        self,
        db: AsyncSession,
        user_id: int,
        template_id: Optional[int],
        answers: Optional[Sequence[Any]],
        date: Optional[str] = None,
        metrics: Optional[Mapping[str, Any]] = None,
    ) -> SubmissionResult:
        """
        Validate, store, render and archive a daily checklist.

        Raises:
            ValidationFailedError: malformed answers, wrong answer count, bad date
            ResourceNotFoundError: unknown template
            FailedPreconditionError: the driver has no active assignment
            DocumentRenderError: stored, but the document could not be produced
        """
        # validated
        if not isinstance(answers, (list, tuple)) or not answers:
            raise ValidationFailedError("answers must be a non-empty list", field="answers")
        if template_id is None:
            raise ValidationFailedError("template_id is required", field="template_id")
        template = await db.get(ChecklistTemplate, template_id)
        if template is None:
            raise ResourceNotFoundError("Checklist template", template_id)

        assignment = await get_active_assignment_for_driver(db, user_id)
        if assignment is None:
            raise FailedPreconditionError("No active assignment; a checklist cannot be submitted")

        frozen_answers = freeze_answers(answers, template.items)
        clean_metrics = sanitize_metrics(metrics)
        report_date = resolve_date(date)

        # persisted
        submission = ChecklistSubmission(
            user_id=user_id,
            vehicle_id=assignment.vehicle_id,
            trailer_id=assignment.trailer_id,
            template_id=template.id,
            date=report_date,
            answers=frozen_answers,
            metrics=clean_metrics,
            metrics_schema_version=METRICS_SCHEMA_VERSION,
        )
        db.add(submission)
        await db.commit()
        await db.refresh(submission)

        vehicle = assignment.vehicle
        trailer_number = assignment.trailer.number if assignment.trailer else None
        driver_email = assignment.user.email
        logger.info(
            f"Checklist submission {submission.id} stored (driver={user_id}, vehicle={vehicle.registration}, "
            f"date={report_date}, issues={submission.issue_count})"
        )
        await log_event(
            db=db,
            action=AuditAction.CHECKLIST_SUBMITTED,
            actor_id=user_id,
            actor_email=driver_email,
            target_type="checklist_submission",
            target_id=submission.id,
            metadata={"vehicle_id": vehicle.id, "date": report_date, "issues": submission.issue_count},
        )

        # documented
        report = build_report(submission, driver_email, vehicle, trailer_number, template.name)
        document = await self._render(report)

        # archived | archive-skipped
        archive_file_id = await self._archive(db, submission, vehicle, document)
        return SubmissionResult(submission_id=submission.id, archive_file_id=archive_file_id)

    async def render_document(self, db: AsyncSession, submission_id: int) -> tuple[ChecklistSubmission, bytes]:
        """Re-render the document of a stored submission from its frozen data."""
        result = await db.execute(
            select(ChecklistSubmission)
            .options(
                joinedload(ChecklistSubmission.user),
                joinedload(ChecklistSubmission.vehicle),
                joinedload(ChecklistSubmission.trailer),
                joinedload(ChecklistSubmission.template),
            )
            .where(ChecklistSubmission.id == submission_id)
        )
        submission = result.scalar_one_or_none()
        if submission is None:
            raise ResourceNotFoundError("Checklist submission", submission_id)

        report = build_report(
            submission,
            submission.user.email,
            submission.vehicle,
            submission.trailer.number if submission.trailer else None,
            submission.template.name,
        )
        return submission, await self._render(report)

    async def _render(self, report: ChecklistReport) -> bytes:
        try:
            return await run_with_timeout(
                asyncio.to_thread(self.renderer.render, report),
                self.render_timeout,
                "Document rendering",
            )
        except Exception as exc:
            logger.error(f"Rendering report for submission {report.submission_id} failed: {exc}", exc_info=True)
            raise DocumentRenderError(report.submission_id, str(exc)) from exc

    async def _archive(
        self,
        db: AsyncSession,
        submission: ChecklistSubmission,
        vehicle: Vehicle,
        document: bytes,
    ) -> Optional[str]:
        if self.uploader is None:
            logger.info(f"Archive not configured, skipping upload of submission {submission.id}")
            return None

        filename = report_filename(vehicle.registration, submission.date, submission.id)
        try:
            folder_id = await ensure_vehicle_folder(db, vehicle, self.uploader, self.archive_timeout)
            file_id = await run_with_timeout(
                self.uploader.upload(folder_id, filename, document, PDF_MIME_TYPE),
                self.archive_timeout,
                "Archive upload",
            )
        except SQLAlchemyError:
            raise
        except Exception as exc:
            logger.warning(f"Archive upload of submission {submission.id} ({filename}) failed: {exc}")
            await log_event(
                db=db,
                action=AuditAction.ARCHIVE_UPLOAD_FAILED,
                target_type="checklist_submission",
                target_id=submission.id,
                metadata={"vehicle_id": vehicle.id, "filename": filename, "error": str(exc)},
            )
            return None

        submission.archive_file_id = file_id
        await db.commit()
        logger.info(f"Submission {submission.id} archived as {file_id}")
        return file_id
