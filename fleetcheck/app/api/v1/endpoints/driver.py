"""
Driver API endpoints.

Drivers fetch today's checklist context and submit the filled-in checklist.
"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from fleetcheck.app.db.session import get_db
from fleetcheck.app.models.enums import UserRole
from fleetcheck.app.core.guards import require_role
from fleetcheck.app.core.dependencies import get_checklist_pipeline
from fleetcheck.app.schemas.assignment import AssignmentResponse
from fleetcheck.app.schemas.checklist import (
    DailyContextResponse,
    DailyTemplate,
    SubmissionListResponse,
    SubmissionResponse,
    SubmissionSummary,
    SubmitChecklistRequest,
    SubmitChecklistResponse,
)
from fleetcheck.app.services.checklist_pipeline import ChecklistPipeline, get_daily_context, list_submissions

router = APIRouter(prefix="/driver", tags=["Driver"])

driver_access = require_role([UserRole.DRIVER, UserRole.ADMIN])


@router.get("/daily", response_model=DailyContextResponse)
async def daily(
    current_user: dict = Depends(driver_access),
    db: AsyncSession = Depends(get_db)
):
    """
    Today's assignment, checklist template and metrics schema.

    ``assignment`` and ``template`` are null when the driver has no active
    assignment. Returns 409 when no active template is configured.
    """
    context = await get_daily_context(db, current_user["user_id"])

    return DailyContextResponse(
        assignment=AssignmentResponse.from_assignment(context.assignment) if context.assignment else None,
        template=DailyTemplate(
            id=context.template.id,
            name=context.template.name,
            items=context.template.items,
        ) if context.template else None,
        metrics_schema=context.metrics_schema,
        last_submission=SubmissionSummary.from_submission(context.last_submission)
        if context.last_submission else None,
    )


@router.post("/submit", response_model=SubmitChecklistResponse, status_code=status.HTTP_201_CREATED)
async def submit(
    payload: SubmitChecklistRequest,
    current_user: dict = Depends(driver_access),
    db: AsyncSession = Depends(get_db),
    pipeline: ChecklistPipeline = Depends(get_checklist_pipeline),
):
    """
    Submit today's checklist.

    The report is stored, rendered to PDF and, when configured, uploaded to
    the archive. Archive problems never fail the request; ``archive_file_id``
    is null in that case.
    """
    result = await pipeline.submit(
        db,
        user_id=current_user["user_id"],
        template_id=payload.template_id,
        answers=[answer.model_dump() for answer in payload.answers] if payload.answers is not None else None,
        date=payload.date,
        metrics=payload.metrics,
    )
    return SubmitChecklistResponse(submission_id=result.submission_id, archive_file_id=result.archive_file_id)


@router.get("/submissions", response_model=SubmissionListResponse)
async def my_submissions(
    limit: int = Query(30, ge=1, le=200),
    current_user: dict = Depends(driver_access),
    db: AsyncSession = Depends(get_db)
):
    """The caller's own past reports, newest first."""
    submissions = await list_submissions(db, user_id=current_user["user_id"], limit=limit)
    return SubmissionListResponse(
        submissions=[SubmissionResponse.from_submission(s) for s in submissions],
        total=len(submissions),
    )
