"""
Admin API endpoints.

Admins register users, vehicles and trailers, manage assignments and
checklist templates, and review submitted reports.
"""

import logging
from typing import Optional
from fastapi import APIRouter, Depends, Path, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from fleetcheck.app.db.session import get_db
from fleetcheck.app.models.enums import UserRole
from fleetcheck.app.core.guards import require_admin
from fleetcheck.app.core.dependencies import get_checklist_pipeline
from fleetcheck.app.schemas.assignment import (
    AssignmentCreate,
    AssignmentUpdate,
    AssignmentResponse,
    AssignmentListResponse,
)
from fleetcheck.app.schemas.checklist import (
    TemplateCreate,
    TemplateUpdate,
    TemplateResponse,
    TemplateListResponse,
    SubmissionResponse,
    SubmissionListResponse,
)
from fleetcheck.app.schemas.fleet import (
    UserCreate,
    UserResponse,
    UserListResponse,
    VehicleCreate,
    VehicleResponse,
    VehicleListResponse,
    TrailerCreate,
    TrailerResponse,
    TrailerListResponse,
)
from fleetcheck.app.services import assignments as assignment_service
from fleetcheck.app.services import fleet as fleet_service
from fleetcheck.app.services import templates as template_service
from fleetcheck.app.services import users as user_service
from fleetcheck.app.services.archive import ArchiveUploader, get_archive_uploader, prepare_vehicle_folder
from fleetcheck.app.services.audit import log_event, AuditAction
from fleetcheck.app.services.checklist_pipeline import ChecklistPipeline, list_submissions, report_filename
from fleetcheck.app.services.document_renderer import PDF_MIME_TYPE

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["Admin"])


# ── Users ────────────────────────────────────────────────────────────────────

@router.post("/users", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(
    user_data: UserCreate,
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Create a driver (default) or admin account."""
    user = await user_service.create_user(db, user_data.email, user_data.password, user_data.role)
    await log_event(
        db=db,
        action=AuditAction.USER_CREATED,
        actor_id=admin["user_id"],
        actor_email=admin["sub"],
        target_type="user",
        target_id=user.id,
        metadata={"role": user.role.value},
    )
    return UserResponse.model_validate(user)


@router.get("/users", response_model=UserListResponse)
async def list_users(
    role: Optional[UserRole] = Query(None, description="Filter by role"),
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    users = await user_service.list_users(db, role)
    return UserListResponse(users=[UserResponse.model_validate(u) for u in users], total=len(users))


# ── Vehicles & trailers ──────────────────────────────────────────────────────

@router.post("/vehicles", response_model=VehicleResponse, status_code=status.HTTP_201_CREATED)
async def create_vehicle(
    vehicle_data: VehicleCreate,
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    uploader: Optional[ArchiveUploader] = Depends(get_archive_uploader),
):
    """
    Register a vehicle.

    When archiving is configured the vehicle's archive folder is created
    right away; if that fails it is retried on the first report upload.
    """
    vehicle = await fleet_service.create_vehicle(db, vehicle_data.registration, vehicle_data.model)
    await prepare_vehicle_folder(db, vehicle, uploader)
    await log_event(
        db=db,
        action=AuditAction.VEHICLE_CREATED,
        actor_id=admin["user_id"],
        actor_email=admin["sub"],
        target_type="vehicle",
        target_id=vehicle.id,
        metadata={"registration": vehicle.registration},
    )
    return VehicleResponse.model_validate(vehicle)


@router.get("/vehicles", response_model=VehicleListResponse)
async def list_vehicles(
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    vehicles = await fleet_service.list_vehicles(db)
    return VehicleListResponse(vehicles=[VehicleResponse.model_validate(v) for v in vehicles], total=len(vehicles))


@router.post("/trailers", response_model=TrailerResponse, status_code=status.HTTP_201_CREATED)
async def create_trailer(
    trailer_data: TrailerCreate,
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    trailer = await fleet_service.create_trailer(db, trailer_data.number)
    await log_event(
        db=db,
        action=AuditAction.TRAILER_CREATED,
        actor_id=admin["user_id"],
        actor_email=admin["sub"],
        target_type="trailer",
        target_id=trailer.id,
        metadata={"number": trailer.number},
    )
    return TrailerResponse.model_validate(trailer)


@router.get("/trailers", response_model=TrailerListResponse)
async def list_trailers(
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    trailers = await fleet_service.list_trailers(db)
    return TrailerListResponse(trailers=[TrailerResponse.model_validate(t) for t in trailers], total=len(trailers))


# ── Assignments ──────────────────────────────────────────────────────────────

@router.post("/assignments", response_model=AssignmentResponse, status_code=status.HTTP_201_CREATED)
async def create_assignment(
    assignment_data: AssignmentCreate,
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    Assign a driver to a vehicle and optionally a trailer.

    An active assignment supersedes any other active assignment of the same
    driver, vehicle or trailer.
    """
    assignment = await assignment_service.create_assignment(
        db,
        user_id=assignment_data.user_id,
        vehicle_id=assignment_data.vehicle_id,
        trailer_id=assignment_data.trailer_id,
        active=assignment_data.active,
    )
    await log_event(
        db=db,
        action=AuditAction.ASSIGNMENT_CREATED,
        actor_id=admin["user_id"],
        actor_email=admin["sub"],
        target_type="assignment",
        target_id=assignment.id,
        metadata={
            "user_id": assignment.user_id,
            "vehicle_id": assignment.vehicle_id,
            "trailer_id": assignment.trailer_id,
            "active": assignment.active,
        },
    )
    return AssignmentResponse.from_assignment(assignment)


@router.get("/assignments", response_model=AssignmentListResponse)
async def list_assignments(
    active_only: bool = Query(False),
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    rows = await assignment_service.list_assignments(db, active_only=active_only)
    return AssignmentListResponse(
        assignments=[AssignmentResponse.from_assignment(a) for a in rows],
        total=len(rows),
    )


@router.patch("/assignments/{assignment_id}", response_model=AssignmentResponse)
async def update_assignment(
    assignment_id: int = Path(..., description="Assignment ID"),
    update: AssignmentUpdate = ...,
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Deactivate (active=false) or reactivate (active=true) an assignment."""
    assignment = await assignment_service.set_assignment_active(db, assignment_id, update.active)
    await log_event(
        db=db,
        action=AuditAction.ASSIGNMENT_ACTIVATED if update.active else AuditAction.ASSIGNMENT_DEACTIVATED,
        actor_id=admin["user_id"],
        actor_email=admin["sub"],
        target_type="assignment",
        target_id=assignment.id,
    )
    return AssignmentResponse.from_assignment(assignment)


# ── Checklist templates ──────────────────────────────────────────────────────

@router.post("/checklist-templates", response_model=TemplateResponse, status_code=status.HTTP_201_CREATED)
async def create_template(
    template_data: TemplateCreate,
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Create a template; the newest active template is the one drivers fill in."""
    template = await template_service.create_template(db, template_data.name, template_data.items)
    await log_event(
        db=db,
        action=AuditAction.TEMPLATE_CREATED,
        actor_id=admin["user_id"],
        actor_email=admin["sub"],
        target_type="checklist_template",
        target_id=template.id,
    )
    return TemplateResponse.model_validate(template)


@router.get("/checklist-templates", response_model=TemplateListResponse)
async def list_templates(
    include_inactive: bool = Query(False),
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    templates = await template_service.list_templates(db, active_only=not include_inactive)
    return TemplateListResponse(
        templates=[TemplateResponse.model_validate(t) for t in templates],
        total=len(templates),
    )


@router.patch("/checklist-templates/{template_id}", response_model=TemplateResponse)
async def update_template(
    template_id: int = Path(..., description="Template ID"),
    update: TemplateUpdate = ...,
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Edit a template. Reports already submitted keep their own labels."""
    template = await template_service.update_template(
        db, template_id, name=update.name, items=update.items, active=update.active
    )
    await log_event(
        db=db,
        action=AuditAction.TEMPLATE_UPDATED,
        actor_id=admin["user_id"],
        actor_email=admin["sub"],
        target_type="checklist_template",
        target_id=template.id,
        metadata=update.model_dump(exclude_none=True),
    )
    return TemplateResponse.model_validate(template)


# ── Submissions ──────────────────────────────────────────────────────────────

@router.get("/submissions", response_model=SubmissionListResponse)
async def list_all_submissions(
    user_id: Optional[int] = Query(None),
    vehicle_id: Optional[int] = Query(None),
    limit: int = Query(100, ge=1, le=500),
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    submissions = await list_submissions(db, user_id=user_id, vehicle_id=vehicle_id, limit=limit)
    return SubmissionListResponse(
        submissions=[SubmissionResponse.from_submission(s) for s in submissions],
        total=len(submissions),
    )


@router.get("/submissions/{submission_id}/document")
async def download_submission_document(
    submission_id: int = Path(..., description="Submission ID"),
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    pipeline: ChecklistPipeline = Depends(get_checklist_pipeline),
):
    """Re-render a stored report as PDF."""
    submission, document = await pipeline.render_document(db, submission_id)
    filename = report_filename(submission.vehicle.registration, submission.date, submission.id)
    return Response(
        content=document,
        media_type=PDF_MIME_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
