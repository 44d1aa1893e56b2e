"""
Checklist template and submission schemas.

Answer statuses are accepted loosely here and checked by the submission
pipeline, which reports which item is missing a valid status.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Annotated, Any, Dict, List, Optional

from fleetcheck.app.models.checklist import ChecklistSubmission
from fleetcheck.app.schemas.assignment import AssignmentResponse

MAX_LABEL_LENGTH = 200
MAX_NOTE_LENGTH = 2000

ItemLabel = Annotated[str, Field(max_length=MAX_LABEL_LENGTH)]


class TemplateCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    items: List[ItemLabel] = Field(..., min_length=1, description="Ordered item labels")


class TemplateUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    items: Optional[List[ItemLabel]] = Field(None, min_length=1)
    active: Optional[bool] = None


class TemplateResponse(BaseModel):
    id: int
    name: str
    items: List[str]
    active: bool
    created_at: datetime

    class Config:
        from_attributes = True


class TemplateListResponse(BaseModel):
    templates: List[TemplateResponse]
    total: int


class ChecklistAnswerIn(BaseModel):
    label: Optional[str] = Field(None, max_length=MAX_LABEL_LENGTH)
    status: Any = None  # ok | issue | na
    note: Optional[str] = Field(None, max_length=MAX_NOTE_LENGTH)


class SubmitChecklistRequest(BaseModel):
    template_id: Optional[int] = None
    date: Optional[str] = Field(None, description="YYYY-MM-DD, defaults to today")
    answers: Optional[List[ChecklistAnswerIn]] = None
    metrics: Optional[Dict[str, Any]] = None


class SubmitChecklistResponse(BaseModel):
    ok: bool = True
    submission_id: int
    archive_file_id: Optional[str] = None


class ChecklistAnswerOut(BaseModel):
    label: str
    status: str
    note: str = ""


class SubmissionSummary(BaseModel):
    id: int
    date: str
    registration: Optional[str] = None
    issue_count: int
    archive_file_id: Optional[str] = None
    created_at: datetime

    @classmethod
    def from_submission(cls, submission: ChecklistSubmission) -> "SubmissionSummary":
        return cls(
            id=submission.id,
            date=submission.date,
            registration=submission.vehicle.registration if submission.vehicle else None,
            issue_count=submission.issue_count,
            archive_file_id=submission.archive_file_id,
            created_at=submission.created_at,
        )


class SubmissionResponse(BaseModel):
    id: int
    user_id: int
    user_email: Optional[str] = None
    vehicle_id: int
    registration: Optional[str] = None
    trailer_id: Optional[int] = None
    trailer_number: Optional[str] = None
    template_id: int
    date: str
    answers: List[ChecklistAnswerOut]
    metrics: Dict[str, Any]
    metrics_schema_version: int
    archive_file_id: Optional[str] = None
    created_at: datetime

    @classmethod
    def from_submission(cls, submission: ChecklistSubmission) -> "SubmissionResponse":
        return cls(
            id=submission.id,
            user_id=submission.user_id,
            user_email=submission.user.email if submission.user else None,
            vehicle_id=submission.vehicle_id,
            registration=submission.vehicle.registration if submission.vehicle else None,
            trailer_id=submission.trailer_id,
            trailer_number=submission.trailer.number if submission.trailer else None,
            template_id=submission.template_id,
            date=submission.date,
            answers=submission.answers,
            metrics=submission.metrics or {},
            metrics_schema_version=submission.metrics_schema_version,
            archive_file_id=submission.archive_file_id,
            created_at=submission.created_at,
        )


class SubmissionListResponse(BaseModel):
    submissions: List[SubmissionResponse]
    total: int


class DailyTemplate(BaseModel):
    id: int
    name: str
    items: List[str]


class MetricFieldOut(BaseModel):
    key: str
    label: str
    type: str
    options: List[str] = []


class MetricsSchemaOut(BaseModel):
    version: int
    fields: List[MetricFieldOut]


class DailyContextResponse(BaseModel):
    assignment: Optional[AssignmentResponse] = None
    template: Optional[DailyTemplate] = None
    metrics_schema: MetricsSchemaOut
    last_submission: Optional[SubmissionSummary] = None
