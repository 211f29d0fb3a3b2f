from pydantic import BaseModel, Field, field_validator
from typing import Literal, Optional
from datetime import date, datetime
from uuid import UUID

DAYS_IN_WEEK = 7

ApprovalStatus = Literal["pending", "approved", "rejected", "revision_requested"]
WeekStatus = Literal["draft", "submitted", "approved", "rejected"]


def _seven(value, name: str) -> list:
    if value is None:
        return [None] * DAYS_IN_WEEK
    value = list(value)
    if len(value) != DAYS_IN_WEEK:
        raise ValueError(f"{name} must have exactly {DAYS_IN_WEEK} items (Monday..Sunday)")
    return value


# --- Week grid ---

class EntryMeta(BaseModel):
    approval_status: ApprovalStatus = "pending"
    rejected_reason: Optional[str] = None
    date: Optional[str] = None  # ISO day, kept as text like the stored grid
    entry_id: Optional[UUID] = None


class TimesheetRow(BaseModel):
    """One project/category line of a week. Index 0 of every list is Monday."""

    project_id: str = "N/A"
    project_code: str = ""
    project_name: str = ""
    uda_id: str
    uda_name: str
    type: str = "General"
    financial_line_item: str = ""
    billable: str = "Billable"  # Billable / Non-Billable / Other
    hours: list[Optional[str]] = Field(default_factory=lambda: [None] * DAYS_IN_WEEK)
    comments: list[Optional[str]] = Field(default_factory=lambda: [None] * DAYS_IN_WEEK)
    entry_meta: list[Optional[EntryMeta]] = Field(default_factory=lambda: [None] * DAYS_IN_WEEK)

    model_config = {"validate_assignment": True}

    @field_validator("hours", "comments", "entry_meta", mode="before")
    @classmethod
    def _week_aligned(cls, value, info):
        return _seven(value, info.field_name)

    @property
    def key(self) -> str:
        return f"{self.project_id}|{self.uda_id}"


class TimesheetWeek(BaseModel):
    employee_id: str
    employee_name: str
    week_start_date: date
    week_end_date: Optional[date] = None
    rows: list[TimesheetRow] = []
    status: Optional[WeekStatus] = None
    total_hours: float = 0
    submitted_at: Optional[datetime] = None

    @field_validator("week_start_date")
    @classmethod
    def _monday(cls, value: date) -> date:
        if value.weekday() != 0:
            raise ValueError("week_start_date must be a Monday")
        return value


class WeekSaveResponse(BaseModel):
    employee_id: str
    week_start_date: date
    status: WeekStatus
    total_hours: float
    entries_written: int
    message: str = ""


class DeleteRowResponse(BaseModel):
    message: str
    deleted_count: int


# --- Approvals ---

class ApproveWeekRequest(BaseModel):
    manager_id: str
    project_id: str
    employee_id: str
    week_start_date: date


class ApproveCell(BaseModel):
    day_index: int = Field(..., ge=0, le=DAYS_IN_WEEK - 1)
    uda_id: str
    project_id: Optional[str] = None  # None matches the uda on any project in scope


class BulkApproveDaysRequest(ApproveWeekRequest):
    day_indices: list[int] = Field(..., min_length=1)
    # when given, only these cells of the selected days are approved
    cells: list[ApproveCell] = []

    @field_validator("day_indices")
    @classmethod
    def _in_week(cls, value: list[int]) -> list[int]:
        if any(i < 0 or i >= DAYS_IN_WEEK for i in value):
            raise ValueError("day_indices must be between 0 and 6")
        return sorted(set(value))


class RevertItem(BaseModel):
    day_index: int = Field(..., ge=0, le=DAYS_IN_WEEK - 1)
    uda_id: str
    reason: str = Field(..., min_length=1)


class RevisionRequest(ApproveWeekRequest):
    reverts: list[RevertItem] = Field(..., min_length=1)


class UpdatedCountResponse(BaseModel):
    updated_count: int


class DayApprovalResponse(UpdatedCountResponse):
    day_indices: list[int] = []  # days on which at least one cell was approved


class ReminderRequest(BaseModel):
    employee_id: str
    employee_name: Optional[str] = None
    manager_id: str
    manager_name: Optional[str] = None
    project_id: Optional[str] = None
    project_name: Optional[str] = None
    week_start_date: date
    week_end_date: Optional[date] = None


class TimesheetEntryResponse(BaseModel):
    id: UUID
    employee_id: str
    employee_name: str
    date: date
    project_id: str
    project_name: str
    uda_id: str
    uda_name: str
    billable: str
    hours: str
    comment: Optional[str] = None
    status: str
    approval_status: str
    approved_by: Optional[str] = None
    approved_at: Optional[datetime] = None
    rejected_reason: Optional[str] = None
    submitted_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class WeeklySummary(BaseModel):
    week_start_date: date
    total_hours: float
    by_day: dict[str, float]
    statuses: dict[str, int]
    entries: int
