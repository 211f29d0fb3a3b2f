from pydantic import BaseModel, Field
from typing import Literal, Optional
from datetime import date, datetime
from uuid import UUID

Urgency = Literal["Critical", "High", "Medium", "Low"]
TicketView = Literal["unassigned", "assigned", "all", "closed"]


class TicketCreate(BaseModel):
    module: str = "IT"
    sub_category: Optional[str] = None
    subject: str = Field(..., min_length=1, max_length=500)
    description: Optional[str] = None
    urgency: Urgency = "Medium"
    user_name: Optional[str] = None
    user_email: Optional[str] = None


class TicketOut(BaseModel):
    id: UUID
    ticket_number: str
    module: Optional[str] = None
    high_level_category: str
    sub_category: Optional[str] = None
    subject: str
    description: Optional[str] = None
    urgency: str
    user_id: str
    user_name: str
    user_email: Optional[str] = None
    status: str
    requires_approval: bool
    approval_completed: bool
    routed_to: Optional[str] = None
    current_approval_level: Optional[str] = None
    approval_status: Optional[str] = None
    approver_history: list = []
    assignment: Optional[dict] = None
    history: list = []
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class TicketViewParams(BaseModel):
    view: TicketView = "unassigned"
    search: str = ""
    statuses: list[str] = []
    types: list[str] = []
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    age: Literal["all", "under-24h", "1-3days", "over-3days", "under-1week", "over-1week"] = "all"
    sort: str = ""
    direction: Literal["asc", "desc"] = "asc"


class TicketStats(BaseModel):
    total: int
    unassigned: int
    assigned: int
    in_progress: int
    reopened: int
    closed: int


class TicketFilterOptions(BaseModel):
    statuses: list[str]
    types: list[str]


class AssignRequest(BaseModel):
    employee_id: str
    employee_name: str
    assigned_by_name: Optional[str] = None
    notes: Optional[str] = None


class ReassignRequest(BaseModel):
    new_employee_id: str
    new_employee_name: str
    reassigned_by_name: Optional[str] = None
    reason: str = ""


class SpecialistOut(BaseModel):
    id: UUID
    employee_id: str
    name: str
    email: Optional[str] = None
    specializations: list = []
    active_ticket_count: int
    is_active: bool

    model_config = {"from_attributes": True}


class ApprovalDecision(BaseModel):
    status: Literal["Approved", "Rejected"]
    comments: Optional[str] = None
    approver_name: Optional[str] = None


class ApproverTicketOut(TicketOut):
    can_approve: bool = False
    can_reject: bool = False
    view_only: bool = True
    is_historical: bool = False


class ApprovalHistoryOut(BaseModel):
    approver_history: list = []
    current_approval_level: Optional[str] = None
    approval_status: Optional[str] = None
    requires_approval: bool

    model_config = {"from_attributes": True}
