"""
REST client for the timesheet, allocation and holiday endpoints.

The workspaces only know the TimesheetGateway protocol; HttpTimesheetGateway
speaks it over httpx. Any httpx.Client works, including FastAPI's TestClient.
"""

import logging
import os
from datetime import date
from typing import Any, Iterable, Optional, Protocol
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from opsportal.schemas.timesheet import (
    ApproveCell,
    DayApprovalResponse,
    ReminderRequest,
    RevertItem,
    TimesheetWeek,
    WeekSaveResponse,
)

logger = logging.getLogger(__name__)

PORTAL_API_URL = os.getenv("PORTAL_API_URL", "http://localhost:8000").strip().rstrip("/")
PORTAL_HTTP_TIMEOUT = float(os.getenv("PORTAL_HTTP_TIMEOUT", "30"))

TIMESHEET_PATH = "/api/v1/timesheet-entries"


class GatewayError(Exception):
    """A backend call failed. `message` is safe to show to the user."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class TimesheetGateway(Protocol):
    def get_week(self, employee_id: str, week_start: date) -> Optional[TimesheetWeek]: ...

    def save_draft(self, week: TimesheetWeek) -> WeekSaveResponse: ...

    def submit(self, week: TimesheetWeek) -> WeekSaveResponse: ...

    def delete_row(self, employee_id: str, week_start: date, project_id: str, uda_id: str) -> int: ...

    def get_approver_timesheet(
        self, manager_id: str, project_id: str, employee_id: str, week_start: date,
    ) -> Optional[TimesheetWeek]: ...

    def approve_week(self, manager_id: str, project_id: str, employee_id: str, week_start: date) -> int: ...

    def bulk_approve_days(
        self, manager_id: str, project_id: str, employee_id: str, week_start: date, day_indices: list[int],
        cells: Optional[list[ApproveCell]] = None,
    ) -> DayApprovalResponse: ...

    def request_revision(
        self, manager_id: str, project_id: str, employee_id: str, week_start: date, reverts: list[RevertItem],
    ) -> int: ...

    def send_reminder(self, reminder: ReminderRequest) -> dict: ...

    def allocations(self, employee_id: str) -> list[dict]: ...

    def holidays(self, start: date, end: date) -> list[date]: ...

    def projects(self) -> list[dict]: ...


def _segment(value: str) -> str:
    return quote(str(value), safe="")


def error_message(response: httpx.Response, fallback: str) -> str:
    """Pull a readable message out of an error response."""
    try:
        body = response.json()
    except ValueError:
        return fallback
    if not isinstance(body, dict):
        return fallback

    detail = body.get("detail") or body.get("message")
    if isinstance(detail, str) and detail.strip():
        return detail
    # FastAPI request validation: [{"loc": [...], "msg": "..."}]
    if isinstance(detail, list) and detail and isinstance(detail[0], dict):
        return str(detail[0].get("msg") or fallback)
    return fallback


class HttpTimesheetGateway:
    def __init__(
        self,
        client: Optional[httpx.Client] = None,
        base_url: str = PORTAL_API_URL,
        token: Optional[str] = None,
        headers: Optional[dict] = None,
        timeout: float = PORTAL_HTTP_TIMEOUT,
    ):
        self._owns_client = client is None
        self.client = client or httpx.Client(base_url=base_url, timeout=timeout)
        self.headers = dict(headers or {})
        if token:
            self.headers["Authorization"] = f"Bearer {token}"

    def close(self) -> None:
        if self._owns_client:
            self.client.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    # ── transport ──

    def _request(self, method: str, path: str, fallback: str, **kwargs) -> Any:
        try:
            r = self.client.request(method, path, headers=self.headers, **kwargs)
        except httpx.HTTPError as e:
            logger.error("%s %s failed: %s", method, path, e)
            raise GatewayError(fallback) from e

        if r.status_code >= 400:
            message = error_message(r, fallback)
            logger.warning("%s %s -> %s: %s", method, path, r.status_code, message)
            raise GatewayError(message, r.status_code)

        if not r.content:
            return None
        try:
            return r.json()
        except ValueError as e:
            raise GatewayError(fallback, r.status_code) from e

    @staticmethod
    def _week_or_none(data: Any, fallback: str) -> Optional[TimesheetWeek]:
        if data is None:
            return None
        try:
            return TimesheetWeek.model_validate(data)
        except ValidationError as e:
            logger.error("Unexpected timesheet payload: %s", e)
            raise GatewayError(fallback) from e

    @staticmethod
    def _scope(manager_id: str, project_id: str, employee_id: str, week_start: date) -> dict:
        return {
            "manager_id": manager_id,
            "project_id": project_id,
            "employee_id": employee_id,
            "week_start_date": week_start.isoformat(),
        }

    # ── employee ──

    def get_week(self, employee_id: str, week_start: date) -> Optional[TimesheetWeek]:
        data = self._request(
            "GET", f"{TIMESHEET_PATH}/week/{_segment(employee_id)}/{week_start.isoformat()}",
            "Failed to load timesheet",
        )
        return self._week_or_none(data, "Failed to load timesheet")

    def save_draft(self, week: TimesheetWeek) -> WeekSaveResponse:
        data = self._request("POST", f"{TIMESHEET_PATH}/draft", "Failed to save draft",
                             json=week.model_dump(mode="json"))
        return WeekSaveResponse.model_validate(data)

    def submit(self, week: TimesheetWeek) -> WeekSaveResponse:
        data = self._request("POST", f"{TIMESHEET_PATH}/submit", "Failed to submit timesheet",
                             json=week.model_dump(mode="json"))
        return WeekSaveResponse.model_validate(data)

    def delete_row(self, employee_id: str, week_start: date, project_id: str, uda_id: str) -> int:
        path = "/".join([
            f"{TIMESHEET_PATH}/row", _segment(employee_id), week_start.isoformat(),
            _segment(project_id), _segment(uda_id),
        ])
        data = self._request("DELETE", path, "Failed to delete row")
        return int((data or {}).get("deleted_count", 0))

    # ── manager ──

    def get_approver_timesheet(
        self, manager_id: str, project_id: str, employee_id: str, week_start: date,
    ) -> Optional[TimesheetWeek]:
        data = self._request(
            "GET", f"{TIMESHEET_PATH}/approvals", "Failed to load approvals",
            params=self._scope(manager_id, project_id, employee_id, week_start),
        )
        return self._week_or_none(data, "Failed to load approvals")

    def approve_week(self, manager_id: str, project_id: str, employee_id: str, week_start: date) -> int:
        data = self._request(
            "PUT", f"{TIMESHEET_PATH}/approvals/approve-week", "Failed to approve week",
            json=self._scope(manager_id, project_id, employee_id, week_start),
        )
        return int(data["updated_count"])

    def bulk_approve_days(
        self, manager_id: str, project_id: str, employee_id: str, week_start: date, day_indices: list[int],
        cells: Optional[list[ApproveCell]] = None,
    ) -> DayApprovalResponse:
        body = self._scope(manager_id, project_id, employee_id, week_start)
        body["day_indices"] = list(day_indices)
        body["cells"] = [c.model_dump() for c in cells or []]
        data = self._request("PUT", f"{TIMESHEET_PATH}/approvals/bulk-approve-days",
                             "Failed to approve selected days", json=body)
        return DayApprovalResponse.model_validate(data)

    def request_revision(
        self, manager_id: str, project_id: str, employee_id: str, week_start: date, reverts: Iterable[RevertItem],
    ) -> int:
        body = self._scope(manager_id, project_id, employee_id, week_start)
        body["reverts"] = [r.model_dump() for r in reverts]
        data = self._request("PUT", f"{TIMESHEET_PATH}/approvals/revision-request",
                             "Failed to request revision", json=body)
        return int(data["updated_count"])

    def send_reminder(self, reminder: ReminderRequest) -> dict:
        return self._request("POST", f"{TIMESHEET_PATH}/send-reminder", "Failed to send reminder",
                             json=reminder.model_dump(mode="json"))

    # ── reference data ──

    def allocations(self, employee_id: str) -> list[dict]:
        return self._request("GET", f"/api/v1/allocations/employee/{_segment(employee_id)}",
                             "Failed to load allocations") or []

    def holidays(self, start: date, end: date) -> list[date]:
        data = self._request("GET", "/api/v1/holidays/", "Failed to load holidays",
                             params={"start": start.isoformat(), "end": end.isoformat()}) or []
        return [date.fromisoformat(h["day"]) for h in data]

    def projects(self) -> list[dict]:
        return self._request("GET", "/api/v1/projects/", "Failed to load projects") or []
