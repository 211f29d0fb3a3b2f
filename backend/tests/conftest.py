import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["AUTH_MODE"] = "demo"

from datetime import date

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from opsportal.database import Base, get_db
from opsportal.models import (  # noqa: F401  registers every table on Base.metadata
    audit_log, category, helpdesk, holiday, notification, preference, project, timesheet, user,
)
from main import app

test_engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)

# Monday; every test works in this past week
WEEK = date(2026, 10, 5)


# SQLite stores an all-digit UUID string in a UUID column as an integer, so
# every id used here carries a hex letter
ORG = "0a0b0c0d-0000-4000-8000-00000000000a"
OTHER_ORG = "0f0e0d0c-0000-4000-8000-00000000000b"


def headers(employee_id: str, role: str, user_id: str, org_id: str = ORG) -> dict:
    return {"X-Employee-Id": employee_id, "X-User-Role": role, "X-User-Id": user_id, "X-Org-Id": org_id}


EMP = headers("EMP1", "employee", "e0000000-0000-4000-8000-00000000000a")
EMP2 = headers("EMP2", "employee", "e0000000-0000-4000-8000-00000000000b")
MGR = headers("MGR1", "manager", "a0000000-0000-4000-8000-00000000000c")
IT_ADMIN = headers("ITA1", "it_admin", "b0000000-0000-4000-8000-00000000000d")
SUPER = headers("SUP1", "super_admin", "c0000000-0000-4000-8000-00000000000e")


@pytest.fixture
def db():
    Base.metadata.create_all(test_engine)
    session = TestingSession()
    yield session
    session.close()
    Base.metadata.drop_all(test_engine)


@pytest.fixture
def client(db):
    def _get_db():
        s = TestingSession()
        try:
            yield s
        finally:
            s.close()

    app.dependency_overrides[get_db] = _get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def project(client):
    """Project P1 managed by MGR1, ending on the Thursday of WEEK."""
    r = client.post("/api/v1/projects/", headers=MGR, json={
        "project_id": "P1",
        "project_code": "PRJ-1",
        "project_name": "Portal",
        "project_end_date": "2026-10-08",
        "manager_employee_id": "MGR1",
        "manager_name": "Mona",
    })
    assert r.status_code == 201, r.text
    return r.json()


def week_body(rows: list, employee_id: str = "EMP1", week_start: date = WEEK) -> dict:
    return {
        "employee_id": employee_id,
        "employee_name": "Asha",
        "week_start_date": week_start.isoformat(),
        "rows": rows,
    }


def row(hours: list, project_id: str = "P1", uda_id: str = "U1", **extra) -> dict:
    padded = list(hours) + [None] * (7 - len(hours))
    return {
        "project_id": project_id,
        "project_name": "Portal",
        "uda_id": uda_id,
        "uda_name": extra.pop("uda_name", "Development"),
        "hours": padded,
        **extra,
    }
