import os
import logging
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from dotenv import load_dotenv

load_dotenv(dotenv_path=Path(__file__).parent / ".env", override=True)

logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO").upper())
logger = logging.getLogger(__name__)

app = FastAPI(title="Ops Portal API")

# --- Register portal routers ---
from opsportal.routers.auth import router as auth_router
from opsportal.routers.timesheets import router as timesheets_router
from opsportal.routers.projects import router as projects_router, allocations_router
from opsportal.routers.holidays import router as holidays_router
from opsportal.routers.helpdesk import router as helpdesk_router
from opsportal.routers.ticket_approvals import router as ticket_approvals_router
from opsportal.routers.super_admin import router as super_admin_router
from opsportal.routers.notifications import router as notifications_router
from opsportal.routers.preferences import router as preferences_router

app.include_router(auth_router)
app.include_router(timesheets_router)
app.include_router(projects_router)
app.include_router(allocations_router)
app.include_router(holidays_router)
app.include_router(helpdesk_router)
app.include_router(ticket_approvals_router)
app.include_router(super_admin_router)
app.include_router(notifications_router)
app.include_router(preferences_router)

CORS_ORIGINS = os.getenv("CORS_ORIGINS", "http://localhost:5173").split(",")

app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in CORS_ORIGINS],
    allow_methods=["*"],
    allow_headers=["*"],
)

logger.info("Ops Portal API ready, CORS origins: %s", CORS_ORIGINS)


@app.get("/health")
def health():
    return {"ok": True}
