# backend/sardb/main.py
import os
from typing import List

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .apps.accounts.router_public import router as accounts_public_router
from .apps.activity.router import router as activity_router
from .apps.audit.router import router as audit_router
from .apps.members.router import router as members_router
from .apps.positions.router import (
    member_positions_router,
    router as positions_router,
    signoffs_router,
    tasks_router,
)
from .apps.qualifications.router import router as qualifications_router
from .apps.training.router import router as training_router


def _allowed_origins() -> List[str]:
    """
    Parse CORS_ALLOWED_ORIGINS from env.

    Accepts comma-separated origins. If unset, defaults to local dev ports.
    """
    raw = os.getenv("CORS_ALLOWED_ORIGINS", "")
    if raw:
        origins = [origin.strip() for origin in raw.split(",") if origin.strip()]
        if origins:
            return origins
    return [
        "http://127.0.0.1:3000",
        "http://localhost:3000",
        "http://localhost:5173",
    ]


app = FastAPI(title="SAR Roster API", version="1.0.0")
cors_origins = _allowed_origins()
allow_credentials = "*" not in cors_origins

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=allow_credentials,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/", tags=["health"])
def read_root():
    return {"status": "ok", "message": "SAR roster backend is running"}


@app.get("/health", tags=["health"])
def health():
    return {"status": "ok"}


app.include_router(accounts_public_router)
app.include_router(members_router)
app.include_router(training_router)
app.include_router(activity_router)
app.include_router(positions_router)
app.include_router(tasks_router)
app.include_router(member_positions_router)
app.include_router(signoffs_router)
app.include_router(qualifications_router)
app.include_router(audit_router)
