# -*- coding: utf-8 -*-
"""
DiNutri API

Nutrition-practice backend: patients, meal-plan prescriptions, subscriptions,
patient diary and reports.
"""

from __future__ import annotations

import logging
import os
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import settings
from .app_db import init_app_db
from .auth.api import admin_router, router as auth_router
from .auth.security import authenticate_request
from .diary.api import food_router, mood_router
from .errors import AppError, register_error_handlers
from .invitations.api import register_router, router as invitations_router
from .patients.api import router as patients_router, self_router as patient_self_router
from .prescriptions.api import (
    patient_router as patient_prescriptions_router,
    router as prescriptions_router,
    self_router as patient_prescription_self_router,
)
from .reports.api import nutritionist_router as reports_router, prescription_router as prescription_pdf_router
from .subscriptions.api import (
    nutritionist_router as pending_subscriptions_router,
    patient_router as patient_subscription_router,
    router as subscriptions_router,
)

logging.basicConfig(
    level=getattr(logging, settings.log_level, logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="DiNutri",
    description="Gestão de pacientes, prescrições nutricionais e acompanhamento",
    version="1.0.0",
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_error_handlers(app)

# Ensure the app DB exists even when lifespan events are not triggered (e.g. some test clients).
init_app_db(settings.app_db_path)


_AUTH_EXEMPT_PREFIXES = (
    "/api/auth/login",
    "/api/auth/logout",
    "/api/invitations/validate",
    "/api/patient/register",
    "/api/docs",
    "/api/redoc",
    "/api/openapi.json",
)


@app.middleware("http")
async def _auth_gate(request: Request, call_next):
    path = request.url.path
    if path.startswith("/api") and path != "/api/health" and not any(path.startswith(p) for p in _AUTH_EXEMPT_PREFIXES):
        # Exception handlers do not cover middleware, so render errors here.
        try:
            request.state.user = authenticate_request(request)
        except AppError as exc:
            return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})
    return await call_next(request)


app.include_router(auth_router)
app.include_router(admin_router)
app.include_router(invitations_router)
app.include_router(register_router)
app.include_router(patients_router)
app.include_router(patient_self_router)
app.include_router(prescriptions_router)
app.include_router(patient_prescriptions_router)
app.include_router(patient_prescription_self_router)
app.include_router(prescription_pdf_router)
app.include_router(subscriptions_router)
app.include_router(patient_subscription_router)
app.include_router(pending_subscriptions_router)
app.include_router(mood_router)
app.include_router(food_router)
app.include_router(reports_router)


@app.get("/api/health")
def health_check():
    return {
        "status": "ok",
        "version": app.version,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


def run() -> None:
    """Console entry point (used by pyproject [project.scripts])."""
    import uvicorn

    host = os.environ.get("DINUTRI_HOST") or os.environ.get("HOST") or "127.0.0.1"
    port_raw = os.environ.get("DINUTRI_PORT") or os.environ.get("PORT") or "8000"
    try:
        port = int(port_raw)
    except ValueError:
        port = 8000

    uvicorn.run("dinutri.api:app", host=host, port=port, reload=False)
