# -*- coding: utf-8 -*-
"""Report endpoints: prescription PDF and the nutritionist access-log spreadsheet."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import Response, StreamingResponse

from .. import activity
from ..auth.security import get_current_user, require_nutritionist
from ..config import settings
from ..errors import InternalError, NotFoundError
from ..patients.storage import get_patient
from ..prescriptions.storage import get_visible_prescription
from ..prescriptions.transfer import export_filename
from .excel import FILENAME, MEDIA_TYPE, access_log_workbook, iter_file_chunks
from .pdf_generator import render_prescription_pdf

logger = logging.getLogger(__name__)

prescription_router = APIRouter(prefix="/api/prescriptions", tags=["Reports"])
nutritionist_router = APIRouter(prefix="/api/nutritionist/reports", tags=["Reports"])


@prescription_router.get("/{prescription_id}/pdf", summary="Download the prescription as PDF")
def prescription_pdf_api(prescription_id: str, user: dict = Depends(get_current_user)):
    prescription = get_visible_prescription(prescription_id, user)
    patient = get_patient(prescription["patient_id"])
    if not patient:
        raise NotFoundError("Patient not found")

    font_path = str(settings.pdf_font_path) if settings.pdf_font_path else None
    try:
        pdf_bytes = render_prescription_pdf(patient, prescription, font_path=font_path)
    except Exception as exc:
        logger.exception("PDF generation failed for prescription %s", prescription_id)
        raise InternalError(f"PDF generation failed: {exc}") from exc

    if user["role"] == "patient":
        activity.log_activity(user["id"], activity.DOWNLOAD_PRESCRIPTION_PDF, prescription_id)
    filename = export_filename(prescription["title"], "pdf")
    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@nutritionist_router.get("/access-log", summary="Patient access report (.xlsx)")
def access_log_report_api(user: dict = Depends(require_nutritionist)):
    try:
        handle = access_log_workbook(None if user["role"] == "admin" else user["id"])
    except Exception as exc:
        logger.exception("Access-log report failed for user %s", user["id"])
        raise InternalError(f"Falha ao gerar relatório: {exc}") from exc
    return StreamingResponse(
        iter_file_chunks(handle),
        media_type=MEDIA_TYPE,
        headers={
            "Content-Disposition": f'attachment; filename="{FILENAME}"',
            "Cache-Control": "no-cache, no-store, must-revalidate",
        },
    )
