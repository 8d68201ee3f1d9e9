# -*- coding: utf-8 -*-
"""Access-log Excel report (pandas + openpyxl)."""

from __future__ import annotations

import tempfile
from datetime import datetime
from typing import IO, Iterator, Optional

import pandas as pd
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter

from ..app_db import connect
from ..config import settings
from ..subscriptions.storage import effective_status

SHEET_NAME = "Relatório de Acesso"
FILENAME = "relatorio_de_acesso_pacientes.xlsx"
MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

# (header, width) in sheet order
COLUMNS = [
    ("ID do Paciente", 20),
    ("Nome do Paciente", 25),
    ("Email", 25),
    ("Plano", 12),
    ("Status do Plano", 15),
    ("Vencimento", 15),
    ("Último Acesso", 20),
    ("Última Atividade", 30),
]

# One row per patient: current (latest) subscription, latest activity wins.
ACCESS_LOG_SQL = """
SELECT
    p.id AS patient_id,
    p.name AS patient_name,
    COALESCE(u.email, p.email) AS patient_email,
    s.plan_type AS plan_type,
    s.status AS plan_status,
    s.expires_at AS plan_expires_at,
    (SELECT a.created_at FROM activity_log a
      WHERE a.user_id = p.user_id ORDER BY a.created_at DESC LIMIT 1) AS last_activity_at,
    (SELECT a.activity_type FROM activity_log a
      WHERE a.user_id = p.user_id ORDER BY a.created_at DESC LIMIT 1) AS last_activity_type
FROM patients p
LEFT JOIN users u ON u.id = p.user_id
LEFT JOIN subscriptions s ON s.id = (
    SELECT s2.id FROM subscriptions s2
    WHERE s2.patient_id = p.id ORDER BY s2.created_at DESC LIMIT 1
)
{where}
ORDER BY last_activity_at IS NULL, last_activity_at DESC, p.name
"""


def _format_ts(value, fmt: str, missing: str) -> str:
    if value is None or value == "" or (isinstance(value, float) and pd.isna(value)):
        return missing
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00")).strftime(fmt)
    except ValueError:
        return "Data inválida"


def _or_default(value, default: str) -> str:
    if value is None or (isinstance(value, float) and pd.isna(value)) or value == "":
        return default
    return str(value)


def _plan_status(status, expires_at, now: Optional[str]) -> str:
    status = _or_default(status, "")
    expires_at = _or_default(expires_at, "") or None
    return effective_status(status, expires_at, now) or "Inativo"


def load_access_log(owner_id: Optional[str] = None) -> pd.DataFrame:
    """Raw query result; `owner_id=None` covers every patient."""
    where = "WHERE p.owner_id = ?" if owner_id else ""
    params = (owner_id,) if owner_id else ()
    conn = connect(settings.app_db_path)
    try:
        return pd.read_sql_query(ACCESS_LOG_SQL.format(where=where), conn, params=params)
    finally:
        conn.close()


def build_report_frame(raw: pd.DataFrame, now: Optional[str] = None) -> pd.DataFrame:
    headers = [h for h, _ in COLUMNS]
    if raw.empty:
        return pd.DataFrame(columns=headers)
    frame = pd.DataFrame({
        "ID do Paciente": raw["patient_id"].map(lambda v: _or_default(v, "")),
        "Nome do Paciente": raw["patient_name"].map(lambda v: _or_default(v, "N/A")),
        "Email": raw["patient_email"].map(lambda v: _or_default(v, "N/A")),
        "Plano": raw["plan_type"].map(lambda v: _or_default(v, "Free")),
        "Status do Plano": raw.apply(lambda r: _plan_status(r["plan_status"], r["plan_expires_at"], now), axis=1),
        "Vencimento": raw["plan_expires_at"].map(lambda v: _format_ts(v, "%d/%m/%Y", "N/A")),
        "Último Acesso": raw["last_activity_at"].map(
            lambda v: _format_ts(v, "%d/%m/%Y %H:%M:%S", "Nenhum acesso registrado")
        ),
        "Última Atividade": raw["last_activity_type"].map(lambda v: _or_default(v, "N/A")),
    })
    return frame[headers]


def write_workbook(frame: pd.DataFrame, target: IO[bytes]) -> None:
    with pd.ExcelWriter(target, engine="openpyxl") as writer:
        frame.to_excel(writer, sheet_name=SHEET_NAME, index=False)
        sheet = writer.sheets[SHEET_NAME]
        for idx, (_, width) in enumerate(COLUMNS, start=1):
            sheet.column_dimensions[get_column_letter(idx)].width = width
        for cell in sheet[1]:
            cell.font = Font(bold=True)


def iter_file_chunks(handle: IO[bytes], chunk_size: int = 64 * 1024) -> Iterator[bytes]:
    try:
        handle.seek(0)
        while True:
            chunk = handle.read(chunk_size)
            if not chunk:
                break
            yield chunk
    finally:
        handle.close()


def access_log_workbook(owner_id: Optional[str] = None) -> IO[bytes]:
    """Write the report to a spooled temp file (rolls to disk past 1 MB) and return it rewound."""
    frame = build_report_frame(load_access_log(owner_id))
    handle = tempfile.SpooledTemporaryFile(max_size=1024 * 1024)
    try:
        write_workbook(frame, handle)
    except Exception:
        handle.close()
        raise
    handle.seek(0)
    return handle
