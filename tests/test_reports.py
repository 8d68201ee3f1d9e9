# -*- coding: utf-8 -*-

from __future__ import annotations

import io
import os
import shutil
import sys
import tempfile
import unittest
from datetime import date
from pathlib import Path

import pandas as pd
from fastapi.testclient import TestClient
from openpyxl import load_workbook

PASSWORD = "password123"


class TestReportHelpers(unittest.TestCase):
    def test_age_from_birth_date(self) -> None:
        from dinutri.reports.pdf_generator import age_from_birth_date

        self.assertEqual(age_from_birth_date("1990-06-02", today=date(2024, 6, 1)), 33)
        self.assertEqual(age_from_birth_date("1990-06-02", today=date(2024, 6, 2)), 34)
        self.assertIsNone(age_from_birth_date(None))
        self.assertIsNone(age_from_birth_date("02/06/1990"))

    def test_format_date_br(self) -> None:
        from dinutri.reports.pdf_generator import format_date_br

        self.assertEqual(format_date_br("2024-03-05T10:00:00.000000Z"), "05/03/2024")
        self.assertEqual(format_date_br(None), "")

    def test_render_pdf_directly(self) -> None:
        from dinutri.reports import render_prescription_pdf

        patient = {"name": "Ana <Lima>", "birth_date": "1990-05-10", "sex": "F", "height_cm": 165, "weight_kg": 60}
        prescription = {
            "title": "Plano & Metas",
            "general_notes": "Beber 2 L de água por dia.",
            "published_at": "2024-03-05T10:00:00.000000Z",
            "meals": [
                {
                    "id": "m1",
                    "name": "Café da manhã",
                    "notes": "Leve",
                    "items": [
                        {"id": "i1", "description": "Pão integral", "amount": "2 fatias", "substitutes": ["Tapioca", "Cuscuz"]},
                        {"id": "i2", "description": "Ovo", "amount": "2 unidades", "substitutes": []},
                    ],
                },
                {"id": "m2", "name": "Ceia", "notes": None, "items": []},
            ],
        }

        pdf = render_prescription_pdf(patient, prescription)

        self.assertTrue(pdf.startswith(b"%PDF"))
        self.assertGreater(len(pdf), 1000)

    def test_long_substitute_list_flows_across_pages(self) -> None:
        from dinutri.reports import render_prescription_pdf

        prescription = {
            "title": "Plano Extenso",
            "meals": [
                {
                    "id": "m1",
                    "name": "Almoço",
                    "items": [
                        {
                            "id": "i1",
                            "description": "Arroz",
                            "amount": "4 colheres",
                            "substitutes": [f"Substituto número {n}" for n in range(90)],
                        },
                        {"id": "i2", "description": "Feijão", "amount": "1 concha", "substitutes": []},
                    ],
                }
            ],
        }

        pdf = render_prescription_pdf({"name": "Ana"}, prescription)

        self.assertTrue(pdf.startswith(b"%PDF"))
        pages = pdf.count(b"/Type /Page") - pdf.count(b"/Type /Pages")
        self.assertGreaterEqual(pages, 2)

    def test_empty_report_frame_keeps_headers(self) -> None:
        from dinutri.reports import build_report_frame
        from dinutri.reports.excel import COLUMNS

        frame = build_report_frame(pd.DataFrame())

        self.assertEqual(list(frame.columns), [h for h, _ in COLUMNS])
        self.assertTrue(frame.empty)

    def test_report_frame_defaults(self) -> None:
        from dinutri.reports import build_report_frame

        raw = pd.DataFrame([
            {
                "patient_id": "p1",
                "patient_name": None,
                "patient_email": None,
                "plan_type": None,
                "plan_status": None,
                "plan_expires_at": None,
                "last_activity_at": None,
                "last_activity_type": None,
            },
            {
                "patient_id": "p2",
                "patient_name": "Bia",
                "patient_email": "bia@example.com",
                "plan_type": "monthly",
                "plan_status": "active",
                "plan_expires_at": "2024-04-04T12:00:00.000000Z",
                "last_activity_at": "not-a-date",
                "last_activity_type": "login",
            },
        ])

        frame = build_report_frame(raw, now="2024-03-01T00:00:00.000000Z")
        first, second = frame.iloc[0], frame.iloc[1]

        self.assertEqual(first["Nome do Paciente"], "N/A")
        self.assertEqual(first["Plano"], "Free")
        self.assertEqual(first["Status do Plano"], "Inativo")
        self.assertEqual(first["Vencimento"], "N/A")
        self.assertEqual(first["Último Acesso"], "Nenhum acesso registrado")
        self.assertEqual(second["Status do Plano"], "active")
        self.assertEqual(second["Vencimento"], "04/04/2024")
        self.assertEqual(second["Último Acesso"], "Data inválida")
        self.assertEqual(second["Última Atividade"], "login")

        later = build_report_frame(raw, now="2024-05-01T00:00:00.000000Z")
        self.assertEqual(later.iloc[1]["Status do Plano"], "expired")
        self.assertEqual(later.iloc[0]["Status do Plano"], "Inativo")


class TestReportEndpoints(unittest.TestCase):
    @classmethod
    def setUpClass(cls) -> None:
        cls._tmp = Path(tempfile.mkdtemp(prefix="dinutri-test-"))
        data_root = cls._tmp / "data"
        os.environ["DINUTRI_DATA_ROOT"] = str(data_root)
        os.environ["DINUTRI_DB_PATH"] = str(data_root / "dinutri.db")
        os.environ["DINUTRI_JWT_SECRET"] = "test-secret"

        for name in list(sys.modules.keys()):
            if name == "dinutri" or name.startswith("dinutri."):
                sys.modules.pop(name, None)

        from dinutri.api import app  # noqa: WPS433
        from dinutri.auth.security import hash_password
        from dinutri.auth.storage import create_user

        create_user(email="nutri@example.com", password_hash=hash_password(PASSWORD), role="nutritionist")
        cls.client = TestClient(app)
        resp = cls.client.post("/api/auth/login", json={"email": "nutri@example.com", "password": PASSWORD})
        cls.client.cookies.clear()
        cls.nutri = {"Authorization": f"Bearer {resp.json()['token']}"}

        resp = cls.client.post(
            "/api/patients",
            json={"name": "Helena", "email": "helena@example.com", "password": PASSWORD, "birth_date": "1985-01-20"},
            headers=cls.nutri,
        )
        cls.patient_id = resp.json()["id"]
        resp = cls.client.post("/api/patients", json={"name": "Igor"}, headers=cls.nutri)
        cls.idle_patient_id = resp.json()["id"]

        resp = cls.client.post(
            "/api/prescriptions",
            json={
                "patient_id": cls.patient_id,
                "title": "Plano Helena",
                "meals": [{"name": "Almoço", "items": [{"description": "Arroz", "amount": "4 colheres"}]}],
            },
            headers=cls.nutri,
        )
        cls.prescription_id = resp.json()["id"]

        resp = cls.client.post("/api/auth/login", json={"email": "helena@example.com", "password": PASSWORD})
        cls.client.cookies.clear()
        cls.patient = {"Authorization": f"Bearer {resp.json()['token']}"}

    @classmethod
    def tearDownClass(cls) -> None:
        try:
            cls.client.close()
        except Exception:
            pass
        shutil.rmtree(cls._tmp, ignore_errors=True)

    def test_prescription_pdf(self) -> None:
        resp = self.client.get(f"/api/prescriptions/{self.prescription_id}/pdf", headers=self.nutri)
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.headers["content-type"], "application/pdf")
        self.assertIn("prescricao-plano-helena.pdf", resp.headers["content-disposition"])
        self.assertTrue(resp.content.startswith(b"%PDF"))

    def test_access_log_workbook(self) -> None:
        resp = self.client.get("/api/nutritionist/reports/access-log", headers=self.nutri)
        self.assertEqual(resp.status_code, 200)
        self.assertTrue(resp.headers["content-type"].startswith("application/vnd.openxmlformats"))
        self.assertIn("relatorio_de_acesso_pacientes.xlsx", resp.headers["content-disposition"])

        workbook = load_workbook(io.BytesIO(resp.content))
        sheet = workbook["Relatório de Acesso"]
        rows = list(sheet.iter_rows(values_only=True))
        self.assertEqual(rows[0][0], "ID do Paciente")
        self.assertEqual(rows[0][-1], "Última Atividade")
        self.assertTrue(sheet["A1"].font.bold)
        self.assertEqual(sheet.column_dimensions["B"].width, 25)

        by_id = {row[0]: row for row in rows[1:]}
        self.assertEqual(set(by_id), {self.patient_id, self.idle_patient_id})
        # Patients with activity come first.
        self.assertEqual(rows[1][0], self.patient_id)
        self.assertEqual(by_id[self.patient_id][7], "login")
        idle = by_id[self.idle_patient_id]
        self.assertEqual(idle[2], "N/A")
        self.assertEqual(idle[3], "Free")
        self.assertEqual(idle[4], "Inativo")
        self.assertEqual(idle[6], "Nenhum acesso registrado")

    def test_access_log_requires_nutritionist(self) -> None:
        resp = self.client.get("/api/nutritionist/reports/access-log", headers=self.patient)
        self.assertEqual(resp.status_code, 403)


if __name__ == "__main__":
    unittest.main()
