# -*- coding: utf-8 -*-

from __future__ import annotations

import os
import shutil
import sys
import tempfile
import unittest
from pathlib import Path


def _content(meals: list) -> list:
    """Meals document without ids, for structural comparison."""
    return [
        {
            "name": m["name"],
            "notes": m.get("notes"),
            "items": [{k: v for k, v in i.items() if k != "id"} for i in m["items"]],
        }
        for m in meals
    ]


class TestPrescriptionStorage(unittest.TestCase):
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

        from dinutri.app_db import init_app_db
        from dinutri.auth.storage import create_user
        from dinutri.config import settings
        from dinutri.patients.storage import create_patient

        init_app_db(settings.app_db_path)
        nutritionist = create_user(email="nutri@example.com", password_hash=None, role="nutritionist")
        cls.nutritionist_id = nutritionist["id"]
        cls.patient_id = create_patient(owner_id=cls.nutritionist_id, fields={"name": "Maria"})["id"]

    @classmethod
    def tearDownClass(cls) -> None:
        shutil.rmtree(cls._tmp, ignore_errors=True)

    def _draft(self, title: str = "Plano") -> dict:
        from dinutri.prescriptions.storage import create_prescription

        meals = [
            {
                "id": "meal-1",
                "name": "Café",
                "notes": "Leve",
                "items": [
                    {"id": "item-1", "description": "Pão", "amount": "1 fatia", "substitutes": ["Aveia", "Tapioca"]},
                    {"id": "item-2", "description": "Café", "amount": "1 xícara", "substitutes": []},
                ],
            }
        ]
        return create_prescription(
            patient_id=self.patient_id,
            nutritionist_id=self.nutritionist_id,
            title=title,
            meals=meals,
            general_notes="Beber água",
        )

    def test_create_starts_as_draft(self) -> None:
        prescription = self._draft()

        self.assertEqual(prescription["status"], "draft")
        self.assertIsNone(prescription["published_at"])
        self.assertEqual(prescription["meals"][0]["items"][0]["substitutes"], ["Aveia", "Tapioca"])

    def test_publish_without_expiry(self) -> None:
        from dinutri.prescriptions.storage import publish_prescription

        draft = self._draft()
        published = publish_prescription(draft["id"])

        self.assertEqual(published["status"], "published")
        self.assertIsNone(published["expires_at"])
        self.assertIsNotNone(published["published_at"])
        self.assertGreaterEqual(published["published_at"], draft["created_at"])

    def test_republish_returns_stored_record(self) -> None:
        from dinutri.prescriptions.storage import publish_prescription

        draft = self._draft()
        first = publish_prescription(draft["id"], expires_at="2030-01-31")
        again = publish_prescription(draft["id"], expires_at="2040-01-31")

        self.assertEqual(again, first)
        self.assertEqual(again["expires_at"], "2030-01-31")

    def test_update_replaces_meals_document(self) -> None:
        from dinutri.prescriptions.storage import update_prescription

        draft = self._draft()
        updated = update_prescription(draft["id"], meals=[], title="Novo título")

        self.assertEqual(updated["meals"], [])
        self.assertEqual(updated["title"], "Novo título")
        self.assertEqual(updated["general_notes"], "Beber água")

    def test_duplicate_copies_content_with_new_ids(self) -> None:
        from dinutri.prescriptions.storage import duplicate_prescription, get_prescription, publish_prescription

        source = publish_prescription(self._draft()["id"])
        copy = duplicate_prescription(source["id"], "Cópia")

        self.assertNotEqual(copy["id"], source["id"])
        self.assertEqual(copy["status"], "draft")
        self.assertEqual(copy["title"], "Cópia")
        self.assertEqual(copy["general_notes"], source["general_notes"])
        self.assertEqual(_content(copy["meals"]), _content(source["meals"]))

        source_ids = {source["meals"][0]["id"], *(i["id"] for i in source["meals"][0]["items"])}
        copy_ids = {copy["meals"][0]["id"], *(i["id"] for i in copy["meals"][0]["items"])}
        self.assertFalse(source_ids & copy_ids)

        # The source is untouched by later edits to the copy.
        copy["meals"][0]["items"][0]["substitutes"].append("Cuscuz")
        self.assertEqual(get_prescription(source["id"])["meals"][0]["items"][0]["substitutes"], ["Aveia", "Tapioca"])

    def test_delete_rules(self) -> None:
        from dinutri.errors import ForbiddenError, NotFoundError
        from dinutri.prescriptions.storage import delete_prescription, get_prescription, publish_prescription

        published = publish_prescription(self._draft()["id"])
        with self.assertRaises(ForbiddenError):
            delete_prescription(published["id"])
        self.assertIsNotNone(get_prescription(published["id"]))

        draft = self._draft()
        delete_prescription(draft["id"])
        self.assertIsNone(get_prescription(draft["id"]))
        with self.assertRaises(NotFoundError):
            delete_prescription(draft["id"])

    def test_latest_published_prefers_newest(self) -> None:
        from dinutri.prescriptions.storage import get_latest_published_prescription, publish_prescription

        publish_prescription(self._draft("Antigo")["id"])
        newest = publish_prescription(self._draft("Recente")["id"])
        self._draft("Rascunho")

        latest = get_latest_published_prescription(self.patient_id)

        self.assertEqual(latest["id"], newest["id"])


if __name__ == "__main__":
    unittest.main()
