# -*- coding: utf-8 -*-

from __future__ import annotations

import contextlib
import io
import os
import shutil
import sys
import tempfile
import unittest
from pathlib import Path


class TestAdminCli(unittest.TestCase):
    @classmethod
    def setUpClass(cls) -> None:
        cls._tmp = Path(tempfile.mkdtemp(prefix="dinutri-test-"))
        os.environ["DINUTRI_DATA_ROOT"] = str(cls._tmp / "data")
        os.environ["DINUTRI_DB_PATH"] = str(cls._tmp / "data" / "dinutri.db")

        for name in list(sys.modules.keys()):
            if name == "dinutri" or name.startswith("dinutri."):
                sys.modules.pop(name, None)

        from dinutri.cli import main  # noqa: WPS433

        cls.main = staticmethod(main)
        cls.db_path = cls._tmp / "cli" / "admin.db"

    @classmethod
    def tearDownClass(cls) -> None:
        shutil.rmtree(cls._tmp, ignore_errors=True)

    def _run(self, *argv: str) -> tuple[int, str]:
        out = io.StringIO()
        with contextlib.redirect_stdout(out):
            code = self.main(["--db-path", str(self.db_path), *argv])
        return code, out.getvalue()

    def test_init_db_then_create_admin(self) -> None:
        code, output = self._run("init-db")
        self.assertEqual(code, 0)
        self.assertTrue(self.db_path.exists())
        self.assertIn("Database ready", output)

        code, output = self._run("create-admin", "root@example.com", "--password", "secret123", "--first-name", "Root")
        self.assertEqual(code, 0, output)
        self.assertIn("root@example.com", output)

        from dinutri.auth.security import verify_password
        from dinutri.auth.storage import get_user_by_email

        user = get_user_by_email("ROOT@example.com")
        self.assertEqual(user["role"], "admin")
        self.assertTrue(verify_password("secret123", user["password_hash"]))

        code, output = self._run("create-admin", "root@example.com", "--password", "secret123")
        self.assertEqual(code, 1)
        self.assertIn("Error", output)

    def test_short_password_rejected(self) -> None:
        code, output = self._run("create-admin", "short@example.com", "--password", "123")
        self.assertEqual(code, 1)
        self.assertIn("at least 6", output)

    def test_no_command_prints_help(self) -> None:
        code, output = self._run()
        self.assertEqual(code, 1)
        self.assertIn("create-admin", output)


if __name__ == "__main__":
    unittest.main()
