# -*- coding: utf-8 -*-
"""
Administration CLI.

Usage:
    python -m dinutri.cli init-db
    python -m dinutri.cli create-admin <email> [--password PASSWORD] [--first-name NAME] [--last-name NAME]
"""

from __future__ import annotations

import argparse
import getpass
import sys
from pathlib import Path

from .app_db import init_app_db
from .config import settings
from .errors import ConflictError


def _db_path(args: argparse.Namespace) -> Path:
    return Path(args.db_path) if args.db_path else settings.app_db_path


def cmd_init_db(args: argparse.Namespace) -> int:
    """Create the schema (idempotent)."""
    db_path = _db_path(args)
    init_app_db(db_path)
    print(f"Database ready: {db_path}")
    return 0


def cmd_create_admin(args: argparse.Namespace) -> int:
    """Create an administrator account."""
    from .auth.security import hash_password
    from .auth.storage import create_user

    settings.app_db_path = _db_path(args)
    init_app_db(settings.app_db_path)

    password = args.password or getpass.getpass("Password: ")
    if len(password) < 6:
        print("Error: password must have at least 6 characters")
        return 1

    try:
        user = create_user(
            email=args.email,
            password_hash=hash_password(password),
            role="admin",
            first_name=args.first_name,
            last_name=args.last_name,
        )
    except ConflictError as exc:
        print(f"Error: {exc.detail}")
        return 1

    print(f"Admin created: {user['email']} ({user['id']})")
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="DiNutri administration CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--db-path",
        help="Path to the SQLite database (default: DINUTRI_DB_PATH or data/dinutri.db)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    subparsers.add_parser("init-db", help="Create database tables")

    admin_parser = subparsers.add_parser("create-admin", help="Create an administrator")
    admin_parser.add_argument("email", help="Login email")
    admin_parser.add_argument("--password", help="Password (prompted when omitted)")
    admin_parser.add_argument("--first-name", default=None)
    admin_parser.add_argument("--last-name", default=None)

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    commands = {
        "init-db": cmd_init_db,
        "create-admin": cmd_create_admin,
    }
    return commands[args.command](args)


if __name__ == "__main__":
    sys.exit(main())
