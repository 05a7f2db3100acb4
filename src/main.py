"""Command-line entry point for account provisioning.

This module provides the operator commands that run outside the HTTP API:
creating or repairing the configured super admin account, and adding admin
accounts directly to the database.

Usage:
    python main.py ensure-super-admin
    python main.py create-admin --email admin@example.com --name "Site Admin"
"""

import argparse
import getpass
import logging
import sys
from typing import List, Optional

from config import SUPER_ADMIN_EMAIL, SUPER_ADMIN_NAME, SUPER_ADMIN_PASSWORD
from core.database import SessionLocal, init_db
from core.exceptions import PortalError
from core.logging_config import setup_logging
from utils.permissions import Role
from utils.user_manager import UserManager

logger = logging.getLogger(__name__)


def print_banner() -> None:
    """Print program banner."""
    print("=" * 70)
    print("  Course Portal account provisioning")
    print("=" * 70)
    print()


def ensure_super_admin() -> int:
    """Create or repair the super admin from the SUPER_ADMIN_* settings."""
    if not SUPER_ADMIN_EMAIL or not SUPER_ADMIN_PASSWORD:
        print("SUPER_ADMIN_EMAIL and SUPER_ADMIN_PASSWORD must be set.")
        return 1

    db = SessionLocal()
    try:
        user = UserManager(db, super_admin_email=SUPER_ADMIN_EMAIL).ensure_super_admin(
            SUPER_ADMIN_EMAIL, SUPER_ADMIN_PASSWORD, SUPER_ADMIN_NAME
        )
    finally:
        db.close()

    print(f"Super admin ready: {user.email} ({user.user_id})")
    return 0


def create_admin(email: str, name: str, password: Optional[str]) -> int:
    """Add a verified admin account.

    Args:
        email: Admin email.
        name: Display name.
        password: Password; prompted for when omitted.

    Returns:
        Process exit code.
    """
    if password is None:
        password = getpass.getpass("Password: ")
        if password != getpass.getpass("Confirm password: "):
            print("Passwords do not match.")
            return 1

    db = SessionLocal()
    try:
        user = UserManager(db).create_user(
            email, password, name=name, role=Role.ADMIN.value, email_verified=True
        )
    except PortalError as e:
        print(f"Could not create admin: {e}")
        return 1
    finally:
        db.close()

    print(f"Admin created: {user.email} ({user.user_id})")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Course Portal account provisioning")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser(
        "ensure-super-admin",
        help="Create or repair the super admin from SUPER_ADMIN_* settings",
    )

    create_parser = subparsers.add_parser("create-admin", help="Add an admin account")
    create_parser.add_argument("--email", required=True)
    create_parser.add_argument("--name", required=True)
    create_parser.add_argument("--password", help="Prompted for when omitted")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)
    setup_logging()
    print_banner()
    init_db()

    if args.command == "ensure-super-admin":
        return ensure_super_admin()
    return create_admin(args.email, args.name, args.password)


if __name__ == "__main__":
    sys.exit(main())
