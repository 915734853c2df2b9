#!/usr/bin/env python
"""Seed script to create the initial admin user.

Creates the first ADMIN account and prints a short-lived access token so
the admin can call the API right away. Run once during initial setup.

Usage:
    python backend/scripts/seed_admin.py

Environment Variables:
    DATABASE_URL: Database connection string
    JWT_SECRET: JWT signing key
    ADMIN_EMAIL: Email for admin user (default: admin@university.edu)
    ADMIN_NAME: Display name for admin user (default: System Administrator)
"""

import os
import sys

from sqlalchemy.exc import SQLAlchemyError

from thesisflow.auth.jwt import create_access_token
from thesisflow.auth.roles import UserRole
from thesisflow.database import get_db_session
from thesisflow.models.user import User


def main():
    """Create initial admin user."""
    admin_email = os.getenv("ADMIN_EMAIL", "admin@university.edu").strip().lower()
    admin_name = os.getenv("ADMIN_NAME", "System Administrator")

    try:
        with get_db_session() as session:
            existing_user = session.query(User).filter(User.email == admin_email).first()
            if existing_user:
                print(f"ERROR: User with email {admin_email} already exists")
                sys.exit(1)

            admin_user = User(
                email=admin_email,
                name=admin_name,
                roles=[UserRole.ADMIN.value],
                status="ACTIVE"
            )
            session.add(admin_user)
            session.flush()

            summary = {
                "ID": admin_user.id,
                "Email": admin_user.email,
                "Name": admin_user.name,
                "Roles": ", ".join(admin_user.roles),
                "Token": create_access_token(admin_user.id, admin_user.email, admin_user.roles),
            }

    except (SQLAlchemyError, ValueError) as e:
        print(f"ERROR: Failed to create admin user: {e}")
        sys.exit(1)

    print("SUCCESS: Admin user created")
    for label, value in summary.items():
        print(f"  {label + ':':<6} {value}")


if __name__ == "__main__":
    main()
