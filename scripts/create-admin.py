#!/usr/bin/env python3
"""Create an admin account, or promote an existing user to admin.

Registration through the API only ever creates staff accounts, so the
first admin has to come from here.

Usage:
    python scripts/create-admin.py admin@example.com --name "Site Admin"
    ADMIN_PASSWORD=... python scripts/create-admin.py admin@example.com
"""

import argparse
import asyncio
import getpass
import os
import sys

from sqlalchemy import select

from workorders.core.security import hash_password, validate_password_strength
from workorders.database import close_database, get_db_session
from workorders.models import User, UserRole


def read_password() -> str:
    password = os.environ.get("ADMIN_PASSWORD")
    if password:
        return password
    password = getpass.getpass("Password: ")
    if password != getpass.getpass("Confirm password: "):
        raise SystemExit("Passwords do not match")
    return password


async def create_admin(email: str, name: str | None, password: str) -> str:
    """Insert or promote the user. Returns a short description of what happened."""
    async with get_db_session() as db:
        result = await db.execute(select(User).where(User.email == email))
        user = result.scalar_one_or_none()

        if user is None:
            db.add(
                User(
                    email=email,
                    name=name,
                    hashed_password=hash_password(password),
                    role=UserRole.ADMIN,
                    is_active=True,
                )
            )
            outcome = "created"
        else:
            user.role = UserRole.ADMIN
            user.is_active = True
            user.hashed_password = hash_password(password)
            if name:
                user.name = name
            outcome = "promoted"

        await db.commit()

    await close_database()
    return outcome


def main() -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("email", help="Login email for the admin")
    parser.add_argument("--name", default=None, help="Display name")
    args = parser.parse_args()

    password = read_password()
    valid, error = validate_password_strength(password)
    if not valid:
        print(f"[FAIL] {error}", file=sys.stderr)
        return 1

    outcome = asyncio.run(create_admin(args.email.lower(), args.name, password))
    print(f"[OK] Admin {args.email.lower()} {outcome}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
