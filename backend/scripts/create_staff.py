import argparse
import asyncio
import sys
from pathlib import Path

"""
Create or promote a staff account (BARTENDER or ADMIN).

Registration over HTTP only ever creates plain USER accounts; staff are
provisioned here (or, for the very first admin, through BOOTSTRAP_ADMIN_*).
An existing account with the same email is promoted and keeps its password
unless a new one is given.

Run from backend/:
  python scripts/create_staff.py --email bart@example.com --password s3cret --name Bart
  python scripts/create_staff.py --email ada@example.com --role ADMIN
"""

BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from sqlalchemy import func, select

from core.auth import password_helper
from db.database import async_session_maker, create_db_and_tables
from db.users import ROLE_BARTENDER, STAFF_ROLES, User


async def upsert_staff(session, email: str, role: str = ROLE_BARTENDER, password: str = "", name: str = "") -> User:
    if role not in STAFF_ROLES:
        raise ValueError(f"role must be one of {', '.join(STAFF_ROLES)}")
    email = email.strip().lower()
    if not email:
        raise ValueError("email is required")

    result = await session.execute(select(User).where(func.lower(User.email) == email))
    user = result.scalar_one_or_none()

    if user is None:
        if not password:
            raise ValueError("a password is required for a new account")
        user = User(
            email=email,
            hashed_password=password_helper.hash(password),
            role=role,
            display_name=name.strip() or email.split("@")[0],
            on_duty=role == ROLE_BARTENDER,
            is_active=True,
            is_verified=True,
        )
        session.add(user)
    else:
        user.role = role
        user.is_active = True
        if role != ROLE_BARTENDER:
            user.on_duty = False
        if password:
            user.hashed_password = password_helper.hash(password)
        if name.strip():
            user.display_name = name.strip()

    await session.flush()
    return user


async def main(email: str, role: str, password: str, name: str) -> None:
    await create_db_and_tables()
    async with async_session_maker() as session:
        async with session.begin():
            user = await upsert_staff(session, email, role=role, password=password, name=name)
        print(f"{user.email}: role={user.role} on_duty={user.on_duty}")


if __name__ == "__main__":
    p = argparse.ArgumentParser()
    p.add_argument("--email", required=True)
    p.add_argument("--role", default=ROLE_BARTENDER, choices=STAFF_ROLES)
    p.add_argument("--password", default="", help="Required for a new account; replaces the password of an existing one")
    p.add_argument("--name", default="", help="Display name")
    args = p.parse_args()

    asyncio.run(main(args.email, args.role, args.password, args.name))
