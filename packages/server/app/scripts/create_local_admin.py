"""
Script to create (or promote) a local admin user for development.

    python -m app.scripts.create_local_admin --login-id admin --password secret
"""

import argparse
import asyncio

from sqlmodel import select

from app.core.auth import hash_password
from app.core.database import get_session_context, init_db
from app.models import User
from teamchat_shared.schemas.common import Role


async def create_admin(login_id: str, password: str, name: str | None = None) -> User:
    async with get_session_context() as session:
        result = await session.execute(select(User).where(User.login_id == login_id))
        user = result.scalar_one_or_none()

        if not user:
            user = User(
                login_id=login_id,
                name=name or login_id,
                password_hash=hash_password(password),
                role=Role.ADMIN.value,
            )
            session.add(user)
            print(f"Created admin user: {login_id}")
        else:
            user.role = Role.ADMIN.value
            user.is_active = True
            user.password_hash = hash_password(password)
            session.add(user)
            print(f"User {login_id} already exists; promoted to admin and reset password.")

        await session.flush()
        return user


async def run(args: argparse.Namespace) -> None:
    if args.init_db:
        await init_db()
    await create_admin(args.login_id, args.password, args.name)


def main() -> None:
    parser = argparse.ArgumentParser(description="Create a local admin user.")
    parser.add_argument("--login-id", required=True, help="Login id for the user")
    parser.add_argument("--password", required=True, help="Password for the user")
    parser.add_argument("--name", help="Display name (defaults to the login id)")
    parser.add_argument("--init-db", action="store_true", help="Create tables first (development only)")

    asyncio.run(run(parser.parse_args()))


if __name__ == "__main__":
    main()
