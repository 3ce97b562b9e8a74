"""CLI for Fleetshop: create operators, maintain the planning board."""

from __future__ import annotations

import argparse
import asyncio
import getpass
import sys


async def cmd_create_user(args):
    """Create an operator account with a role preset."""
    from fleetshop.db import crud
    from fleetshop.db.engine import async_session_factory, create_all
    from fleetshop.services.auth import hash_password

    await create_all()

    password = args.password
    if not password:
        password = getpass.getpass("Password: ")
        confirm = getpass.getpass("Confirm password: ")
        if password != confirm:
            print("Passwords do not match")
            sys.exit(1)

    if len(password) < 8:
        print("Password must be at least 8 characters")
        sys.exit(1)

    async with async_session_factory() as db:
        if await crud.get_user_by_login(db, args.login):
            print(f"User already exists: {args.login}")
            sys.exit(1)
        user = await crud.create_user(
            db,
            login=args.login,
            password_hash=hash_password(password),
            display_name=args.name,
            role=args.role,
        )

    print(f"User created: {user.login} (id={user.id}, role={user.role})")


async def cmd_normalize_planning(args):
    """Re-rank every mechanic queue and persist the changed execution orders."""
    from fleetshop.db.engine import async_session_factory, create_all
    from fleetshop.db.store import WorkOrderStore
    from fleetshop.services.planning import PlanningSession

    await create_all()
    session = PlanningSession(WorkOrderStore(async_session_factory))
    failure = await session.load()
    if failure:
        print(f"{failure.title}: {failure.description}")
        sys.exit(1)

    result = session.last_normalization
    print(f"Mechanics: {len(session.board.mechanics)}")
    print(f"Execution orders updated: {result.succeeded} of {result.total}")
    if result.succeeded != result.total:
        sys.exit(1)


def main():
    from fleetshop.config import configure_logging
    from fleetshop.services.permissions import ROLES

    parser = argparse.ArgumentParser(description="Fleetshop CLI")
    subparsers = parser.add_subparsers(dest="command")

    # create-user
    cu = subparsers.add_parser("create-user", help="Create an operator account")
    cu.add_argument("--login", required=True, help="Login name")
    cu.add_argument("--name", default="", help="Display name")
    cu.add_argument("--role", default="basico", choices=ROLES, help="Permission preset")
    cu.add_argument("--password", default="", help="Password (prompted if not given)")

    # normalize-planning
    subparsers.add_parser("normalize-planning", help="Re-rank every mechanic queue")

    args = parser.parse_args()
    if not args.command:
        parser.print_help()
        sys.exit(1)

    configure_logging()
    if args.command == "create-user":
        asyncio.run(cmd_create_user(args))
    elif args.command == "normalize-planning":
        asyncio.run(cmd_normalize_planning(args))


if __name__ == "__main__":
    main()
