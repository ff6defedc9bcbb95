"""CLI for Homestead: initialise the database, bootstrap admins."""

from __future__ import annotations

import argparse
import asyncio
import getpass
import sys


async def cmd_init_db(args):
    """Create all tables."""
    from marketplace.db.engine import create_all

    await create_all()
    print("Database tables created")


async def cmd_create_admin(args):
    """Create an admin user."""
    from marketplace.db.engine import async_session_factory, create_all
    from marketplace.errors import Conflict
    from marketplace.services.admin_bootstrap import create_admin

    await create_all()

    # Get password interactively if not provided
    password = args.password
    if not password:
        password = getpass.getpass("Admin password: ")
        confirm = getpass.getpass("Confirm password: ")
        if password != confirm:
            print("Passwords do not match")
            sys.exit(1)

    if len(password) < 8:
        print("Password must be at least 8 characters")
        sys.exit(1)

    async with async_session_factory() as db:
        try:
            admin = await create_admin(db, args.email, password, args.display_name or "")
        except Conflict as exc:
            print(exc.message)
            sys.exit(1)

    print(f"Admin user: {admin.email} (id={admin.id})")


def main():
    parser = argparse.ArgumentParser(description="Homestead marketplace CLI")
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("init-db", help="Create database tables")

    ca = subparsers.add_parser("create-admin", help="Create an admin user")
    ca.add_argument("--email", required=True, help="Admin email")
    ca.add_argument("--password", default="", help="Admin password (prompted if not given)")
    ca.add_argument("--display-name", default="", help="Admin display name")

    args = parser.parse_args()
    if not args.command:
        parser.print_help()
        sys.exit(1)

    if args.command == "init-db":
        asyncio.run(cmd_init_db(args))
    elif args.command == "create-admin":
        asyncio.run(cmd_create_admin(args))


if __name__ == "__main__":
    main()
