#!/usr/bin/env python3
"""
Craterra -- management commands for the album collection API.

Usage:
  python main.py create-admin --name "Ada" --email ada@example.com --password 's3cretpass'
  python main.py seed --email ada@example.com
  python main.py serve
  python main.py serve --host 0.0.0.0 --port 8080 --reload

Admin accounts cannot be created over HTTP: registration always produces a
plain user. create-admin either inserts a new admin or promotes an existing
account with that email.

Environment variables (see core/config.py):
  SECRET_KEY     JWT signing key, at least 32 characters. Required unless DEBUG=true.
  DATABASE_URL   SQLAlchemy URL. Defaults to sqlite:///craterra.db.
"""

import argparse
import sys

from auth.models import User
from auth.store import UserStore
from auth.tokens import hash_password
from catalog.seed import SAMPLE_ALBUMS, seed_albums
from catalog.store import AlbumStore
from core.config import get_settings


def create_admin(name: str, email: str, password: str) -> int:
    settings = get_settings()
    if len(password) < settings.min_password_length:
        print(f"  [!] Password must be at least {settings.min_password_length} characters long.")
        return 1
    store = UserStore(db_url=settings.database_url)
    try:
        existing = store.get_by_email(email)
        if existing is not None:
            if existing.role == "admin":
                print(f"  {existing.email} is already an admin.")
                return 0
            store.update_user(existing.id, role="admin")
            print(f"  Promoted {existing.email} to admin.")
            return 0
        user_id = store.create_user(
            User(name=name, email=email, hashed_password=hash_password(password), role="admin")
        )
        print(f"  Created admin {email} (id {user_id}).")
        return 0
    finally:
        store.close()


def seed(email: str) -> int:
    settings = get_settings()
    users = UserStore(db_url=settings.database_url)
    albums = AlbumStore(db_url=settings.database_url)
    try:
        owner = users.get_by_email(email)
        if owner is None:
            print(f"  [!] No user with email '{email}'. Register or run create-admin first.")
            return 1
        added = seed_albums(albums, owner.id)
        print(f"  Added {added} of {len(SAMPLE_ALBUMS)} sample albums to {owner.email}.")
        return 0
    finally:
        albums.close()
        users.close()


def serve(host: str, port: int, reload: bool) -> int:
    import uvicorn

    uvicorn.run("asgi:app", host=host, port=port, reload=reload)
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(
        prog="craterra",
        description="Craterra album collection API: management commands.",
        epilog=__doc__,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    commands = parser.add_subparsers(dest="command", required=True)

    admin = commands.add_parser("create-admin", help="Create an admin account or promote an existing user")
    admin.add_argument("--name", required=True)
    admin.add_argument("--email", required=True)
    admin.add_argument("--password", required=True)

    seeder = commands.add_parser("seed", help="Load the sample albums into a user's collection")
    seeder.add_argument("--email", required=True, help="Email of the user who will own the albums")

    server = commands.add_parser("serve", help="Run the API with uvicorn")
    server.add_argument("--host", default="127.0.0.1")
    server.add_argument("--port", type=int, default=8000)
    server.add_argument("--reload", action="store_true", help="Restart on code changes (development)")

    args = parser.parse_args()
    if args.command == "create-admin":
        sys.exit(create_admin(args.name, args.email, args.password))
    if args.command == "seed":
        sys.exit(seed(args.email))
    sys.exit(serve(args.host, args.port, args.reload))


if __name__ == "__main__":
    main()
