"""Operator CLI for admin accounts: zenpanel-cli create-admin|reset-password|list-admins."""
import argparse
import sys
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.orm import Session

from zenpanel.database import Base, SessionLocal, engine
from zenpanel.models import Admin
from zenpanel.utils.auth import hash_password


@contextmanager
def _session() -> Iterator[Session]:
    # the CLI may run before the panel has ever started and migrated
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def _fail(message: str) -> int:
    print(f"error: {message}", file=sys.stderr)
    return 1


def create_admin(args: argparse.Namespace) -> int:
    with _session() as db:
        if db.query(Admin).filter(Admin.username == args.username).count():
            return _fail(f"admin '{args.username}' already exists")
        db.add(Admin(username=args.username, hashed_password=hash_password(args.password), is_sudo=args.sudo))
        db.commit()
    print(f"Admin created: {args.username}" + (" (sudo)" if args.sudo else ""))
    return 0


def reset_password(args: argparse.Namespace) -> int:
    with _session() as db:
        admin = db.query(Admin).filter(Admin.username == args.username).one_or_none()
        if admin is None:
            return _fail(f"admin '{args.username}' not found")
        admin.hashed_password = hash_password(args.password)
        db.commit()
    print(f"Password updated for: {args.username}")
    return 0


def list_admins(args: argparse.Namespace) -> int:
    with _session() as db:
        for username, is_sudo in db.query(Admin.username, Admin.is_sudo).order_by(Admin.username):
            print(username + (" (sudo)" if is_sudo else ""))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="zenpanel-cli", description="Zen panel admin accounts")
    commands = parser.add_subparsers(dest="cmd", required=True)

    p = commands.add_parser("create-admin", help="Create an admin account")
    p.add_argument("--username", required=True)
    p.add_argument("--password", required=True)
    p.add_argument("--sudo", action="store_true", help="Allow managing other admins")
    p.set_defaults(func=create_admin)

    p = commands.add_parser("reset-password", help="Set a new password for an admin")
    p.add_argument("--username", required=True)
    p.add_argument("--password", required=True)
    p.set_defaults(func=reset_password)

    p = commands.add_parser("list-admins", help="Print admin usernames")
    p.set_defaults(func=list_admins)
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
