"""Operator commands for the user directory database."""

from __future__ import annotations

import argparse
import asyncio
import os
import typing as typ

from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from .errors import UserStoreError
from .service import SqlAlchemyUserStore
from .storage import init_user_storage

if typ.TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine


async def _init(engine: AsyncEngine, _args: argparse.Namespace) -> int:
    await init_user_storage(engine)
    print("users table is ready")
    return 0


async def _list(engine: AsyncEngine, _args: argparse.Namespace) -> int:
    store = SqlAlchemyUserStore(async_sessionmaker(engine, expire_on_commit=False))
    users = await store.list_users()
    for user in users:
        print(
            f"{user.clerk_id}\t{user.role}\t{user.name}\t"
            f"{user.email or '-'}\t{user.created_at.isoformat()}"
        )
    print(f"{len(users)} active users")
    return 0


async def _purge(engine: AsyncEngine, args: argparse.Namespace) -> int:
    store = SqlAlchemyUserStore(async_sessionmaker(engine, expire_on_commit=False))
    if await store.hard_delete(args.clerk_id):
        print(f"purged {args.clerk_id}")
        return 0
    print(f"no user with clerk_id {args.clerk_id}")
    return 1


_COMMANDS: dict[
    str,
    typ.Callable[[AsyncEngine, argparse.Namespace], typ.Awaitable[int]],
] = {
    "init": _init,
    "list": _list,
    "purge": _purge,
}


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="roster-db",
        description="Manage the Roster user directory database.",
    )
    parser.add_argument(
        "--database-url",
        default=None,
        help="SQLAlchemy async URL (defaults to $DATABASE_URL)",
    )
    commands = parser.add_subparsers(dest="command", required=True)
    commands.add_parser("init", help="create the users table if absent")
    commands.add_parser("list", help="print active users, newest first")
    purge = commands.add_parser("purge", help="permanently delete one user")
    purge.add_argument("clerk_id", help="Clerk user id to remove")
    return parser


async def _run(database_url: str, args: argparse.Namespace) -> int:
    engine = create_async_engine(database_url)
    try:
        return await _COMMANDS[args.command](engine, args)
    finally:
        await engine.dispose()


def main(argv: list[str] | None = None) -> int:
    """Run a database maintenance command.

    Parameters
    ----------
    argv : list[str] | None, optional
        Command-line arguments. ``None`` defaults to ``sys.argv``.

    Returns
    -------
    int
        Exit code: 0 on success, 1 on missing configuration, store failure,
        or when ``purge`` matched nothing.

    """
    args = _build_parser().parse_args(argv)
    database_url = (args.database_url or os.environ.get("DATABASE_URL", "")).strip()
    if not database_url:
        print("DATABASE_URL is required (or pass --database-url)")
        return 1

    try:
        return asyncio.run(_run(database_url, args))
    except UserStoreError as exc:
        print(f"roster-db {args.command} failed: {exc}")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
