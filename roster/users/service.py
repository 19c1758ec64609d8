"""SQLAlchemy implementation of the :class:`UserStore` protocol."""

from __future__ import annotations

import typing as typ

from sqlalchemy import case, delete, func, select, text, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError

from roster.common.time import utcnow
from roster.logging import get_logger, log_debug, log_warning
from roster.users.errors import UserStoreError
from roster.users.protocol import UserRecord, UserRole, UserUpsert
from roster.users.storage import User

if typ.TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
    from sqlalchemy.sql.dml import Insert

__all__ = ["SqlAlchemyUserStore"]

logger = get_logger(__name__)

# asyncpg raises bare OSError subclasses when the server cannot be reached.
_STORE_ERRORS = (SQLAlchemyError, OSError)

_INSERT_BY_DIALECT: dict[str, typ.Callable[..., typ.Any]] = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def _nullable(value: str) -> str | None:
    value = value.strip()
    return value or None


def _to_record(user: User) -> UserRecord:
    return UserRecord(
        clerk_id=user.clerk_id,
        name=user.name,
        email=user.email or "",
        username=user.username or "",
        first_name=user.first_name or "",
        last_name=user.last_name or "",
        role=user.role,
        is_active=user.is_active,
        created_at=user.created_at,
        updated_at=user.updated_at,
        deleted_at=user.deleted_at,
        last_login_at=user.last_login_at,
    )


class SqlAlchemyUserStore:
    """User store backed by an async SQLAlchemy session factory.

    Upserts are issued as a single ``INSERT ... ON CONFLICT`` statement so
    role election and conflict resolution happen atomically in the
    database.  PostgreSQL and SQLite are supported.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        """Store the session factory used for every operation."""
        self._session_factory = session_factory

    async def upsert_with_role(self, user: UserUpsert) -> None:
        """Insert or update ``user`` in one statement.

        A new row becomes ``superadmin`` only while no non-deleted row
        exists.  On conflict the role is left untouched, the row is
        reactivated, and a blank email keeps the stored address.
        """
        async with self._session_factory() as session:
            try:
                stmt = self._build_upsert(session, user)
                await session.execute(stmt)
                await session.commit()
            except _STORE_ERRORS as exc:
                await session.rollback()
                raise UserStoreError("upsert", type(exc).__name__) from exc
        log_debug(logger, "Upserted user %s", user.clerk_id)

    @staticmethod
    def _build_upsert(session: AsyncSession, user: UserUpsert) -> Insert:
        dialect = session.get_bind().dialect.name
        insert = _INSERT_BY_DIALECT.get(dialect)
        if insert is None:
            raise UserStoreError.unsupported_dialect(dialect)

        now = utcnow()
        no_active_users = ~(
            select(User.id).where(User.deleted_at.is_(None)).correlate(None).exists()
        )
        stmt = insert(User).values(
            clerk_id=user.clerk_id,
            username=_nullable(user.username),
            name=user.name,
            email=_nullable(user.email),
            first_name=_nullable(user.first_name),
            last_name=_nullable(user.last_name),
            role=case(
                (no_active_users, UserRole.SUPERADMIN.value),
                else_=UserRole.USER.value,
            ),
            is_active=True,
            created_at=now,
            updated_at=now,
        )
        return stmt.on_conflict_do_update(
            index_elements=[User.clerk_id],
            set_={
                "username": stmt.excluded.username,
                "name": stmt.excluded.name,
                "first_name": stmt.excluded.first_name,
                "last_name": stmt.excluded.last_name,
                "email": func.coalesce(stmt.excluded.email, User.email),
                "is_active": True,
                "deleted_at": None,
                "updated_at": now,
            },
        )

    async def soft_delete(self, clerk_id: str) -> None:
        """Mark ``clerk_id`` deleted; already-deleted or unknown ids are kept."""
        now = utcnow()
        stmt = (
            update(User)
            .where(User.clerk_id == clerk_id, User.deleted_at.is_(None))
            .values(deleted_at=now, is_active=False, updated_at=now)
        )
        async with self._session_factory() as session:
            try:
                result = await session.execute(stmt)
                await session.commit()
            except _STORE_ERRORS as exc:
                await session.rollback()
                raise UserStoreError("soft_delete", type(exc).__name__) from exc
        if result.rowcount == 0:
            log_debug(logger, "Soft delete matched no active user %s", clerk_id)

    async def hard_delete(self, clerk_id: str) -> bool:
        """Physically remove ``clerk_id`` and report whether a row existed."""
        stmt = delete(User).where(User.clerk_id == clerk_id)
        async with self._session_factory() as session:
            try:
                result = await session.execute(stmt)
                await session.commit()
            except _STORE_ERRORS as exc:
                await session.rollback()
                raise UserStoreError("hard_delete", type(exc).__name__) from exc
        return result.rowcount > 0

    async def list_users(self) -> list[UserRecord]:
        """Return non-deleted users ordered newest first."""
        stmt = (
            select(User)
            .where(User.deleted_at.is_(None))
            .order_by(User.created_at.desc(), User.clerk_id.desc())
        )
        async with self._session_factory() as session:
            try:
                rows = (await session.scalars(stmt)).all()
            except _STORE_ERRORS as exc:
                raise UserStoreError("list", type(exc).__name__) from exc
        return [_to_record(row) for row in rows]

    async def health_check(self) -> bool:
        """Run ``SELECT 1`` and report whether it succeeded."""
        try:
            async with self._session_factory() as session:
                await session.execute(text("SELECT 1"))
        except _STORE_ERRORS as exc:
            log_warning(logger, "Database health check failed: %s", exc)
            return False
        return True
