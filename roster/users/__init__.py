"""User directory persistence: schema, store protocol and SQLAlchemy store."""

from __future__ import annotations

from .errors import UserStoreError
from .protocol import UserRecord, UserRole, UserStore, UserUpsert
from .service import SqlAlchemyUserStore
from .storage import User, init_user_storage

__all__ = [
    "SqlAlchemyUserStore",
    "User",
    "UserRecord",
    "UserRole",
    "UserStore",
    "UserStoreError",
    "UserUpsert",
    "init_user_storage",
]
