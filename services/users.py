from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from passlib.context import CryptContext

from schemas.user import User
from services.exceptions import ConstraintViolationError
from services.record_store import RecordStore

logger = logging.getLogger(__name__)

USERS = "users"

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _row_to_user(row: dict[str, Any]) -> User:
    return User(
        id=row["id"],
        username=row["username"],
        is_admin=bool(row.get("is_admin")),
        created_at=row.get("created_at"),
        last_login=row.get("last_login"),
    )


class UserDirectory:
    def __init__(self, store: RecordStore, *, clock: Callable[[], datetime] = _utcnow):
        self._store = store
        self._clock = clock

    async def list_users(self) -> list[User]:
        """Most recent login first; users who never logged in come last."""
        users = [_row_to_user(r) for r in await self._store.select(USERS, order_by="username")]
        logged_in = sorted((u for u in users if u.last_login), key=lambda u: u.last_login, reverse=True)
        return logged_in + [u for u in users if not u.last_login]

    async def add_user(self, username: str, password: str, is_admin: bool = False) -> User:
        username = username.strip().lower()
        existing = await self._store.select(USERS, filters={"username": username})
        if existing:
            raise ConstraintViolationError(f"Username {username!r} is already taken")
        row = await self._store.insert(
            USERS,
            {"username": username, "password_hash": get_password_hash(password), "is_admin": is_admin},
        )
        logger.info("Added user %s (admin=%s)", username, is_admin)
        return _row_to_user(row)

    async def delete_user(self, user_id: str) -> None:
        await self._store.delete(USERS, user_id)
        logger.info("Deleted user %s", user_id)

    async def authenticate(self, username: str, password: str) -> Optional[User]:
        rows = await self._store.select(USERS, filters={"username": username.strip().lower()})
        if not rows or not verify_password(password, rows[0]["password_hash"]):
            logger.info("Failed login for %s", username)
            return None
        row = await self._store.update(USERS, rows[0]["id"], {"last_login": self._clock()})
        return _row_to_user(row)
