"""
Generic record CRUD over the directory's collections.
The directory services only talk to the RecordStore interface; SqlRecordStore backs it with
async SQLAlchemy and retries transient backend failures with exponential backoff.
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Optional

import sqlalchemy as sa
from sqlalchemy.exc import IntegrityError, InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from tenacity import AsyncRetrying, before_sleep_log, retry_if_exception_type, stop_after_attempt, wait_exponential

import models  # noqa: F401  (registers tables on Base.metadata)
from config import settings
from database import AsyncSessionLocal, Base
from services.exceptions import ConstraintViolationError, NotFoundError, StoreUnavailableError

logger = logging.getLogger(__name__)

COLLECTIONS = ("lenders", "criteria_sheets", "favorites", "users")

Row = dict[str, Any]


class RecordStore(ABC):
    @abstractmethod
    async def select(
        self,
        collection: str,
        *,
        filters: Optional[dict[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
    ) -> list[Row]:
        """Rows matching every equality filter, optionally ordered by one column."""

    @abstractmethod
    async def select_one(self, collection: str, record_id: str) -> Row:
        """Raises NotFoundError when no row has this id."""

    @abstractmethod
    async def insert(self, collection: str, values: Row) -> Row:
        """Insert and return the stored row, including store-assigned id and timestamps."""

    @abstractmethod
    async def update(self, collection: str, record_id: str, values: Row) -> Row:
        """Raises NotFoundError when no row has this id."""

    @abstractmethod
    async def delete(self, collection: str, record_id: str) -> None:
        """Raises NotFoundError when no row has this id."""

    @abstractmethod
    async def delete_where(self, collection: str, filters: dict[str, Any]) -> int:
        """Delete rows matching every equality filter; returns the number removed."""


class SqlRecordStore(RecordStore):
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        *,
        retry_attempts: int | None = None,
        retry_backoff_seconds: float | None = None,
    ):
        self._session_factory = session_factory or AsyncSessionLocal
        self._retry_attempts = retry_attempts or settings.store_retry_attempts
        self._retry_backoff = (
            retry_backoff_seconds if retry_backoff_seconds is not None else settings.store_retry_backoff_seconds
        )
        self._tables = {name: Base.metadata.tables[name] for name in COLLECTIONS}

    def _table(self, collection: str) -> sa.Table:
        try:
            return self._tables[collection]
        except KeyError:
            raise ValueError(f"Unknown collection: {collection}") from None

    @staticmethod
    def _column(table: sa.Table, name: str) -> sa.Column:
        if name not in table.c:
            raise ValueError(f"Unknown column {name!r} on {table.name}")
        return table.c[name]

    def _where(self, table: sa.Table, filters: Optional[dict[str, Any]]) -> list:
        return [self._column(table, k) == v for k, v in (filters or {}).items()]

    async def _run(self, operation: Callable[[AsyncSession], Awaitable[Any]]) -> Any:
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self._retry_attempts),
            wait=wait_exponential(multiplier=self._retry_backoff, max=10),
            retry=retry_if_exception_type((OperationalError, InterfaceError)),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        try:
            async for attempt in retrying:
                with attempt:
                    async with self._session_factory() as session:
                        async with session.begin():
                            return await operation(session)
        except IntegrityError as e:
            raise ConstraintViolationError(str(e.orig)) from e
        except (OperationalError, InterfaceError) as e:
            logger.error("Record store unavailable after %d attempts: %s", self._retry_attempts, e.orig)
            raise StoreUnavailableError(str(e.orig)) from e

    async def select(self, collection, *, filters=None, order_by=None, descending=False):
        table = self._table(collection)
        stmt = sa.select(table).where(*self._where(table, filters))
        if order_by:
            column = self._column(table, order_by)
            stmt = stmt.order_by(column.desc() if descending else column.asc())

        async def op(session: AsyncSession) -> list[Row]:
            result = await session.execute(stmt)
            return [dict(row) for row in result.mappings().all()]

        return await self._run(op)

    async def select_one(self, collection, record_id):
        table = self._table(collection)
        stmt = sa.select(table).where(table.c.id == record_id)

        async def op(session: AsyncSession) -> Row:
            row = (await session.execute(stmt)).mappings().one_or_none()
            if row is None:
                raise NotFoundError(collection, record_id)
            return dict(row)

        return await self._run(op)

    async def insert(self, collection, values):
        table = self._table(collection)
        for name in values:
            self._column(table, name)
        stmt = sa.insert(table).values(**values).returning(*table.c)

        async def op(session: AsyncSession) -> Row:
            return dict((await session.execute(stmt)).mappings().one())

        return await self._run(op)

    async def update(self, collection, record_id, values):
        if not values:
            return await self.select_one(collection, record_id)
        table = self._table(collection)
        for name in values:
            self._column(table, name)
        stmt = sa.update(table).where(table.c.id == record_id).values(**values).returning(*table.c)

        async def op(session: AsyncSession) -> Row:
            row = (await session.execute(stmt)).mappings().one_or_none()
            if row is None:
                raise NotFoundError(collection, record_id)
            return dict(row)

        return await self._run(op)

    async def delete(self, collection, record_id):
        table = self._table(collection)
        stmt = sa.delete(table).where(table.c.id == record_id)

        async def op(session: AsyncSession) -> None:
            result = await session.execute(stmt)
            if result.rowcount == 0:
                raise NotFoundError(collection, record_id)

        await self._run(op)

    async def delete_where(self, collection, filters):
        if not filters:
            raise ValueError("delete_where requires at least one filter")
        table = self._table(collection)
        stmt = sa.delete(table).where(*self._where(table, filters))

        async def op(session: AsyncSession) -> int:
            result = await session.execute(stmt)
            return result.rowcount

        return await self._run(op)
