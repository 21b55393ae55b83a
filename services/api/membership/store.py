"""
Membership store -- the async record store the membership services talk to.

The services only need five primitives: point lookup, filtered scan,
create, update, delete. `find` returns at most one page (STORE_LIST_LIMIT
rows by default, ordered by id); pass `offset` to read further. `update` optionally takes the version the caller
read; the write then only lands if the stored version still matches
(optimistic concurrency). Every successful update bumps `version`.

SQLMembershipStore opens one session per call. There is no transaction
spanning calls: a multi-step operation is a sequence of independent
writes that may interleave with concurrent requests.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, fields
from typing import Any, Optional, Protocol, TypeVar

from sqlalchemy import delete, insert, select, update
from sqlalchemy.ext.asyncio import async_sessionmaker

from services.api.config import settings
from services.api.db import models as orm
from services.api.membership import records
from services.api.membership.records import Record

logger = logging.getLogger(__name__)

R = TypeVar("R", bound=Record)


class MembershipStore(Protocol):
    async def get(self, record_type: type[R], record_id: str) -> Optional[R]: ...

    async def find(
        self, record_type: type[R], *, limit: Optional[int] = None, offset: int = 0, **filters: Any
    ) -> list[R]: ...

    async def create(self, record: R) -> R: ...

    async def update(
        self,
        record_type: type[R],
        record_id: str,
        changes: dict[str, Any],
        expected_version: Optional[int] = None,
    ) -> bool: ...

    async def delete(self, record_type: type[R], record_id: str) -> bool: ...


_ORM_MODELS: dict[type[Record], type[orm.Base]] = {
    records.Trip: orm.Trip,
    records.TripList: orm.TripList,
    records.ListItem: orm.ListItem,
    records.Comment: orm.Comment,
    records.TripInvite: orm.TripInvite,
}


def _to_record(record_type: type[R], row: Any) -> R:
    return record_type(**{f.name: getattr(row, f.name) for f in fields(record_type)})


class SQLMembershipStore:
    """MembershipStore over SQLAlchemy async sessions."""

    def __init__(self, session_factory: async_sessionmaker):
        self._factory = session_factory

    async def get(self, record_type: type[R], record_id: str) -> Optional[R]:
        model = _ORM_MODELS[record_type]
        async with self._factory() as session:
            result = await session.execute(select(model).where(model.id == record_id))
            row = result.scalars().first()
        if row is None:
            return None
        return _to_record(record_type, row)

    async def find(
        self, record_type: type[R], *, limit: Optional[int] = None, offset: int = 0, **filters: Any
    ) -> list[R]:
        model = _ORM_MODELS[record_type]
        stmt = select(model)
        for column, value in filters.items():
            stmt = stmt.where(getattr(model, column) == value)
        # stable order so callers can page with offset
        stmt = stmt.order_by(model.id).offset(offset).limit(limit or settings.store_list_limit)
        async with self._factory() as session:
            result = await session.execute(stmt)
            rows = result.scalars().all()
        return [_to_record(record_type, row) for row in rows]

    async def create(self, record: R) -> R:
        model = _ORM_MODELS[type(record)]
        async with self._factory() as session:
            await session.execute(insert(model).values(**asdict(record)))
            await session.commit()
        return record

    async def update(
        self,
        record_type: type[R],
        record_id: str,
        changes: dict[str, Any],
        expected_version: Optional[int] = None,
    ) -> bool:
        model = _ORM_MODELS[record_type]
        stmt = update(model).where(model.id == record_id)
        if expected_version is not None:
            stmt = stmt.where(model.version == expected_version)
        stmt = stmt.values(**changes, version=model.version + 1)
        async with self._factory() as session:
            result = await session.execute(stmt)
            await session.commit()
        applied = result.rowcount > 0
        if not applied:
            logger.debug(
                "store_update_skipped kind=%s id=%s expected_version=%s",
                record_type.kind,
                record_id,
                expected_version,
            )
        return applied

    async def delete(self, record_type: type[R], record_id: str) -> bool:
        model = _ORM_MODELS[record_type]
        async with self._factory() as session:
            result = await session.execute(delete(model).where(model.id == record_id))
            await session.commit()
        return result.rowcount > 0
