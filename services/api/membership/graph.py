"""
Store access helpers shared by the invite and trip services.

  - load / write: critical-path store calls; a store failure becomes Internal.
  - find_all: every matching row, paging past the store's per-call cap.
  - update_with_retry: read-modify-write guarded by the record version,
    re-reading and re-applying the mutation on conflict.
  - sync_list_owners: best-effort push of a membership change into every
    list of a trip that keeps its own owner snapshot. One list failing is
    logged and skipped, never fatal.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, Callable, Optional, TypeVar

from services.api.config import settings
from services.api.membership.errors import Internal, NotFound
from services.api.membership.records import Record, TripList, add_member, remove_member
from services.api.membership.store import MembershipStore

logger = logging.getLogger(__name__)

R = TypeVar("R", bound=Record)

Mutation = Callable[[Any], Optional[dict[str, Any]]]


async def load(store: MembershipStore, record_type: type[R], record_id: str) -> Optional[R]:
    try:
        return await store.get(record_type, record_id)
    except Exception as exc:
        logger.error("store_read_failed kind=%s id=%s error=%s", record_type.kind, record_id, exc)
        raise Internal() from exc


async def write(
    store: MembershipStore,
    record_type: type[R],
    record_id: str,
    changes: dict[str, Any],
    expected_version: Optional[int] = None,
) -> bool:
    try:
        return await store.update(record_type, record_id, changes, expected_version=expected_version)
    except Exception as exc:
        logger.error("store_write_failed kind=%s id=%s error=%s", record_type.kind, record_id, exc)
        raise Internal() from exc


async def find_all(store: MembershipStore, record_type: type[R], **filters: Any) -> list[R]:
    """Read every page of a filtered scan. Store errors propagate."""
    page_size = settings.store_list_limit
    rows: list[R] = []
    while True:
        page = await store.find(record_type, limit=page_size, offset=len(rows), **filters)
        rows.extend(page)
        if len(page) < page_size:
            return rows


async def update_with_retry(
    store: MembershipStore,
    record: R,
    mutate: Mutation,
    retries: Optional[int] = None,
) -> R:
    """
    Apply `mutate` to the freshest copy of `record` with a version-checked write.

    `mutate` returns the field changes, or None when the record already
    satisfies the goal (no write issued). Raises NotFound if the record
    disappears between attempts, Internal when retries run out.
    """
    attempts = retries or settings.store_cas_retries
    current: Optional[R] = record
    for attempt in range(attempts):
        if current is None:
            raise NotFound(f"{record.kind} not found.")
        changes = mutate(current)
        if not changes:
            return current
        if await write(store, type(current), current.id, changes, expected_version=current.version):
            return replace(current, **changes, version=current.version + 1)
        logger.info(
            "version_conflict kind=%s id=%s attempt=%d",
            current.kind,
            current.id,
            attempt + 1,
        )
        current = await load(store, type(record), record.id)
    raise Internal()


def adding_owner(user_id: str) -> Mutation:
    def mutate(rec: Any) -> Optional[dict[str, Any]]:
        if user_id in (rec.owners or []):
            return None
        return {"owners": add_member(rec.owners, user_id)}

    return mutate


def removing_owner(user_id: str) -> Mutation:
    def mutate(rec: Any) -> Optional[dict[str, Any]]:
        if rec.owners is None or user_id not in rec.owners:
            return None
        return {"owners": remove_member(rec.owners, user_id)}

    return mutate


async def sync_list_owners(store: MembershipStore, trip_id: str, user_id: str, *, add: bool = True) -> int:
    """Add (or remove) `user_id` on every owner snapshot under the trip. Returns the failure count."""
    try:
        lists = await find_all(store, TripList, tripId=trip_id)
    except Exception as exc:
        logger.warning("list_owner_sync_skipped trip=%s user=%s error=%s", trip_id, user_id, exc)
        return 1

    mutate = adding_owner(user_id) if add else removing_owner(user_id)
    failures = 0
    for trip_list in lists:
        if not trip_list.keeps_owner_snapshot:
            continue
        try:
            await update_with_retry(store, trip_list, mutate)
        except Exception as exc:
            failures += 1
            logger.warning(
                "list_owner_sync_failed trip=%s list=%s user=%s error=%s",
                trip_id,
                trip_list.id,
                user_id,
                exc,
            )
    return failures
