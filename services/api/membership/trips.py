"""
Trip lifecycle: creation, lists, likes, comments, member removal, deletion.

Deleting a trip is a saga over independent store calls, children first:

  for each list:  for each item: delete comments, delete item; delete list
  then deactivate the trip's invites, then delete the trip itself.

Invites are never deleted; they are kept for audit with isActive=False.
Every scan reads all pages, so no child is skipped past the store's
per-call cap.

Policy is decided up front: child deletions are best-effort (a failure is
logged and recorded in the report, the saga keeps going) and only the final
Trip delete is critical. A trip whose children partly survived is still
gone for every access check, since the chain no longer resolves.

Likes: likedBy and voteCount are written together in one version-checked
update; voteCount is always recomputed as len(likedBy).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Optional

from services.api.membership.access import AccessResolver, ResourceKind
from services.api.membership.errors import Internal, InvalidInput, NotFound, Unauthorized
from services.api.membership.graph import (
    find_all,
    load,
    sync_list_owners,
    update_with_retry,
)
from services.api.membership.records import (
    Comment,
    ListItem,
    Record,
    Trip,
    TripInvite,
    TripList,
    add_member,
    remove_member,
    utcnow,
)
from services.api.membership.store import MembershipStore

logger = logging.getLogger(__name__)

DEFAULT_LIST_NAME = "General"

_NAME_MAX_LEN = 200
_COMMENT_MAX_LEN = 2000


def validate_name(value: Any, field_name: str = "name") -> str:
    if not isinstance(value, str) or not value.strip():
        raise InvalidInput(f"{field_name} is required")
    name = value.strip()
    if len(name) > _NAME_MAX_LEN:
        raise InvalidInput(f"{field_name} is too long")
    return name


@dataclass
class DeleteReport:
    tripId: str
    deleted: dict[str, int] = field(default_factory=dict)
    invitesDeactivated: int = 0
    failures: list[str] = field(default_factory=list)

    def count(self, kind: str) -> None:
        self.deleted[kind] = self.deleted.get(kind, 0) + 1


class TripService:
    def __init__(
        self,
        store: MembershipStore,
        resolver: Optional[AccessResolver] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.resolver = resolver or AccessResolver(store)
        self.clock = clock

    # -- creation -----------------------------------------------------------

    async def create_trip(self, actor_id: str, name: str, cover_photo: Optional[str] = None) -> Trip:
        trip = Trip(
            name=name,
            owners=[actor_id],
            admins=[actor_id],
            createdBy=actor_id,
            coverPhoto=cover_photo,
        )
        await self._create(trip)
        # so the trip screen always has somewhere to add items
        await self._create(TripList(tripId=trip.id, name=DEFAULT_LIST_NAME, createdBy=actor_id, owners=[actor_id]))
        logger.info("trip_created trip=%s by=%s", trip.id, actor_id)
        return trip

    async def create_list(self, actor_id: str, trip_id: str, name: str) -> TripList:
        trip = await self._member_trip(trip_id, actor_id)
        trip_list = TripList(tripId=trip.id, name=name, createdBy=actor_id, owners=list(trip.owners))
        await self._create(trip_list)
        logger.info("list_created trip=%s list=%s by=%s", trip.id, trip_list.id, actor_id)
        return trip_list

    async def add_comment(self, actor_id: str, item_id: str, body: str) -> Comment:
        if not isinstance(body, str) or not body.strip():
            raise InvalidInput("body is required")
        if len(body) > _COMMENT_MAX_LEN:
            raise InvalidInput("body is too long")

        trip_id = await self._accessible_trip_id(ResourceKind.LIST_ITEM, item_id, actor_id)
        trip = await load(self.store, Trip, trip_id)
        comment = Comment(
            itemId=item_id,
            body=body.strip(),
            authorId=actor_id,
            createdAt=self.clock(),
            owners=list(trip.owners) if trip is not None else [actor_id],
        )
        await self._create(comment)
        return comment

    # -- likes --------------------------------------------------------------

    async def toggle_like(self, actor_id: str, item_id: str) -> ListItem:
        item = await load(self.store, ListItem, item_id)
        if item is None:
            raise NotFound("Item not found.")
        await self._accessible_trip_id(ResourceKind.LIST_ITEM, item_id, actor_id)

        def mutate(current: ListItem) -> dict[str, Any]:
            if actor_id in current.likedBy:
                liked_by = remove_member(current.likedBy, actor_id)
            else:
                liked_by = add_member(current.likedBy, actor_id)
            return {"likedBy": liked_by, "voteCount": len(liked_by)}

        return await update_with_retry(self.store, item, mutate)

    # -- membership edits ---------------------------------------------------

    async def remove_member(self, actor_id: str, trip_id: str, member_id: str) -> Trip:
        trip = await self._member_trip(trip_id, actor_id)
        if actor_id != member_id and not trip.is_admin(actor_id):
            raise Unauthorized("Only trip admins can remove other members.")
        if not trip.is_member(member_id):
            raise NotFound("Member not found.")

        def mutate(current: Trip) -> Optional[dict[str, Any]]:
            if member_id not in current.owners:
                return None
            owners = remove_member(current.owners, member_id)
            if not owners:
                raise InvalidInput("A trip must keep at least one member.")
            return {"owners": owners, "admins": remove_member(current.admins, member_id)}

        trip = await update_with_retry(self.store, trip, mutate)
        failures = await sync_list_owners(self.store, trip.id, member_id, add=False)
        logger.info(
            "member_removed trip=%s member=%s by=%s list_sync_failures=%d",
            trip.id,
            member_id,
            actor_id,
            failures,
        )
        return trip

    # -- deletion -----------------------------------------------------------

    async def delete_trip(self, actor_id: str, trip_id: str) -> DeleteReport:
        trip = await self._member_trip(trip_id, actor_id)
        report = DeleteReport(tripId=trip.id)

        for trip_list in await self._children(TripList, report, tripId=trip.id):
            for item in await self._children(ListItem, report, listId=trip_list.id):
                for comment in await self._children(Comment, report, itemId=item.id):
                    await self._delete_child(comment, report)
                await self._delete_child(item, report)
            await self._delete_child(trip_list, report)

        for invite in await self._children(TripInvite, report, tripId=trip.id, isActive=True):
            await self._deactivate_invite(invite, report)

        try:
            await self.store.delete(Trip, trip.id)
        except Exception as exc:
            logger.error("trip_delete_failed trip=%s by=%s error=%s", trip.id, actor_id, exc)
            raise Internal("Failed to delete trip.") from exc
        report.count(Trip.kind)

        logger.info(
            "trip_deleted trip=%s by=%s deleted=%s invites_deactivated=%d failures=%d",
            trip.id,
            actor_id,
            report.deleted,
            report.invitesDeactivated,
            len(report.failures),
        )
        return report

    # -- internals ----------------------------------------------------------

    async def _create(self, record: Record) -> None:
        try:
            await self.store.create(record)
        except Exception as exc:
            logger.error("store_create_failed kind=%s id=%s error=%s", record.kind, record.id, exc)
            raise Internal() from exc

    async def _member_trip(self, trip_id: str, actor_id: str) -> Trip:
        trip = await load(self.store, Trip, trip_id)
        if trip is None:
            raise NotFound("Trip not found.")
        if not trip.is_member(actor_id):
            raise Unauthorized()
        return trip

    async def _accessible_trip_id(self, kind: ResourceKind, resource_id: str, actor_id: str) -> str:
        trip_id = await self.resolver.resolve_trip_id(kind, resource_id)
        if trip_id is None:
            raise NotFound(f"{kind.value} not found.")
        if not await self.resolver.resolve_access(kind, resource_id, actor_id):
            raise Unauthorized()
        return trip_id

    async def _children(self, record_type: type[Record], report: DeleteReport, **filters: Any) -> list:
        try:
            return await find_all(self.store, record_type, **filters)
        except Exception as exc:
            report.failures.append(f"find {record_type.kind} {filters}")
            logger.warning("cascade_scan_failed kind=%s filters=%s error=%s", record_type.kind, filters, exc)
            return []

    async def _delete_child(self, record: Record, report: DeleteReport) -> None:
        try:
            await self.store.delete(type(record), record.id)
        except Exception as exc:
            report.failures.append(f"delete {record.kind} {record.id}")
            logger.warning("cascade_delete_failed kind=%s id=%s error=%s", record.kind, record.id, exc)
            return
        report.count(record.kind)

    async def _deactivate_invite(self, invite: TripInvite, report: DeleteReport) -> None:
        try:
            await self.store.update(TripInvite, invite.id, {"isActive": False})
        except Exception as exc:
            report.failures.append(f"deactivate TripInvite {invite.id}")
            logger.warning("cascade_deactivate_failed invite=%s error=%s", invite.id, exc)
            return
        report.invitesDeactivated += 1
