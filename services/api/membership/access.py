"""
Authorization resolver -- walks the containment chain up to the owning Trip.

Chain per resource kind:
  Trip       -> itself
  List       -> list.tripId
  ListItem   -> item.listId -> list.tripId
  Comment    -> comment.itemId -> item.listId -> list.tripId
  TripInvite -> invite.tripId

Access is granted iff the actor is in the resolved Trip's owners. A
Comment also grants access to its own author, whatever their membership.

A miss anywhere along the chain (dangling reference, deleted parent, store
error) resolves to None / False. Callers treat an unresolved chain as "no
access", never as a system error. Nothing is cached: every hop is a fresh
store read.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Optional

from services.api.membership.errors import UnsupportedResource
from services.api.membership.records import Comment, ListItem, Trip, TripInvite, TripList
from services.api.membership.store import MembershipStore

logger = logging.getLogger(__name__)


class ResourceKind(str, Enum):
    TRIP = "Trip"
    LIST = "List"
    LIST_ITEM = "ListItem"
    COMMENT = "Comment"
    TRIP_INVITE = "TripInvite"

    @classmethod
    def parse(cls, value: str) -> "ResourceKind":
        try:
            return cls(value)
        except ValueError:
            raise UnsupportedResource(f"Unsupported resource type: {value}") from None


class AccessResolver:
    def __init__(self, store: MembershipStore):
        self.store = store

    async def resolve_trip_id(self, kind: ResourceKind, resource_id: str) -> Optional[str]:
        try:
            return await self._walk(kind, resource_id)
        except Exception as exc:
            logger.warning(
                "trip_resolution_failed kind=%s id=%s error=%s",
                kind.value,
                resource_id,
                exc,
            )
            return None

    async def resolve_access(self, kind: ResourceKind, resource_id: str, actor_id: str) -> bool:
        try:
            if kind is ResourceKind.COMMENT:
                comment = await self.store.get(Comment, resource_id)
                if comment is None:
                    return False
                if comment.authorId == actor_id:
                    return True
                trip_id = await self._trip_id_for_item(comment.itemId)
            else:
                trip_id = await self._walk(kind, resource_id)

            if trip_id is None:
                return False
            trip = await self.store.get(Trip, trip_id)
            return trip is not None and trip.is_member(actor_id)
        except Exception as exc:
            logger.warning(
                "access_check_failed kind=%s id=%s actor=%s error=%s",
                kind.value,
                resource_id,
                actor_id,
                exc,
            )
            return False

    async def _walk(self, kind: ResourceKind, resource_id: str) -> Optional[str]:
        if kind is ResourceKind.TRIP:
            return resource_id
        if kind is ResourceKind.LIST:
            return await self._trip_id_for_list(resource_id)
        if kind is ResourceKind.LIST_ITEM:
            return await self._trip_id_for_item(resource_id)
        if kind is ResourceKind.COMMENT:
            comment = await self.store.get(Comment, resource_id)
            if comment is None or not comment.itemId:
                return None
            return await self._trip_id_for_item(comment.itemId)
        if kind is ResourceKind.TRIP_INVITE:
            invite = await self.store.get(TripInvite, resource_id)
            return invite.tripId if invite is not None else None
        raise UnsupportedResource(f"Unsupported resource type: {kind}")

    async def _trip_id_for_list(self, list_id: str) -> Optional[str]:
        trip_list = await self.store.get(TripList, list_id)
        if trip_list is None or not trip_list.tripId:
            return None
        return trip_list.tripId

    async def _trip_id_for_item(self, item_id: str) -> Optional[str]:
        item = await self.store.get(ListItem, item_id)
        if item is None or not item.listId:
            return None
        return await self._trip_id_for_list(item.listId)
