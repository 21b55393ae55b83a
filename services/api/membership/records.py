"""
Plain records for the membership graph: Trip -> TripList -> ListItem -> Comment,
plus the TripInvite token record.

These are what the store hands back to services. Set-valued fields
(owners, admins, likedBy, usedBy) are kept as lists with no duplicates;
order carries no meaning.

TripInvite invariants:
  - usedCount never decreases and equals len(usedBy) (one use per user).
  - once isActive is False the invite is terminal.
  - a redemption after expiresAt fails whatever the remaining uses.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import ClassVar, Optional


def _new_id() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def add_member(members: list[str] | None, user_id: str) -> list[str]:
    """Set-union of one id into a member list. Returns a new list."""
    current = list(members or [])
    if user_id not in current:
        current.append(user_id)
    return current


def remove_member(members: list[str] | None, user_id: str) -> list[str]:
    return [m for m in (members or []) if m != user_id]


@dataclass
class Record:
    kind: ClassVar[str] = ""

    id: str = field(default_factory=_new_id)
    version: int = 1


@dataclass
class Trip(Record):
    kind: ClassVar[str] = "Trip"

    name: str = ""
    owners: list[str] = field(default_factory=list)
    admins: list[str] = field(default_factory=list)
    createdBy: str = ""
    coverPhoto: Optional[str] = None

    def is_member(self, user_id: str) -> bool:
        return user_id in self.owners

    def is_admin(self, user_id: str) -> bool:
        return user_id in self.admins


@dataclass
class TripList(Record):
    kind: ClassVar[str] = "List"

    tripId: str = ""
    name: str = ""
    createdBy: str = ""
    owners: Optional[list[str]] = None

    @property
    def keeps_owner_snapshot(self) -> bool:
        return self.owners is not None


@dataclass
class ListItem(Record):
    kind: ClassVar[str] = "ListItem"

    listId: str = ""
    title: str = ""
    note: Optional[str] = None
    createdBy: str = ""
    owners: Optional[list[str]] = None
    likedBy: list[str] = field(default_factory=list)
    voteCount: int = 0
    placeId: Optional[str] = None
    placeName: Optional[str] = None
    placeAddress: Optional[str] = None
    placeTypes: Optional[list[str]] = None
    placeRating: Optional[float] = None
    placePhotoReference: Optional[str] = None


@dataclass
class Comment(Record):
    kind: ClassVar[str] = "Comment"

    itemId: str = ""
    body: str = ""
    authorId: str = ""
    createdAt: datetime = field(default_factory=utcnow)
    owners: Optional[list[str]] = None


@dataclass
class TripInvite(Record):
    kind: ClassVar[str] = "TripInvite"

    tripId: str = ""
    createdBy: str = ""
    expiresAt: datetime = field(default_factory=utcnow)
    maxUses: Optional[int] = None
    usedCount: int = 0
    usedBy: list[str] = field(default_factory=list)
    isActive: bool = True
    createdAt: datetime = field(default_factory=utcnow)

    def is_expired(self, now: datetime) -> bool:
        return now > self.expiresAt

    def is_exhausted(self) -> bool:
        return self.maxUses is not None and self.usedCount >= self.maxUses

    def has_been_used_by(self, user_id: str) -> bool:
        return user_id in self.usedBy


RECORD_TYPES: tuple[type[Record], ...] = (Trip, TripList, ListItem, Comment, TripInvite)
