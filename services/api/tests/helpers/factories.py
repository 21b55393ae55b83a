"""
Factory functions for the membership graph -- one per record kind.

Every factory takes keyword overrides for any field.
"""

from datetime import datetime, timedelta, timezone
from typing import Any

from services.api.membership.records import (
    Comment,
    ListItem,
    Trip,
    TripInvite,
    TripList,
)

ALICE = "user-alice"
BOB = "user-bob"
CAROL = "user-carol"
MALLORY = "user-mallory"

T0 = datetime(2026, 6, 1, 12, 0, tzinfo=timezone.utc)


def make_trip(owners: list[str] | None = None, **overrides: Any) -> Trip:
    owners = owners if owners is not None else [ALICE]
    base = {
        "name": "Lisbon Long Weekend",
        "owners": list(owners),
        "admins": list(owners[:1]),
        "createdBy": owners[0] if owners else ALICE,
    }
    base.update(overrides)
    return Trip(**base)


def make_list(trip_id: str, owners: list[str] | None = None, **overrides: Any) -> TripList:
    base = {"tripId": trip_id, "name": "General", "createdBy": ALICE, "owners": owners}
    base.update(overrides)
    return TripList(**base)


def make_item(list_id: str, **overrides: Any) -> ListItem:
    base = {
        "listId": list_id,
        "title": "Time Out Market",
        "createdBy": ALICE,
        "owners": [ALICE],
        "placeId": "ChIJ-time-out-market",
        "placeName": "Time Out Market Lisboa",
    }
    base.update(overrides)
    return ListItem(**base)


def make_comment(item_id: str, author_id: str = ALICE, **overrides: Any) -> Comment:
    base = {"itemId": item_id, "body": "Go early, it gets packed.", "authorId": author_id}
    base.update(overrides)
    return Comment(**base)


def make_invite(trip_id: str, created_by: str = ALICE, **overrides: Any) -> TripInvite:
    base = {
        "id": "a1b2c3d4e5f60718293a4b5c6d7e8f90",
        "tripId": trip_id,
        "createdBy": created_by,
        "expiresAt": T0 + timedelta(hours=1),
        "maxUses": 1,
        "usedCount": 0,
        "usedBy": [],
        "isActive": True,
        "createdAt": T0,
    }
    base.update(overrides)
    return TripInvite(**base)


def auth(user_id: str) -> dict[str, str]:
    return {"X-User-Id": user_id}
