"""
Access resolver tests.

Validates:
- Every resource kind walks to the owning trip
- Owners get access; outsiders do not
- Comment authors keep access to their own comment
- Dangling references and store errors resolve to "no access", never raise
- Membership changes are visible on the next check (nothing cached)
"""

import pytest

from services.api.membership.access import AccessResolver, ResourceKind
from services.api.membership.errors import UnsupportedResource
from services.api.membership.records import ListItem, Trip, TripList
from services.api.tests.helpers.factories import (
    ALICE,
    BOB,
    CAROL,
    make_comment,
    make_invite,
    make_item,
    make_list,
)


@pytest.fixture
def resolver(store):
    return AccessResolver(store)


def _targets(graph):
    return [
        (ResourceKind.TRIP, graph["trip"].id),
        (ResourceKind.LIST, graph["list"].id),
        (ResourceKind.LIST, graph["inheriting_list"].id),
        (ResourceKind.LIST_ITEM, graph["item"].id),
        (ResourceKind.COMMENT, graph["comment"].id),
    ]


class TestResolveTripId:
    async def test_every_kind_resolves_to_owning_trip(self, resolver, graph):
        for kind, resource_id in _targets(graph):
            assert await resolver.resolve_trip_id(kind, resource_id) == graph["trip"].id

    async def test_invite_resolves_to_its_trip(self, resolver, store, graph):
        invite = store.put(make_invite(graph["trip"].id))
        assert await resolver.resolve_trip_id(ResourceKind.TRIP_INVITE, invite.id) == graph["trip"].id

    async def test_trip_resolves_to_itself_without_reading(self, resolver):
        assert await resolver.resolve_trip_id(ResourceKind.TRIP, "any-trip-id") == "any-trip-id"

    async def test_missing_resource(self, resolver):
        assert await resolver.resolve_trip_id(ResourceKind.LIST_ITEM, "ghost") is None

    async def test_dangling_list_reference(self, resolver, store):
        orphan = store.put(make_item("deleted-list-id"))
        assert await resolver.resolve_trip_id(ResourceKind.LIST_ITEM, orphan.id) is None

    async def test_dangling_item_reference(self, resolver, store):
        orphan = store.put(make_comment("deleted-item-id", author_id=BOB))
        assert await resolver.resolve_trip_id(ResourceKind.COMMENT, orphan.id) is None

    async def test_store_error_resolves_to_none(self, resolver, store, graph):
        store.fail_reads.add(("List", graph["list"].id))
        assert await resolver.resolve_trip_id(ResourceKind.LIST_ITEM, graph["item"].id) is None


class TestResolveAccess:
    async def test_owner_has_access_to_everything(self, resolver, graph):
        for kind, resource_id in _targets(graph):
            assert await resolver.resolve_access(kind, resource_id, ALICE) is True

    async def test_outsider_has_access_to_nothing(self, resolver, graph):
        for kind, resource_id in _targets(graph):
            assert await resolver.resolve_access(kind, resource_id, CAROL) is False

    async def test_inheriting_list_uses_trip_owners(self, resolver, store, graph):
        """A list with no owner snapshot follows the trip's owners."""
        await store.update(Trip, graph["trip"].id, {"owners": [ALICE, BOB]})
        assert await resolver.resolve_access(ResourceKind.LIST, graph["inheriting_list"].id, BOB) is True

    async def test_stale_list_snapshot_does_not_grant_access(self, resolver, store, graph):
        """Access comes from the trip, not from a list's owner snapshot."""
        stale = store.put(make_list(graph["trip"].id, owners=[ALICE, CAROL]))
        assert await resolver.resolve_access(ResourceKind.LIST, stale.id, CAROL) is False

    async def test_comment_author_keeps_access_after_leaving(self, resolver, store, graph):
        comment = store.put(make_comment(graph["item"].id, author_id=BOB))
        assert await resolver.resolve_access(ResourceKind.COMMENT, comment.id, BOB) is True
        assert await resolver.resolve_access(ResourceKind.LIST_ITEM, graph["item"].id, BOB) is False

    async def test_comment_author_on_dangling_chain(self, resolver, store):
        comment = store.put(make_comment("deleted-item-id", author_id=BOB))
        assert await resolver.resolve_access(ResourceKind.COMMENT, comment.id, BOB) is True
        assert await resolver.resolve_access(ResourceKind.COMMENT, comment.id, ALICE) is False

    async def test_invite_access_follows_trip(self, resolver, store, graph):
        invite = store.put(make_invite(graph["trip"].id))
        assert await resolver.resolve_access(ResourceKind.TRIP_INVITE, invite.id, ALICE) is True
        assert await resolver.resolve_access(ResourceKind.TRIP_INVITE, invite.id, CAROL) is False

    async def test_deleted_trip_denies_everyone(self, resolver, store, graph):
        await store.delete(Trip, graph["trip"].id)
        for kind, resource_id in _targets(graph)[1:4]:
            assert await resolver.resolve_access(kind, resource_id, ALICE) is False

    async def test_store_error_denies(self, resolver, store, graph):
        store.fail_reads.add(("Trip", graph["trip"].id))
        assert await resolver.resolve_access(ResourceKind.LIST, graph["list"].id, ALICE) is False

    async def test_membership_change_is_seen_immediately(self, resolver, store, graph):
        item_id = graph["item"].id
        assert await resolver.resolve_access(ResourceKind.LIST_ITEM, item_id, BOB) is False

        await store.update(Trip, graph["trip"].id, {"owners": [ALICE, BOB]})
        assert await resolver.resolve_access(ResourceKind.LIST_ITEM, item_id, BOB) is True

        await store.update(Trip, graph["trip"].id, {"owners": [ALICE]})
        assert await resolver.resolve_access(ResourceKind.LIST_ITEM, item_id, BOB) is False

    async def test_moving_an_item_changes_its_trip(self, resolver, store, graph):
        other = store.put(make_list("other-trip", owners=[CAROL]))
        store.put(Trip(id="other-trip", name="Porto", owners=[CAROL], admins=[CAROL]))

        await store.update(ListItem, graph["item"].id, {"listId": other.id})

        assert await resolver.resolve_trip_id(ResourceKind.LIST_ITEM, graph["item"].id) == "other-trip"
        assert await resolver.resolve_access(ResourceKind.LIST_ITEM, graph["item"].id, CAROL) is True
        assert await resolver.resolve_access(ResourceKind.LIST_ITEM, graph["item"].id, ALICE) is False

    async def test_list_without_trip_reference(self, resolver, store):
        broken = store.put(TripList(tripId="", name="Broken", owners=[ALICE]))
        assert await resolver.resolve_access(ResourceKind.LIST, broken.id, ALICE) is False


class TestResourceKind:
    @pytest.mark.parametrize("value", ["Trip", "List", "ListItem", "Comment", "TripInvite"])
    def test_known_kinds_parse(self, value):
        assert ResourceKind.parse(value).value == value

    @pytest.mark.parametrize("value", ["trip", "Photo", ""])
    def test_unknown_kinds_rejected(self, value):
        with pytest.raises(UnsupportedResource):
            ResourceKind.parse(value)
