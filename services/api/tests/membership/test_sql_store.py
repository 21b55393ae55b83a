"""
SQLMembershipStore tests against a mocked AsyncSession.

Validates:
- get maps ORM rows into records, None on miss
- find applies filters and the default row cap
- update is version-guarded when expected_version is given, and always bumps version
- update/delete report whether a row was touched
- one session per call, committed after writes
"""

from datetime import timedelta
from types import SimpleNamespace

import pytest

from services.api.membership.records import Trip, TripInvite, TripList
from services.api.membership.store import SQLMembershipStore
from services.api.tests.helpers.factories import ALICE, BOB, T0
from services.api.tests.helpers.mock_sa import MockSASession


def _sql(stmt) -> str:
    return str(stmt)


@pytest.fixture
def session():
    return MockSASession()


@pytest.fixture
def sql_store(session):
    return SQLMembershipStore(session.factory)


def _trip_row(**overrides):
    base = {
        "id": "trip-1",
        "name": "Lisbon",
        "owners": [ALICE],
        "admins": [ALICE],
        "createdBy": ALICE,
        "coverPhoto": None,
        "version": 3,
    }
    base.update(overrides)
    return SimpleNamespace(**base)


class TestReads:
    async def test_get_maps_row_to_record(self, sql_store, session):
        session.returns_one(_trip_row())

        trip = await sql_store.get(Trip, "trip-1")

        assert isinstance(trip, Trip)
        assert trip.owners == [ALICE]
        assert trip.version == 3
        assert "trips.id" in _sql(session.last_statement())

    async def test_get_miss(self, sql_store, session):
        session.returns_none()
        assert await sql_store.get(Trip, "ghost") is None

    async def test_find_filters_and_caps(self, sql_store, session):
        rows = [
            SimpleNamespace(id=f"list-{i}", tripId="trip-1", name="L", createdBy=ALICE, owners=None, version=1)
            for i in range(2)
        ]
        session.returns_many(rows)

        found = await sql_store.find(TripList, tripId="trip-1")

        assert [r.id for r in found] == ["list-0", "list-1"]
        assert all(r.keeps_owner_snapshot is False for r in found)
        sql = _sql(session.last_statement())
        assert 'lists."tripId"' in sql
        assert "LIMIT" in sql

    async def test_find_pages_in_id_order(self, sql_store, session):
        session.returns_many([])

        await sql_store.find(TripList, limit=5, offset=10, tripId="trip-1")

        stmt = session.last_statement()
        sql = _sql(stmt)
        assert "ORDER BY lists.id" in sql
        assert "OFFSET" in sql
        params = set(stmt.compile().params.values())
        assert {5, 10, "trip-1"} <= params

    async def test_each_call_opens_its_own_session(self, sql_store, session):
        session.returns_none().returns_none()
        await sql_store.get(Trip, "a")
        await sql_store.get(Trip, "b")
        assert session.opened == 2


class TestWrites:
    async def test_create_inserts_and_commits(self, sql_store, session):
        invite = TripInvite(
            id="f" * 32,
            tripId="trip-1",
            createdBy=ALICE,
            expiresAt=T0 + timedelta(days=7),
            maxUses=100,
            createdAt=T0,
        )

        created = await sql_store.create(invite)

        assert created is invite
        assert "INSERT INTO trip_invites" in _sql(session.last_statement())
        session.mock.commit.assert_awaited_once()

    async def test_versioned_update(self, sql_store, session):
        session.returns_rowcount(1)

        applied = await sql_store.update(Trip, "trip-1", {"owners": [ALICE, BOB]}, expected_version=3)

        assert applied is True
        sql = _sql(session.last_statement())
        assert "UPDATE trips" in sql
        assert "trips.version =" in sql
        assert "trips.version + " in sql
        session.mock.commit.assert_awaited_once()

    async def test_stale_version_is_not_applied(self, sql_store, session):
        session.returns_rowcount(0)

        applied = await sql_store.update(TripInvite, "f" * 32, {"usedCount": 1}, expected_version=1)
        assert applied is False

    async def test_unconditional_update_has_no_version_guard(self, sql_store, session):
        session.returns_rowcount(1)

        await sql_store.update(TripInvite, "f" * 32, {"isActive": False})

        where = _sql(session.last_statement()).split("WHERE", 1)[1]
        assert "version" not in where

    async def test_delete_reports_miss(self, sql_store, session):
        session.returns_rowcount(0)
        assert await sql_store.delete(Trip, "ghost") is False

    async def test_delete_hit(self, sql_store, session):
        session.returns_rowcount(1)
        assert await sql_store.delete(Trip, "trip-1") is True
        assert "DELETE FROM trips" in _sql(session.last_statement())

    async def test_driver_error_propagates(self, sql_store, session):
        session.raises(RuntimeError("connection reset"))
        with pytest.raises(RuntimeError):
            await sql_store.get(Trip, "trip-1")
