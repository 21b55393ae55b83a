"""Shared dependencies for the membership routers."""

import uuid
from typing import Optional

from fastapi import Header, HTTPException, Request

from services.api.membership.access import AccessResolver
from services.api.membership.errors import Unauthenticated
from services.api.membership.invites import InviteService
from services.api.membership.store import MembershipStore
from services.api.membership.trips import TripService


async def require_actor(x_user_id: Optional[str] = Header(None, alias="X-User-Id")) -> str:
    """
    Actor identity as verified upstream.

    The gateway validates the bearer session token and forwards the subject
    claim in X-User-Id. No claim -> 401, always.
    """
    if x_user_id is None or not x_user_id.strip():
        raise Unauthenticated()
    return x_user_id.strip()


def request_id(request: Request) -> str:
    return getattr(request.state, "request_id", str(uuid.uuid4()))


def get_store(request: Request) -> MembershipStore:
    store = getattr(request.app.state, "store", None)
    if store is None:
        raise HTTPException(status_code=503, detail="Database unavailable")
    return store


def get_invite_service(request: Request) -> InviteService:
    return InviteService(get_store(request), request.app.state.rate_limiter)


def get_access_resolver(request: Request) -> AccessResolver:
    return AccessResolver(get_store(request))


def get_trip_service(request: Request) -> TripService:
    store = get_store(request)
    return TripService(store, AccessResolver(store))
