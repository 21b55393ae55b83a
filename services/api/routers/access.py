"""
Access helpers for clients and sibling services.

Endpoints:
  POST /auth/check-access  { resourceType, resourceId } -> { hasAccess }
  POST /auth/get-trip-id   { resourceType, resourceId } -> { tripId }

resourceType is one of Trip, List, ListItem, Comment, TripInvite.
Missing fields -> 422. Unknown type -> 400 on check-access; get-trip-id
answers tripId: null instead, since "no trip" is already a valid answer there.
"""

from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel

from services.api.membership.access import AccessResolver, ResourceKind
from services.api.membership.errors import MissingFields, UnsupportedResource
from services.api.routers._deps import get_access_resolver, request_id, require_actor

router = APIRouter(prefix="/auth", tags=["access"])


class ResourceRequest(BaseModel):
    resourceType: Any = None
    resourceId: Any = None


class AccessResponse(BaseModel):
    success: bool
    data: dict
    requestId: str


def _require_fields(payload: Optional[ResourceRequest]) -> tuple[str, str]:
    # no body at all counts as missing fields, same as {}
    if payload is None or not payload.resourceType or not payload.resourceId:
        raise MissingFields("resourceType and resourceId required")
    return str(payload.resourceType), str(payload.resourceId)


@router.post("/check-access", response_model=AccessResponse)
async def check_access(
    request: Request,
    payload: Optional[ResourceRequest] = None,
    actor_id: str = Depends(require_actor),
    resolver: AccessResolver = Depends(get_access_resolver),
) -> AccessResponse:
    resource_type, resource_id = _require_fields(payload)
    kind = ResourceKind.parse(resource_type)

    has_access = await resolver.resolve_access(kind, resource_id, actor_id)
    return AccessResponse(
        success=True,
        data={"hasAccess": has_access, "resourceType": kind.value, "resourceId": resource_id},
        requestId=request_id(request),
    )


@router.post("/get-trip-id", response_model=AccessResponse)
async def get_trip_id(
    request: Request,
    payload: Optional[ResourceRequest] = None,
    actor_id: str = Depends(require_actor),
    resolver: AccessResolver = Depends(get_access_resolver),
) -> AccessResponse:
    resource_type, resource_id = _require_fields(payload)
    try:
        kind = ResourceKind.parse(resource_type)
    except UnsupportedResource:
        trip_id = None
    else:
        trip_id = await resolver.resolve_trip_id(kind, resource_id)

    return AccessResponse(
        success=True,
        data={"tripId": trip_id, "resourceType": resource_type, "resourceId": resource_id},
        requestId=request_id(request),
    )
