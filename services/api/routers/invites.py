"""
Invite flow for shared trips.

Endpoints:
  POST /invite/create     -- shareable link (7 days, 100 uses by default); reuses
                             the caller's live invite for the trip if one exists
  POST /invites/mint      -- personal invite (72h by default, single use)
  POST /invite/join       -- redeem an invite and join the trip
  POST /invites/redeem    -- same as /invite/join (accepts `token` as well)
  GET  /invite/info       -- preview shown before joining

Auth: X-User-Id header (verified subject claim forwarded by the gateway).

Status codes:
  400 malformed body / ids, 401 no identity, 403 not a member,
  404 invite or trip missing, 409 exhausted (or inactive, on preview),
  410 expired / gone, 429 rate limited.
"""

from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Depends, Query, Request
from pydantic import BaseModel

from services.api.membership.invites import (
    InviteService,
    mint_flow,
    parse_count,
    share_flow,
    validate_invite_id,
    validate_trip_id,
)
from services.api.routers._deps import get_invite_service, request_id, require_actor


router = APIRouter(tags=["invites"])


# ---------------------------------------------------------------------------
# Request / response models
# ---------------------------------------------------------------------------


class InviteCreateRequest(BaseModel):
    tripId: Any = None
    maxUses: Any = None


class InviteMintRequest(InviteCreateRequest):
    hours: Any = None


class InviteJoinRequest(BaseModel):
    inviteId: Any = None
    token: Any = None


class InviteResponse(BaseModel):
    success: bool
    data: dict
    requestId: str


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.post("/invite/create", response_model=InviteResponse)
async def create_invite(
    payload: InviteCreateRequest,
    request: Request,
    actor_id: str = Depends(require_actor),
    service: InviteService = Depends(get_invite_service),
) -> InviteResponse:
    """Create (or reuse) the caller's shareable invitation link for a trip."""
    trip_id = validate_trip_id(payload.tripId)
    max_uses = parse_count(payload.maxUses, "maxUses")

    issued = await service.issue(trip_id, actor_id, max_uses=max_uses, flow=share_flow())
    return InviteResponse(
        success=True,
        data={
            "inviteId": issued.inviteId,
            "expiresAt": issued.expiresAt.isoformat(),
            "reused": issued.reused,
            "message": "Using existing active invitation"
            if issued.reused
            else "Invitation link created successfully",
        },
        requestId=request_id(request),
    )


@router.post("/invites/mint", response_model=InviteResponse)
async def mint_invite(
    payload: InviteMintRequest,
    request: Request,
    actor_id: str = Depends(require_actor),
    service: InviteService = Depends(get_invite_service),
) -> InviteResponse:
    """Mint a short-lived personal invite."""
    trip_id = validate_trip_id(payload.tripId)
    max_uses = parse_count(payload.maxUses, "maxUses")
    hours = parse_count(payload.hours, "hours")

    issued = await service.issue(trip_id, actor_id, max_uses=max_uses, flow=mint_flow(hours))
    return InviteResponse(
        success=True,
        data={
            "inviteId": issued.inviteId,
            "expiresAt": issued.expiresAt.isoformat(),
            "reused": issued.reused,
        },
        requestId=request_id(request),
    )


async def _join(payload: InviteJoinRequest, request: Request, actor_id: str, service: InviteService) -> InviteResponse:
    raw_id: Optional[Any] = payload.inviteId if payload.inviteId is not None else payload.token
    invite_id = validate_invite_id(raw_id)

    joined = await service.redeem(invite_id, actor_id)
    return InviteResponse(
        success=True,
        data={
            "tripId": joined.tripId,
            "tripName": joined.tripName,
            "alreadyMember": joined.alreadyMember,
            "message": "You're already a member of this trip!"
            if joined.alreadyMember
            else "Successfully joined trip!",
        },
        requestId=request_id(request),
    )


@router.post("/invite/join", response_model=InviteResponse)
async def join_trip(
    payload: InviteJoinRequest,
    request: Request,
    actor_id: str = Depends(require_actor),
    service: InviteService = Depends(get_invite_service),
) -> InviteResponse:
    """Redeem an invite. Safe to retry: a second redemption by the same user is a no-op success."""
    return await _join(payload, request, actor_id, service)


@router.post("/invites/redeem", response_model=InviteResponse)
async def redeem_invite(
    payload: InviteJoinRequest,
    request: Request,
    actor_id: str = Depends(require_actor),
    service: InviteService = Depends(get_invite_service),
) -> InviteResponse:
    return await _join(payload, request, actor_id, service)


@router.get("/invite/info", response_model=InviteResponse)
async def invite_info(
    request: Request,
    inviteId: Optional[str] = Query(None),
    actor_id: str = Depends(require_actor),
    service: InviteService = Depends(get_invite_service),
) -> InviteResponse:
    """Trip preview for an invite. No member identities are exposed, only the count."""
    invite_id = validate_invite_id(inviteId)

    preview = await service.info(invite_id, actor_id)
    return InviteResponse(
        success=True,
        data={
            "tripId": preview.tripId,
            "tripName": preview.tripName,
            "coverPhoto": preview.coverPhoto,
            "memberCount": preview.memberCount,
            "expiresAt": preview.expiresAt.isoformat(),
            "alreadyMember": preview.alreadyMember,
        },
        requestId=request_id(request),
    )
