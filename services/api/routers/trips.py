"""
Trip lifecycle endpoints.

Endpoints:
  POST   /trips                          -- create a trip (caller becomes sole owner + admin)
  DELETE /trips/{trip_id}                -- cascading delete (owners only)
  POST   /trips/{trip_id}/lists          -- add a list; its owners snapshot copies the trip's
  DELETE /trips/{trip_id}/members/{uid}  -- remove a member (admins, or yourself)
  POST   /items/{item_id}/like           -- toggle the caller's like
  POST   /items/{item_id}/comments       -- comment on an item
"""

from __future__ import annotations

from dataclasses import asdict
from typing import Any

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel

from services.api.membership.records import Record
from services.api.membership.trips import TripService, validate_name
from services.api.routers._deps import get_trip_service, request_id, require_actor

router = APIRouter(tags=["trips"])


class TripCreateRequest(BaseModel):
    name: Any = None
    coverPhoto: Any = None


class ListCreateRequest(BaseModel):
    name: Any = None


class CommentCreateRequest(BaseModel):
    body: Any = None


class TripResponse(BaseModel):
    success: bool
    data: dict
    requestId: str


def _serialize(record: Record) -> dict:
    data = asdict(record)
    data.pop("version", None)
    for key, value in data.items():
        if hasattr(value, "isoformat"):
            data[key] = value.isoformat()
    return data


@router.post("/trips", response_model=TripResponse)
async def create_trip(
    payload: TripCreateRequest,
    request: Request,
    actor_id: str = Depends(require_actor),
    service: TripService = Depends(get_trip_service),
) -> TripResponse:
    name = validate_name(payload.name)
    cover_photo = payload.coverPhoto if isinstance(payload.coverPhoto, str) else None

    trip = await service.create_trip(actor_id, name, cover_photo)
    return TripResponse(success=True, data=_serialize(trip), requestId=request_id(request))


@router.delete("/trips/{trip_id}", response_model=TripResponse)
async def delete_trip(
    trip_id: str,
    request: Request,
    actor_id: str = Depends(require_actor),
    service: TripService = Depends(get_trip_service),
) -> TripResponse:
    report = await service.delete_trip(actor_id, trip_id)
    return TripResponse(success=True, data=asdict(report), requestId=request_id(request))


@router.post("/trips/{trip_id}/lists", response_model=TripResponse)
async def create_list(
    trip_id: str,
    payload: ListCreateRequest,
    request: Request,
    actor_id: str = Depends(require_actor),
    service: TripService = Depends(get_trip_service),
) -> TripResponse:
    name = validate_name(payload.name)

    trip_list = await service.create_list(actor_id, trip_id, name)
    return TripResponse(success=True, data=_serialize(trip_list), requestId=request_id(request))


@router.delete("/trips/{trip_id}/members/{member_id}", response_model=TripResponse)
async def remove_member(
    trip_id: str,
    member_id: str,
    request: Request,
    actor_id: str = Depends(require_actor),
    service: TripService = Depends(get_trip_service),
) -> TripResponse:
    trip = await service.remove_member(actor_id, trip_id, member_id)
    return TripResponse(success=True, data=_serialize(trip), requestId=request_id(request))


@router.post("/items/{item_id}/like", response_model=TripResponse)
async def toggle_like(
    item_id: str,
    request: Request,
    actor_id: str = Depends(require_actor),
    service: TripService = Depends(get_trip_service),
) -> TripResponse:
    item = await service.toggle_like(actor_id, item_id)
    return TripResponse(
        success=True,
        data={
            "itemId": item.id,
            "liked": actor_id in item.likedBy,
            "voteCount": item.voteCount,
        },
        requestId=request_id(request),
    )


@router.post("/items/{item_id}/comments", response_model=TripResponse)
async def add_comment(
    item_id: str,
    payload: CommentCreateRequest,
    request: Request,
    actor_id: str = Depends(require_actor),
    service: TripService = Depends(get_trip_service),
) -> TripResponse:
    comment = await service.add_comment(actor_id, item_id, payload.body)
    return TripResponse(success=True, data=_serialize(comment), requestId=request_id(request))
