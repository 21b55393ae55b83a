"""Liveness check."""

from fastapi import APIRouter, Request

from services.api.config import settings
from services.api.routers._deps import request_id

router = APIRouter(tags=["health"])


@router.get("/health")
async def health(request: Request) -> dict:
    return {
        "success": True,
        "data": {"status": "healthy", "version": settings.app_version},
        "requestId": request_id(request),
    }
