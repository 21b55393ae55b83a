"""
Invite issuance, redemption and preview.

Issuance -- issue(trip_id, actor_id, max_uses, flow):
  rate limit -> trip exists (404) -> actor is an owner (403)
  -> reuse the actor's live invite for this trip if there is one
     (expired or used-up invites still flagged active are deactivated)
  -> else mint a fresh token

Redemption -- redeem(invite_id, actor_id), checks in this order, first failure wins:
  1. invite exists                         NotFound
  2. invite.isActive                       Gone
  3. not past expiresAt                    Expired   (flips isActive off)
  4. actor already in usedBy               idempotent success, counters untouched
  5. usedCount < maxUses                   Exhausted (flips isActive off)
  6. trip still exists                     NotFound
  then: claim a use on the invite, add the actor to Trip.owners,
  push the actor into each list's owner snapshot (best-effort).

The use is claimed with a version-checked write before membership is
touched. A lost race re-reads the invite and re-runs checks 2-5, so two
redemptions can never both take the last slot and one user is never
counted twice. If the trip write fails after the claim, the caller gets
Internal; a retry lands on check 4, which re-asserts membership.

Tokens: 16 bytes of CSPRNG output, hex-encoded (32 chars). The token is
also the record id.
"""

from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Callable, Optional

from services.api.config import settings
from services.api.membership.errors import (
    Conflict,
    Exhausted,
    Expired,
    Gone,
    Internal,
    InvalidInput,
    NotFound,
    RateLimited,
    Unauthorized,
)
from services.api.membership.graph import (
    adding_owner,
    find_all,
    load,
    sync_list_owners,
    update_with_retry,
    write,
)
from services.api.membership.records import Trip, TripInvite, add_member, utcnow
from services.api.membership.store import MembershipStore
from services.api.middleware.rate_limit import RateLimiter

logger = logging.getLogger(__name__)

_INVITE_ID_MIN_LEN = 10
_INVITE_ID_MAX_LEN = 100
_TRIP_ID_MAX_LEN = 100


# ---------------------------------------------------------------------------
# Flows
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class InviteFlow:
    """How long a minted invite lives and how many uses it gets by default."""

    name: str
    ttl: timedelta
    default_max_uses: int


def share_flow() -> InviteFlow:
    """The in-app "share trip" link: long-lived, many uses."""
    return InviteFlow(
        name="share",
        ttl=timedelta(hours=settings.invite_share_ttl_hours),
        default_max_uses=settings.invite_share_default_max_uses,
    )


def mint_flow(hours: Optional[int] = None) -> InviteFlow:
    """Single-use personal invite; lifetime overridable in hours."""
    ttl_hours = settings.invite_mint_ttl_hours
    if hours is not None:
        ttl_hours = min(max(hours, 1), settings.invite_mint_max_hours)
    return InviteFlow(
        name="mint",
        ttl=timedelta(hours=ttl_hours),
        default_max_uses=settings.invite_mint_default_max_uses,
    )


# ---------------------------------------------------------------------------
# Boundary validation
# ---------------------------------------------------------------------------


def validate_trip_id(value: Any) -> str:
    if not isinstance(value, str) or not value or len(value) >= _TRIP_ID_MAX_LEN:
        raise InvalidInput("Invalid trip ID format")
    return value


def validate_invite_id(value: Any) -> str:
    if (
        not isinstance(value, str)
        or len(value) < _INVITE_ID_MIN_LEN
        or len(value) > _INVITE_ID_MAX_LEN
    ):
        raise InvalidInput("Invalid invite ID format")
    return value


def parse_count(value: Any, field_name: str) -> Optional[int]:
    """Accept an int or an integer string; None passes through. Anything else is a 400."""
    if value is None:
        return None
    if isinstance(value, bool):
        raise InvalidInput(f"{field_name} must be a number")
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            pass
    raise InvalidInput(f"{field_name} must be a number")


def generate_invite_code() -> str:
    return secrets.token_hex(16)


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


@dataclass
class IssuedInvite:
    inviteId: str
    expiresAt: datetime
    reused: bool = False


@dataclass
class Redemption:
    tripId: str
    tripName: str
    alreadyMember: bool = False


@dataclass
class InvitePreview:
    tripId: str
    tripName: str
    coverPhoto: Optional[str]
    memberCount: int
    expiresAt: datetime
    alreadyMember: bool


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class InviteService:
    def __init__(
        self,
        store: MembershipStore,
        rate_limiter: RateLimiter,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.rate_limiter = rate_limiter
        self.clock = clock

    async def issue(
        self,
        trip_id: str,
        actor_id: str,
        max_uses: Optional[int] = None,
        flow: Optional[InviteFlow] = None,
    ) -> IssuedInvite:
        flow = flow or share_flow()

        allowed = await self.rate_limiter.allow(
            f"invite:create:{actor_id}",
            settings.rate_limit_invite_create,
            settings.rate_limit_window_ms,
        )
        if not allowed:
            raise RateLimited("Too many invite creation requests. Please wait a minute.")

        trip = await load(self.store, Trip, trip_id)
        if trip is None:
            raise NotFound("Trip not found.")
        if not trip.is_member(actor_id):
            raise Unauthorized("You cannot create invitations for this trip.")

        now = self.clock()
        existing = await self._live_invite(trip_id, actor_id, now)
        if existing is not None:
            logger.info("invite_reused trip=%s by=%s invite=%s", trip_id, actor_id, existing.id)
            return IssuedInvite(inviteId=existing.id, expiresAt=existing.expiresAt, reused=True)

        if max_uses is None:
            max_uses = flow.default_max_uses
        max_uses = min(max(max_uses, 1), settings.invite_max_uses_ceiling)

        invite = TripInvite(
            id=generate_invite_code(),
            tripId=trip_id,
            createdBy=actor_id,
            expiresAt=now + flow.ttl,
            maxUses=max_uses,
            usedCount=0,
            usedBy=[],
            isActive=True,
            createdAt=now,
        )
        try:
            await self.store.create(invite)
        except Exception as exc:
            logger.error("invite_create_failed trip=%s by=%s error=%s", trip_id, actor_id, exc)
            raise Internal("Failed to create invitation link.") from exc

        logger.info(
            "invite_created trip=%s by=%s invite=%s flow=%s max_uses=%s",
            trip_id,
            actor_id,
            invite.id,
            flow.name,
            max_uses,
        )
        return IssuedInvite(inviteId=invite.id, expiresAt=invite.expiresAt)

    async def redeem(self, invite_id: str, actor_id: str) -> Redemption:
        allowed = await self.rate_limiter.allow(
            f"invite:join:{actor_id}",
            settings.rate_limit_invite_join,
            settings.rate_limit_window_ms,
        )
        if not allowed:
            raise RateLimited("Too many join attempts. Please wait a minute.")

        for attempt in range(settings.store_cas_retries):
            invite = await load(self.store, TripInvite, invite_id)
            if invite is None:
                raise NotFound("Invitation not found.")
            if not invite.isActive:
                raise Gone()

            if invite.is_expired(self.clock()):
                await self._deactivate(invite, reason="expired")
                raise Expired()

            if invite.has_been_used_by(actor_id):
                return await self._reenter(invite, actor_id)

            if invite.is_exhausted():
                await self._deactivate(invite, reason="exhausted")
                raise Exhausted()

            trip = await load(self.store, Trip, invite.tripId)
            if trip is None:
                raise NotFound("Trip not found.")

            claimed = await write(
                self.store,
                TripInvite,
                invite.id,
                {
                    "usedBy": add_member(invite.usedBy, actor_id),
                    "usedCount": invite.usedCount + 1,
                },
                expected_version=invite.version,
            )
            if claimed:
                break
            logger.info(
                "invite_claim_conflict invite=%s user=%s attempt=%d",
                invite_id,
                actor_id,
                attempt + 1,
            )
        else:
            logger.error("invite_claim_gave_up invite=%s user=%s", invite_id, actor_id)
            raise Internal("Failed to join trip.")

        already_member = trip.is_member(actor_id)
        trip = await update_with_retry(self.store, trip, adding_owner(actor_id))
        failures = await sync_list_owners(self.store, trip.id, actor_id)

        logger.info(
            "trip_joined trip=%s user=%s via_invite=%s list_sync_failures=%d",
            trip.id,
            actor_id,
            invite_id,
            failures,
        )
        return Redemption(tripId=trip.id, tripName=trip.name, alreadyMember=already_member)

    async def info(self, invite_id: str, actor_id: str) -> InvitePreview:
        """Preview shown before joining. Read-only: never flips isActive."""
        invite = await load(self.store, TripInvite, invite_id)
        if invite is None:
            raise NotFound("Invitation not found.")
        if not invite.isActive:
            raise Conflict("Invitation is no longer active.")
        if invite.is_expired(self.clock()):
            raise Expired()

        trip = await load(self.store, Trip, invite.tripId)
        if trip is None:
            raise NotFound("Trip not found.")

        return InvitePreview(
            tripId=trip.id,
            tripName=trip.name,
            coverPhoto=trip.coverPhoto,
            memberCount=len(trip.owners),
            expiresAt=invite.expiresAt,
            alreadyMember=trip.is_member(actor_id),
        )

    # -- internals ----------------------------------------------------------

    async def _live_invite(self, trip_id: str, actor_id: str, now: datetime) -> Optional[TripInvite]:
        try:
            candidates = await find_all(
                self.store, TripInvite, tripId=trip_id, createdBy=actor_id, isActive=True
            )
        except Exception as exc:
            logger.error("invite_lookup_failed trip=%s by=%s error=%s", trip_id, actor_id, exc)
            raise Internal("Failed to create invitation link.") from exc

        # stale rows still flagged active are retired here, so a reissue
        # leaves one active invite per (trip, creator)
        live: Optional[TripInvite] = None
        for invite in candidates:
            if invite.is_expired(now):
                await self._deactivate(invite, reason="expired")
            elif invite.is_exhausted():
                await self._deactivate(invite, reason="exhausted")
            elif live is None:
                live = invite
        return live

    async def _reenter(self, invite: TripInvite, actor_id: str) -> Redemption:
        trip = await load(self.store, Trip, invite.tripId)
        if trip is None:
            raise NotFound("Trip not found.")
        if not trip.is_member(actor_id):
            # use recorded but membership write never landed -- repair it
            logger.warning("membership_repaired trip=%s user=%s invite=%s", trip.id, actor_id, invite.id)
            trip = await update_with_retry(self.store, trip, adding_owner(actor_id))
            await sync_list_owners(self.store, trip.id, actor_id)
        return Redemption(tripId=trip.id, tripName=trip.name, alreadyMember=True)

    async def _deactivate(self, invite: TripInvite, reason: str) -> None:
        try:
            await self.store.update(TripInvite, invite.id, {"isActive": False})
        except Exception as exc:
            # terminal either way; the next attempt re-detects the same state
            logger.warning("invite_deactivate_failed invite=%s reason=%s error=%s", invite.id, reason, exc)
            return
        logger.info("invite_deactivated invite=%s trip=%s reason=%s", invite.id, invite.tripId, reason)
