# membership package: invite issuance/redemption, access resolution, trip lifecycle
from services.api.membership.access import AccessResolver, ResourceKind
from services.api.membership.invites import InviteService, mint_flow, share_flow
from services.api.membership.store import MembershipStore, SQLMembershipStore
from services.api.membership.trips import DeleteReport, TripService

__all__ = [
    "AccessResolver",
    "ResourceKind",
    "InviteService",
    "mint_flow",
    "share_flow",
    "MembershipStore",
    "SQLMembershipStore",
    "DeleteReport",
    "TripService",
]
