"""
SQLAlchemy async database module.

Re-exports engine helpers and the membership-graph models.
"""

from services.api.db.engine import create_engine, create_session_factory, create_tables
from services.api.db.models import (
    Base,
    Trip,
    TripList,
    ListItem,
    Comment,
    TripInvite,
)

__all__ = [
    "create_engine",
    "create_session_factory",
    "create_tables",
    "Base",
    "Trip",
    "TripList",
    "ListItem",
    "Comment",
    "TripInvite",
]
