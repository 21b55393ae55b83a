"""
SQLAlchemy DeclarativeBase models for the membership graph.

Column names use camelCase to match the record shapes the mobile client
reads and writes (Trip, List, ListItem, Comment, TripInvite).

Set-valued fields (owners, admins, likedBy, usedBy) are stored as JSON
arrays. Every table carries a `version` column that the store bumps on
each update; conditional writes compare against it.
"""

import uuid as _uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, Float, Integer, JSON, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


class Trip(Base):
    __tablename__ = "trips"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: str(_uuid.uuid4()))
    name: Mapped[str] = mapped_column(String)
    owners: Mapped[list] = mapped_column(JSON, default=list)
    admins: Mapped[list] = mapped_column(JSON, default=list)
    coverPhoto: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    createdBy: Mapped[str] = mapped_column(String)
    version: Mapped[int] = mapped_column(Integer, default=1)


class TripList(Base):
    __tablename__ = "lists"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: str(_uuid.uuid4()))
    tripId: Mapped[str] = mapped_column(String, index=True)
    name: Mapped[str] = mapped_column(String)
    createdBy: Mapped[str] = mapped_column(String)
    # NULL -> list inherits trip membership, no snapshot to propagate to
    owners: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)
    version: Mapped[int] = mapped_column(Integer, default=1)


class ListItem(Base):
    __tablename__ = "list_items"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: str(_uuid.uuid4()))
    listId: Mapped[str] = mapped_column(String, index=True)
    title: Mapped[str] = mapped_column(String)
    note: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    createdBy: Mapped[str] = mapped_column(String)
    owners: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)
    likedBy: Mapped[list] = mapped_column(JSON, default=list)
    voteCount: Mapped[int] = mapped_column(Integer, default=0)
    placeId: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    placeName: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    placeAddress: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    placeTypes: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)
    placeRating: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    placePhotoReference: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    version: Mapped[int] = mapped_column(Integer, default=1)


class Comment(Base):
    __tablename__ = "comments"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: str(_uuid.uuid4()))
    itemId: Mapped[str] = mapped_column(String, index=True)
    body: Mapped[str] = mapped_column(Text)
    authorId: Mapped[str] = mapped_column(String)
    createdAt: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    owners: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)
    version: Mapped[int] = mapped_column(Integer, default=1)


class TripInvite(Base):
    """Invite token. `id` is the shareable code itself. Never deleted while the trip lives."""

    __tablename__ = "trip_invites"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    tripId: Mapped[str] = mapped_column(String, index=True)
    createdBy: Mapped[str] = mapped_column(String)
    expiresAt: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    maxUses: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    usedCount: Mapped[int] = mapped_column(Integer, default=0)
    usedBy: Mapped[list] = mapped_column(JSON, default=list)
    isActive: Mapped[bool] = mapped_column(Boolean, default=True)
    createdAt: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    version: Mapped[int] = mapped_column(Integer, default=1)
