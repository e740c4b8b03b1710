"""
SQLAlchemy database models.

Defines tables for users and their sessions, spots, events, collections
and the moderation queue. Timestamps are stored as naive UTC.
"""
import datetime
import uuid

from sqlalchemy import Column, String, Text, Float, Boolean, JSON, DateTime, ForeignKey
from .db import Base


def utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc).replace(tzinfo=None)


def new_id() -> str:
    return uuid.uuid4().hex


ROLES = ("user", "moderator", "admin")
PRIVILEGED_ROLES = ("moderator", "admin")

SPOT_TYPES = ("downhill", "freeride", "freestyle", "cruising", "dancing", "pumping")
SPOT_DIFFICULTIES = ("beginner", "intermediate", "advanced", "expert")
SPOT_VISIBILITIES = ("public", "private", "friends")
SPOT_STATUSES = ("draft", "pending", "approved", "rejected")

RECURRENCE_FREQUENCIES = ("daily", "weekly", "monthly")

CONTENT_TYPES = ("spot", "event", "collection")
MODERATION_STATUSES = ("pending", "approved", "rejected")


class User(Base):
    """
    Account record owned by the identity provider.

    Only read here: ownership joins and the caller's role.
    """
    __tablename__ = "users"

    id = Column(String, primary_key=True, default=new_id)
    name = Column(String, nullable=False)
    email = Column(String, nullable=False, unique=True)
    image = Column(String, nullable=True)
    role = Column(String, nullable=False, default="user")  # user | moderator | admin
    created_at = Column(DateTime, default=utcnow)


class Session(Base):
    """Bearer session issued by the identity provider."""
    __tablename__ = "sessions"

    token = Column(String, primary_key=True)
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    expires_at = Column(DateTime, nullable=False)


class Spot(Base):
    """
    A physical riding location.

    Status only moves through moderation, except that the owner can
    resubmit (which puts the spot back to pending).
    """
    __tablename__ = "spots"

    id = Column(String, primary_key=True, default=new_id)
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    location_lat = Column(Float, nullable=False, index=True)
    location_lng = Column(Float, nullable=False)
    visibility = Column(String, nullable=False, default="public")
    spot_type = Column(String, nullable=False)
    difficulty = Column(String, nullable=False)
    start_lat = Column(Float, nullable=True)
    start_lng = Column(Float, nullable=True)
    end_lat = Column(Float, nullable=True)
    end_lng = Column(Float, nullable=True)
    best_times = Column(Text, nullable=True)
    safety_notes = Column(Text, nullable=True)
    rules = Column(Text, nullable=True)
    photos = Column(JSON, nullable=False, default=list)
    status = Column(String, nullable=False, default="draft")
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)


class Event(Base):
    """
    A scheduled gathering at a spot.

    spot_id is a plain reference: deleting a spot leaves its events in place.
    recurrence_data is descriptive only, no occurrences are materialized.
    """
    __tablename__ = "events"

    id = Column(String, primary_key=True, default=new_id)
    spot_id = Column(String, nullable=False, index=True)
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    start_time = Column(DateTime, nullable=False, index=True)
    end_time = Column(DateTime, nullable=False)
    is_recurring = Column(Boolean, nullable=False, default=False)
    recurrence_data = Column(JSON, nullable=True)  # {frequency, interval, endDate?}
    photos = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)


class Collection(Base):
    """
    A user-curated, ordered set of spot ids.

    No duplicates: add/remove are checked by the API layer.
    """
    __tablename__ = "collections"

    id = Column(String, primary_key=True, default=new_id)
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    spot_ids = Column(JSON, nullable=False, default=list)
    is_public = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)


class ModerationEntry(Base):
    """Review request for a piece of user content."""
    __tablename__ = "moderation_queue"

    id = Column(String, primary_key=True, default=new_id)
    content_type = Column(String, nullable=False)  # spot | event | collection
    content_id = Column(String, nullable=False, index=True)
    status = Column(String, nullable=False, default="pending")
    moderator_id = Column(String, ForeignKey("users.id"), nullable=True)
    reviewed_at = Column(DateTime, nullable=True)
    feedback = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)
