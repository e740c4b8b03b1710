"""
Query composition for list endpoints.

Each resource has a parameter struct, a function turning it into a list of
WHERE clauses (always starting with the caller's visibility clause), a sort
table, and a fetch coroutine returning ``(rows, total)``.
"""
import datetime
from dataclasses import dataclass
from typing import List, Optional, Tuple

from sqlalchemy import func, or_, select

from .geo import haversine_m, latitude_band
from .models import Collection, Event, ModerationEntry, Spot, User, utcnow
from .permissions import (
    Caller,
    visible_collections_clause,
    visible_events_clause,
    visible_spots_clause,
)

DEFAULT_LIMIT = 20
MAX_LIMIT = 100
DEFAULT_RADIUS_M = 10_000
MAX_RADIUS_M = 1_000_000


def like_pattern(text: str) -> str:
    escaped = text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


async def count_rows(session, stmt) -> int:
    return await session.scalar(select(func.count()).select_from(stmt.order_by(None).subquery()))


# ---------- Spots ----------
@dataclass
class SpotQuery:
    search: Optional[str] = None
    type: Optional[str] = None
    difficulty: Optional[str] = None
    visibility: Optional[str] = None
    user_id: Optional[str] = None
    lat: Optional[float] = None
    lng: Optional[float] = None
    radius: float = DEFAULT_RADIUS_M
    sort: str = "newest"
    limit: int = DEFAULT_LIMIT
    offset: int = 0

    @property
    def has_point(self) -> bool:
        return self.lat is not None and self.lng is not None


SPOT_SORTS = {
    "newest": (Spot.created_at.desc(), Spot.id),
    "oldest": (Spot.created_at.asc(), Spot.id),
    "name": (Spot.name.asc(), Spot.id),
}


def spot_conditions(params: SpotQuery, caller: Optional[Caller]) -> list:
    conditions = [visible_spots_clause(caller)]
    if params.visibility:
        conditions.append(Spot.visibility == params.visibility)
    if params.type:
        conditions.append(Spot.spot_type == params.type)
    if params.difficulty:
        conditions.append(Spot.difficulty == params.difficulty)
    if params.user_id:
        conditions.append(Spot.user_id == params.user_id)
    if params.search:
        pattern = like_pattern(params.search)
        conditions.append(or_(
            Spot.name.ilike(pattern, escape="\\"),
            Spot.description.ilike(pattern, escape="\\"),
        ))
    if params.has_point:
        band = latitude_band(params.lat, params.radius)
        if band is not None:
            conditions.append(Spot.location_lat.between(*band))
    return conditions


def spot_order_by(sort: str) -> tuple:
    # "distance" is ordered in Python; without a point it falls back to newest
    return SPOT_SORTS.get(sort, SPOT_SORTS["newest"])


async def fetch_spots(session, params: SpotQuery, caller: Optional[Caller]) -> Tuple[List[tuple], int]:
    """
    Returns ``([(spot, owner, distance_m_or_None), ...], total)``.

    With a reference point, the SQL query is only narrowed to a latitude
    band; the exact great-circle filter, distance ordering and the page
    window are applied here.
    """
    stmt = (
        select(Spot, User)
        .outerjoin(User, User.id == Spot.user_id)
        .where(*spot_conditions(params, caller))
        .order_by(*spot_order_by(params.sort))
    )

    if not params.has_point:
        total = await count_rows(session, stmt)
        rows = (await session.execute(stmt.limit(params.limit).offset(params.offset))).all()
        return [(spot, owner, None) for spot, owner in rows], total

    hits = []
    for spot, owner in (await session.execute(stmt)).all():
        distance = haversine_m(params.lat, params.lng, spot.location_lat, spot.location_lng)
        if distance <= params.radius:
            hits.append((spot, owner, distance))
    if params.sort == "distance":
        hits.sort(key=lambda hit: hit[2])
    return hits[params.offset:params.offset + params.limit], len(hits)


# ---------- Events ----------
@dataclass
class EventQuery:
    spot_id: Optional[str] = None
    user_id: Optional[str] = None
    start_date: Optional[datetime.datetime] = None
    end_date: Optional[datetime.datetime] = None
    upcoming: bool = False
    sort: str = "startTime"
    limit: int = DEFAULT_LIMIT
    offset: int = 0


EVENT_SORTS = {
    "newest": (Event.created_at.desc(), Event.id),
    "oldest": (Event.created_at.asc(), Event.id),
    "startTime": (Event.start_time.asc(), Event.id),
    "endTime": (Event.end_time.asc(), Event.id),
}


def event_conditions(params: EventQuery, caller: Optional[Caller], now: Optional[datetime.datetime] = None) -> list:
    conditions = [visible_events_clause(caller)]
    if params.spot_id:
        conditions.append(Event.spot_id == params.spot_id)
    if params.user_id:
        conditions.append(Event.user_id == params.user_id)
    # overlap with [start_date, end_date]
    if params.start_date is not None:
        conditions.append(Event.end_time >= params.start_date)
    if params.end_date is not None:
        conditions.append(Event.start_time <= params.end_date)
    if params.upcoming:
        conditions.append(Event.start_time >= (now or utcnow()))
    return conditions


async def fetch_events(session, params: EventQuery, caller: Optional[Caller]) -> Tuple[List[tuple], int]:
    """Returns ``([(event, spot_or_None, owner), ...], total)``."""
    stmt = (
        select(Event, Spot, User)
        .outerjoin(Spot, Spot.id == Event.spot_id)
        .outerjoin(User, User.id == Event.user_id)
        .where(*event_conditions(params, caller))
        .order_by(*EVENT_SORTS.get(params.sort, EVENT_SORTS["startTime"]))
    )
    total = await count_rows(session, stmt)
    rows = (await session.execute(stmt.limit(params.limit).offset(params.offset))).all()
    return [tuple(row) for row in rows], total


async def fetch_upcoming_events(session, spot_id: str, limit: int) -> List[tuple]:
    """Upcoming events at a spot, latest start first."""
    stmt = (
        select(Event, User)
        .outerjoin(User, User.id == Event.user_id)
        .where(Event.spot_id == spot_id, Event.start_time >= utcnow())
        .order_by(Event.start_time.desc(), Event.id)
        .limit(limit)
    )
    return [tuple(row) for row in (await session.execute(stmt)).all()]


async def count_spot_events(session, spot_id: str) -> int:
    return await session.scalar(select(func.count()).select_from(Event).where(Event.spot_id == spot_id))


# ---------- Collections ----------
@dataclass
class CollectionQuery:
    user_id: Optional[str] = None
    is_public: Optional[bool] = None
    sort: str = "newest"
    limit: int = DEFAULT_LIMIT
    offset: int = 0


COLLECTION_SORTS = {
    "newest": (Collection.created_at.desc(), Collection.id),
    "oldest": (Collection.created_at.asc(), Collection.id),
    "name": (Collection.name.asc(), Collection.id),
}


def collection_conditions(params: CollectionQuery, caller: Optional[Caller]) -> list:
    conditions = [visible_collections_clause(caller)]
    if params.is_public is not None:
        conditions.append(Collection.is_public.is_(params.is_public))
    if params.user_id:
        conditions.append(Collection.user_id == params.user_id)
    return conditions


async def fetch_collections(session, params: CollectionQuery, caller: Optional[Caller]) -> Tuple[List[tuple], int]:
    stmt = (
        select(Collection, User)
        .outerjoin(User, User.id == Collection.user_id)
        .where(*collection_conditions(params, caller))
        .order_by(*COLLECTION_SORTS.get(params.sort, COLLECTION_SORTS["newest"]))
    )
    total = await count_rows(session, stmt)
    rows = (await session.execute(stmt.limit(params.limit).offset(params.offset))).all()
    return [tuple(row) for row in rows], total


# ---------- Moderation queue ----------
@dataclass
class ModerationQuery:
    status: Optional[str] = None
    content_type: Optional[str] = None
    sort: str = "newest"
    limit: int = DEFAULT_LIMIT
    offset: int = 0


async def fetch_moderation_entries(session, params: ModerationQuery) -> Tuple[List[tuple], int]:
    conditions = []
    if params.status:
        conditions.append(ModerationEntry.status == params.status)
    if params.content_type:
        conditions.append(ModerationEntry.content_type == params.content_type)
    order = ModerationEntry.created_at.asc() if params.sort == "oldest" else ModerationEntry.created_at.desc()
    stmt = (
        select(ModerationEntry, User)
        .outerjoin(User, User.id == ModerationEntry.moderator_id)
        .where(*conditions)
        .order_by(order, ModerationEntry.id)
    )
    total = await count_rows(session, stmt)
    rows = (await session.execute(stmt.limit(params.limit).offset(params.offset))).all()
    return [tuple(row) for row in rows], total
