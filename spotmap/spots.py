"""
Spot endpoints.
"""
import logging
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query

from .auth import get_caller, get_optional_caller
from .config import settings
from .db import get_session
from .errors import BadRequest, NotFound
from .models import Spot, User, new_id, utcnow
from .moderation import enqueue_for_review
from .permissions import (
    ensure_deletable,
    ensure_readable,
    ensure_writable,
    is_publicly_listed,
)
from .queries import (
    DEFAULT_LIMIT,
    DEFAULT_RADIUS_M,
    MAX_LIMIT,
    MAX_RADIUS_M,
    SpotQuery,
    count_spot_events,
    fetch_spots,
    fetch_upcoming_events,
)
from .schemas import Difficulty, SpotCreate, SpotType, SpotUpdate, Visibility
from .shaping import page, spot_detail, spot_to_dict

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/spots", tags=["spots"])


def spot_query_params(
    search: Optional[str] = None,
    type: Optional[SpotType] = None,
    difficulty: Optional[Difficulty] = None,
    visibility: Optional[Visibility] = None,
    user_id: Optional[str] = Query(None, alias="userId"),
    lat: Optional[float] = Query(None, ge=-90, le=90),
    lng: Optional[float] = Query(None, ge=-180, le=180),
    radius: float = Query(DEFAULT_RADIUS_M, ge=0, le=MAX_RADIUS_M),
    sort: Literal["newest", "oldest", "name", "distance"] = "newest",
    limit: int = Query(DEFAULT_LIMIT, ge=1, le=MAX_LIMIT),
    offset: int = Query(0, ge=0),
) -> SpotQuery:
    if (lat is None) != (lng is None):
        raise BadRequest("lat and lng must be given together")
    return SpotQuery(
        search=search,
        type=type,
        difficulty=difficulty,
        visibility=visibility,
        user_id=user_id,
        lat=lat,
        lng=lng,
        radius=radius,
        sort=sort,
        limit=limit,
        offset=offset,
    )


async def load_spot(session, spot_id: str) -> Spot:
    spot = await session.get(Spot, spot_id)
    if spot is None:
        raise NotFound("Spot not found")
    return spot


async def shaped(session, spot: Spot) -> dict:
    return spot_to_dict(spot, await session.get(User, spot.user_id))


@router.get("")
async def list_spots(
    params: SpotQuery = Depends(spot_query_params),
    caller=Depends(get_optional_caller),
    session=Depends(get_session),
):
    rows, total = await fetch_spots(session, params, caller)
    return {
        "spots": [spot_to_dict(spot, owner, distance) for spot, owner, distance in rows],
        "pagination": page(params.limit, params.offset, total),
    }


@router.post("", status_code=201)
async def create_spot(payload: SpotCreate, caller=Depends(get_caller), session=Depends(get_session)):
    status = "approved" if caller.is_privileged else "pending"
    spot = Spot(id=new_id(), user_id=caller.id, status=status, **payload.model_dump())
    session.add(spot)
    if status == "pending":
        await enqueue_for_review(session, "spot", spot.id)
    await session.commit()
    logger.info("Spot %s created by %s (%s)", spot.id, caller.id, status)
    return await shaped(session, spot)


@router.get("/{spot_id}")
async def get_spot(spot_id: str, caller=Depends(get_optional_caller), session=Depends(get_session)):
    spot = await session.get(Spot, spot_id)
    ensure_readable(caller, spot, "Spot")

    owner = await session.get(User, spot.user_id)
    upcoming = await fetch_upcoming_events(session, spot.id, settings.UPCOMING_EVENTS_LIMIT)
    event_count = await count_spot_events(session, spot.id)
    return spot_detail(spot, owner, upcoming, event_count)


@router.put("/{spot_id}")
async def update_spot(
    spot_id: str,
    payload: SpotUpdate,
    caller=Depends(get_caller),
    session=Depends(get_session),
):
    spot = await load_spot(session, spot_id)
    ensure_writable(caller, spot)

    changes = payload.model_dump(exclude_unset=True)
    if not caller.is_privileged:
        changes.pop("status", None)
        # asking for public visibility sends the spot back through review
        if changes.get("visibility") == "public" and not is_publicly_listed(spot):
            changes["status"] = "pending"

    for field, value in changes.items():
        setattr(spot, field, value)
    spot.updated_at = utcnow()

    if changes.get("status") == "pending" and not caller.is_privileged:
        await enqueue_for_review(session, "spot", spot.id)
    await session.commit()
    logger.info("Spot %s updated by %s: %s", spot.id, caller.id, sorted(changes))
    return await shaped(session, spot)


@router.post("/{spot_id}/submit")
async def submit_spot(spot_id: str, caller=Depends(get_caller), session=Depends(get_session)):
    """Make a spot public and (re)submit it for review."""
    spot = await load_spot(session, spot_id)
    ensure_writable(caller, spot)

    spot.visibility = "public"
    if caller.is_privileged:
        spot.status = "approved"
    else:
        spot.status = "pending"
        await enqueue_for_review(session, "spot", spot.id)
    spot.updated_at = utcnow()
    await session.commit()
    logger.info("Spot %s submitted by %s (%s)", spot.id, caller.id, spot.status)
    return await shaped(session, spot)


@router.delete("/{spot_id}")
async def delete_spot(spot_id: str, caller=Depends(get_caller), session=Depends(get_session)):
    spot = await load_spot(session, spot_id)
    ensure_deletable(caller, spot)

    # Events at this spot are left in place.
    await session.delete(spot)
    await session.commit()
    logger.info("Spot %s deleted by %s", spot_id, caller.id)
    return {"message": "Spot deleted successfully"}
