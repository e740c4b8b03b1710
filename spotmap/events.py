"""
Event endpoints. Every route requires a signed-in caller.
"""
import datetime
import logging
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query

from .auth import get_caller
from .db import get_session
from .errors import BadRequest, NotFound
from .models import Event, Spot, User, new_id, utcnow
from .permissions import can_create_event, can_read, ensure_deletable, ensure_readable, ensure_writable
from .queries import DEFAULT_LIMIT, MAX_LIMIT, EventQuery, fetch_events
from .schemas import EventCreate, EventUpdate, to_naive_utc
from .shaping import event_to_dict, page

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/events", tags=["events"])


def event_query_params(
    spot_id: Optional[str] = Query(None, alias="spotId"),
    user_id: Optional[str] = Query(None, alias="userId"),
    start_date: Optional[datetime.datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime.datetime] = Query(None, alias="endDate"),
    upcoming: bool = False,
    sort: Literal["newest", "oldest", "startTime", "endTime"] = "startTime",
    limit: int = Query(DEFAULT_LIMIT, ge=1, le=MAX_LIMIT),
    offset: int = Query(0, ge=0),
) -> EventQuery:
    start_date, end_date = to_naive_utc(start_date), to_naive_utc(end_date)
    if start_date is not None and end_date is not None and start_date > end_date:
        raise BadRequest("startDate must not be after endDate")
    return EventQuery(
        spot_id=spot_id,
        user_id=user_id,
        start_date=start_date,
        end_date=end_date,
        upcoming=upcoming,
        sort=sort,
        limit=limit,
        offset=offset,
    )


async def load_event(session, event_id: str) -> Event:
    event = await session.get(Event, event_id)
    if event is None:
        raise NotFound("Event not found")
    return event


def readable_spot(caller, spot: Optional[Spot]) -> Optional[Spot]:
    # an organizer keeps their event after the spot goes private, not the spot
    return spot if spot is not None and can_read(caller, spot) else None


async def shaped(session, event: Event, caller) -> dict:
    spot = await session.get(Spot, event.spot_id)
    owner = await session.get(User, event.user_id)
    return event_to_dict(event, readable_spot(caller, spot), owner)


def recurrence_json(payload) -> Optional[dict]:
    if payload.recurrence_data is None:
        return None
    return payload.recurrence_data.model_dump(mode="json", by_alias=True, exclude_none=True)


@router.get("")
async def list_events(
    params: EventQuery = Depends(event_query_params),
    caller=Depends(get_caller),
    session=Depends(get_session),
):
    rows, total = await fetch_events(session, params, caller)
    return {
        "events": [event_to_dict(event, readable_spot(caller, spot), owner) for event, spot, owner in rows],
        "pagination": page(params.limit, params.offset, total),
    }


@router.post("", status_code=201)
async def create_event(payload: EventCreate, caller=Depends(get_caller), session=Depends(get_session)):
    spot = await session.get(Spot, payload.spot_id)
    if spot is None or not can_create_event(caller, spot):
        raise NotFound("Spot not found")

    event = Event(
        id=new_id(),
        user_id=caller.id,
        spot_id=spot.id,
        title=payload.title,
        description=payload.description,
        start_time=payload.start_time,
        end_time=payload.end_time,
        is_recurring=payload.is_recurring,
        recurrence_data=recurrence_json(payload) if payload.is_recurring else None,
        photos=payload.photos,
    )
    session.add(event)
    await session.commit()
    logger.info("Event %s created at spot %s by %s", event.id, spot.id, caller.id)
    return await shaped(session, event, caller)


@router.get("/{event_id}")
async def get_event(event_id: str, caller=Depends(get_caller), session=Depends(get_session)):
    event = await session.get(Event, event_id)
    spot = await session.get(Spot, event.spot_id) if event is not None else None
    ensure_readable(caller, event, "Event", spot=spot)
    return event_to_dict(event, readable_spot(caller, spot), await session.get(User, event.user_id))


@router.put("/{event_id}")
async def update_event(
    event_id: str,
    payload: EventUpdate,
    caller=Depends(get_caller),
    session=Depends(get_session),
):
    event = await load_event(session, event_id)
    ensure_writable(caller, event)

    changes = payload.model_dump(exclude_unset=True)
    if "recurrence_data" in changes:
        changes["recurrence_data"] = recurrence_json(payload)

    # validate the merged schedule before touching the row
    start = changes.get("start_time", event.start_time)
    end = changes.get("end_time", event.end_time)
    if start >= end:
        raise BadRequest("Start time must be before end time")
    is_recurring = changes.get("is_recurring", event.is_recurring)
    recurrence = changes.get("recurrence_data", event.recurrence_data)
    if is_recurring and not recurrence:
        raise BadRequest("recurrenceData is required when isRecurring is true")
    if not is_recurring:
        changes["recurrence_data"] = None

    for field, value in changes.items():
        setattr(event, field, value)
    event.updated_at = utcnow()
    await session.commit()
    logger.info("Event %s updated by %s: %s", event.id, caller.id, sorted(changes))
    return await shaped(session, event, caller)


@router.delete("/{event_id}")
async def delete_event(event_id: str, caller=Depends(get_caller), session=Depends(get_session)):
    event = await load_event(session, event_id)
    ensure_deletable(caller, event)

    await session.delete(event)
    await session.commit()
    logger.info("Event %s deleted by %s", event_id, caller.id)
    return {"message": "Event deleted successfully"}
