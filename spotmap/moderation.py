"""
Moderation queue endpoints (moderator/admin only).

Approving or rejecting a spot entry is the only way a spot's status moves
to approved or rejected.
"""
import logging
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select

from .auth import get_moderator
from .db import get_session
from .errors import BadRequest, NotFound
from .models import Collection, Event, ModerationEntry, Spot, User, new_id, utcnow
from .queries import DEFAULT_LIMIT, MAX_LIMIT, ModerationQuery, fetch_moderation_entries
from .schemas import ContentType, ModerationAction, ModerationCreate, ModerationStatus
from .shaping import moderation_to_dict, page

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/moderation", tags=["moderation"])

CONTENT_MODELS = {"spot": Spot, "event": Event, "collection": Collection}


async def pending_entry(session, content_id: str) -> Optional[ModerationEntry]:
    return (
        await session.execute(
            select(ModerationEntry).where(
                ModerationEntry.content_id == content_id,
                ModerationEntry.status == "pending",
            )
        )
    ).scalars().first()


async def enqueue_for_review(session, content_type: str, content_id: str) -> ModerationEntry:
    """Add a pending entry unless one is already waiting. Caller commits."""
    entry = await pending_entry(session, content_id)
    if entry is None:
        entry = ModerationEntry(id=new_id(), content_type=content_type, content_id=content_id, status="pending")
        session.add(entry)
    return entry


async def load_entry(session, entry_id: str) -> ModerationEntry:
    entry = await session.get(ModerationEntry, entry_id)
    if entry is None:
        raise NotFound("Moderation entry not found")
    return entry


def moderation_query_params(
    status: Optional[ModerationStatus] = None,
    content_type: Optional[ContentType] = Query(None, alias="contentType"),
    sort: Literal["newest", "oldest"] = "newest",
    limit: int = Query(DEFAULT_LIMIT, ge=1, le=MAX_LIMIT),
    offset: int = Query(0, ge=0),
) -> ModerationQuery:
    return ModerationQuery(status=status, content_type=content_type, sort=sort, limit=limit, offset=offset)


@router.get("")
async def list_queue(
    params: ModerationQuery = Depends(moderation_query_params),
    moderator=Depends(get_moderator),
    session=Depends(get_session),
):
    rows, total = await fetch_moderation_entries(session, params)
    return {
        "moderationQueue": [moderation_to_dict(entry, reviewer) for entry, reviewer in rows],
        "pagination": page(params.limit, params.offset, total),
    }


@router.post("", status_code=201)
async def enqueue(payload: ModerationCreate, moderator=Depends(get_moderator), session=Depends(get_session)):
    model = CONTENT_MODELS[payload.content_type]
    if await session.get(model, payload.content_id) is None:
        raise NotFound("Content not found")
    if await pending_entry(session, payload.content_id) is not None:
        raise BadRequest("Content is already in moderation queue")

    entry = ModerationEntry(
        id=new_id(),
        content_type=payload.content_type,
        content_id=payload.content_id,
        status="pending",
    )
    session.add(entry)
    await session.commit()
    return moderation_to_dict(entry)


@router.get("/{entry_id}")
async def get_entry(entry_id: str, moderator=Depends(get_moderator), session=Depends(get_session)):
    entry = await load_entry(session, entry_id)
    reviewer = await session.get(User, entry.moderator_id) if entry.moderator_id else None
    return moderation_to_dict(entry, reviewer)


@router.put("/{entry_id}")
async def review_entry(
    entry_id: str,
    payload: ModerationAction,
    moderator=Depends(get_moderator),
    session=Depends(get_session),
):
    entry = await load_entry(session, entry_id)
    if entry.status != "pending":
        raise BadRequest("Moderation entry has already been reviewed")

    now = utcnow()
    new_status = "approved" if payload.action == "approve" else "rejected"
    entry.status = new_status
    entry.moderator_id = moderator.id
    entry.reviewed_at = now
    entry.feedback = payload.feedback
    entry.updated_at = now

    if entry.content_type == "spot":
        spot = await session.get(Spot, entry.content_id)
        if spot is not None:
            spot.status = new_status
            spot.updated_at = now

    await session.commit()
    logger.info("Moderator %s %sd %s %s", moderator.id, payload.action, entry.content_type, entry.content_id)

    reviewer = await session.get(User, moderator.id)
    out = moderation_to_dict(entry, reviewer)
    out["message"] = f"Content {payload.action}d successfully"
    return out
