"""
Collection endpoints, including single-spot add/remove.
"""
import logging
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query

from .auth import get_caller, get_optional_caller
from .db import get_session
from .errors import BadRequest, NotFound
from .models import Collection, Spot, User, new_id, utcnow
from .permissions import ensure_deletable, ensure_readable, ensure_writable
from .queries import DEFAULT_LIMIT, MAX_LIMIT, CollectionQuery, fetch_collections
from .schemas import CollectionCreate, CollectionUpdate, SpotAction
from .shaping import collection_to_dict, page

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/collections", tags=["collections"])


def collection_query_params(
    user_id: Optional[str] = Query(None, alias="userId"),
    is_public: Optional[bool] = Query(None, alias="isPublic"),
    sort: Literal["newest", "oldest", "name"] = "newest",
    limit: int = Query(DEFAULT_LIMIT, ge=1, le=MAX_LIMIT),
    offset: int = Query(0, ge=0),
) -> CollectionQuery:
    return CollectionQuery(user_id=user_id, is_public=is_public, sort=sort, limit=limit, offset=offset)


async def load_collection(session, collection_id: str) -> Collection:
    collection = await session.get(Collection, collection_id)
    if collection is None:
        raise NotFound("Collection not found")
    return collection


async def shaped(session, collection: Collection) -> dict:
    return collection_to_dict(collection, await session.get(User, collection.user_id))


@router.get("")
async def list_collections(
    params: CollectionQuery = Depends(collection_query_params),
    caller=Depends(get_caller),
    session=Depends(get_session),
):
    rows, total = await fetch_collections(session, params, caller)
    return {
        "collections": [collection_to_dict(collection, owner) for collection, owner in rows],
        "pagination": page(params.limit, params.offset, total),
    }


@router.post("", status_code=201)
async def create_collection(payload: CollectionCreate, caller=Depends(get_caller), session=Depends(get_session)):
    collection = Collection(id=new_id(), user_id=caller.id, **payload.model_dump())
    session.add(collection)
    await session.commit()
    logger.info("Collection %s created by %s", collection.id, caller.id)
    return await shaped(session, collection)


@router.get("/{collection_id}")
async def get_collection(collection_id: str, caller=Depends(get_optional_caller), session=Depends(get_session)):
    collection = await session.get(Collection, collection_id)
    ensure_readable(caller, collection, "Collection")
    return await shaped(session, collection)


@router.put("/{collection_id}")
async def update_collection(
    collection_id: str,
    payload: CollectionUpdate,
    caller=Depends(get_caller),
    session=Depends(get_session),
):
    collection = await load_collection(session, collection_id)
    ensure_writable(caller, collection)

    for field, value in payload.model_dump(exclude_unset=True).items():
        setattr(collection, field, value)
    collection.updated_at = utcnow()
    await session.commit()
    logger.info("Collection %s updated by %s", collection.id, caller.id)
    return await shaped(session, collection)


@router.delete("/{collection_id}")
async def delete_collection(collection_id: str, caller=Depends(get_caller), session=Depends(get_session)):
    collection = await load_collection(session, collection_id)
    ensure_deletable(caller, collection)

    await session.delete(collection)
    await session.commit()
    logger.info("Collection %s deleted by %s", collection_id, caller.id)
    return {"message": "Collection deleted successfully"}


@router.post("/{collection_id}/spots")
async def add_spot(
    collection_id: str,
    payload: SpotAction,
    caller=Depends(get_caller),
    session=Depends(get_session),
):
    collection = await load_collection(session, collection_id)
    ensure_writable(caller, collection)

    spot = await session.get(Spot, payload.spot_id)
    ensure_readable(caller, spot, "Spot")

    current = list(collection.spot_ids or [])
    if payload.spot_id in current:
        raise BadRequest("Spot is already in collection")

    # assign a new list so the JSON column is flagged dirty
    collection.spot_ids = current + [payload.spot_id]
    collection.updated_at = utcnow()
    await session.commit()
    return {"message": "Spot added to collection successfully", "spotIds": collection.spot_ids}


@router.delete("/{collection_id}/spots")
async def remove_spot(
    collection_id: str,
    spot_id: str = Query(..., alias="spotId", min_length=1),
    caller=Depends(get_caller),
    session=Depends(get_session),
):
    collection = await load_collection(session, collection_id)
    ensure_writable(caller, collection)

    current = list(collection.spot_ids or [])
    if spot_id not in current:
        raise BadRequest("Spot is not in collection")

    collection.spot_ids = [sid for sid in current if sid != spot_id]
    collection.updated_at = utcnow()
    await session.commit()
    return {"message": "Spot removed from collection successfully", "spotIds": collection.spot_ids}
