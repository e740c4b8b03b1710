"""
Authorization predicates.

One place decides who may read, write or delete a spot, event or
collection. The same rules exist twice: as Python predicates for single
rows, and as SQL clauses composed into every list query so that rows the
caller may not see never leave the database.

Priority:
    1. moderator/admin: always allowed
    2. owner: always allowed, whatever the status
    3. everyone else: read only what is public (and approved, for spots)
"""
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import and_, or_, true

from .errors import Forbidden, NotFound
from .models import Collection, Event, Spot, PRIVILEGED_ROLES


@dataclass(frozen=True)
class Caller:
    """Identity of the requester as resolved from the session."""
    id: str
    role: str = "user"

    @property
    def is_privileged(self) -> bool:
        return self.role in PRIVILEGED_ROLES


def is_privileged(caller: Optional[Caller]) -> bool:
    return caller is not None and caller.is_privileged


def is_owner(caller: Optional[Caller], owner_id: Optional[str]) -> bool:
    return caller is not None and owner_id is not None and caller.id == owner_id


def is_publicly_listed(spot: Optional[Spot]) -> bool:
    # "friends" has no friendship graph behind it, so it counts as non-public
    return spot is not None and spot.visibility == "public" and spot.status == "approved"


def can_read(caller: Optional[Caller], resource, spot: Optional[Spot] = None) -> bool:
    """
    For events, pass the backing spot (or None if it no longer exists).
    """
    if is_privileged(caller) or is_owner(caller, resource.user_id):
        return True
    if isinstance(resource, Spot):
        return is_publicly_listed(resource)
    if isinstance(resource, Event):
        return is_publicly_listed(spot) or (spot is not None and is_owner(caller, spot.user_id))
    if isinstance(resource, Collection):
        return bool(resource.is_public)
    return False


def can_write(caller: Optional[Caller], resource) -> bool:
    return is_privileged(caller) or is_owner(caller, resource.user_id)


def can_delete(caller: Optional[Caller], resource) -> bool:
    return is_privileged(caller) or is_owner(caller, resource.user_id)


def can_create_event(caller: Optional[Caller], spot: Spot) -> bool:
    return is_privileged(caller) or is_owner(caller, spot.user_id) or is_publicly_listed(spot)


def ensure_readable(caller, resource, label: str, spot: Optional[Spot] = None) -> None:
    # Hidden resources look exactly like missing ones.
    if resource is None or not can_read(caller, resource, spot=spot):
        raise NotFound(f"{label} not found")


def ensure_writable(caller, resource) -> None:
    if not can_write(caller, resource):
        raise Forbidden("Access denied")


def ensure_deletable(caller, resource) -> None:
    if not can_delete(caller, resource):
        raise Forbidden("Access denied")


# ---------- SQL counterparts ----------
def _public_spot():
    return and_(Spot.visibility == "public", Spot.status == "approved")


def visible_spots_clause(caller: Optional[Caller]):
    if caller is None:
        return _public_spot()
    if caller.is_privileged:
        return true()
    return or_(_public_spot(), Spot.user_id == caller.id)


def visible_events_clause(caller: Optional[Caller]):
    """Expects the query to be outer-joined to Spot on Event.spot_id."""
    if caller is None:
        return _public_spot()
    if caller.is_privileged:
        return true()
    return or_(_public_spot(), Event.user_id == caller.id, Spot.user_id == caller.id)


def visible_collections_clause(caller: Optional[Caller]):
    if caller is None:
        return Collection.is_public.is_(True)
    if caller.is_privileged:
        return true()
    return or_(Collection.is_public.is_(True), Collection.user_id == caller.id)
