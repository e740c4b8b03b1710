"""
Session lookup.

Sign-in lives with the identity provider; this module only turns an
``Authorization: Bearer <token>`` header into a :class:`Caller`.
"""
from typing import Optional

from fastapi import Depends, Header
from sqlalchemy import select

from .db import get_session
from .errors import Forbidden, Unauthorized
from .models import Session, User, utcnow
from .permissions import Caller


def bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


async def resolve_caller(session, authorization: Optional[str]) -> Optional[Caller]:
    token = bearer_token(authorization)
    if token is None:
        return None
    user = (
        await session.execute(
            select(User)
            .join(Session, Session.user_id == User.id)
            .where(Session.token == token, Session.expires_at > utcnow())
        )
    ).scalars().first()
    if user is None:
        return None
    return Caller(id=user.id, role=user.role)


async def get_optional_caller(
    authorization: Optional[str] = Header(None),
    session=Depends(get_session),
) -> Optional[Caller]:
    """Anonymous access allowed; a bad token counts as anonymous."""
    return await resolve_caller(session, authorization)


async def get_caller(caller: Optional[Caller] = Depends(get_optional_caller)) -> Caller:
    if caller is None:
        raise Unauthorized("Authentication required")
    return caller


async def get_moderator(caller: Caller = Depends(get_caller)) -> Caller:
    if not caller.is_privileged:
        raise Forbidden("Requires one of: moderator, admin")
    return caller
