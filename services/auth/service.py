"""
services/auth/service.py
Local user records for identity-provider subjects: lazy provisioning on first
authenticated request, and the explicit upsert used after sign-in.
"""

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from shared.models.models import User, utcnow
from shared.utils.errors import InternalError
from shared.utils.security import split_full_name

logger = logging.getLogger(__name__)


class TokenData:
    """Claims this service relies on from a verified access token."""

    def __init__(self, payload: dict):
        metadata = payload.get("user_metadata") or {}
        self.user_id: str = payload["sub"]
        self.email: Optional[str] = payload.get("email") or None
        self.full_name: Optional[str] = metadata.get("full_name") or metadata.get("name")
        self.avatar_url: Optional[str] = metadata.get("avatar_url")


async def get_user(db: AsyncSession, user_id: str) -> Optional[User]:
    return await db.scalar(select(User).where(User.id == user_id))


async def provision_user(db: AsyncSession, token: TokenData) -> User:
    """
    Return the local user for the token subject, creating it from the claims
    when absent. A concurrent request may insert the same id first; the
    loser re-reads that row instead of failing.
    """
    user = await get_user(db, token.user_id)
    if user:
        return user

    first_name, last_name = split_full_name(token.full_name)
    user = User(
        id=token.user_id,
        email=token.email,
        first_name=first_name,
        last_name=last_name,
        profile_image_url=token.avatar_url,
    )
    try:
        async with db.begin_nested():
            db.add(user)
    except IntegrityError:
        logger.info(f"User {token.user_id} was provisioned concurrently; re-reading")
        user = await get_user(db, token.user_id)
        if user is None:
            # The conflict was not on the id (e.g. the email belongs to another subject)
            raise InternalError(f"Could not provision user {token.user_id}")
        return user

    logger.info(f"Provisioned local user {token.user_id}")
    return user


async def upsert_user(
    db: AsyncSession,
    token: TokenData,
    first_name: Optional[str] = None,
    last_name: Optional[str] = None,
) -> User:
    """
    Insert the caller's user row, or refresh its names, profile image and
    updated_at when it already exists. Explicit names win over the claims.
    """
    claim_first, claim_last = split_full_name(token.full_name)
    first_name = first_name or claim_first
    last_name = last_name or claim_last

    user = await get_user(db, token.user_id)
    if user is None:
        user = await provision_user(db, token)
        user.first_name = first_name
        user.last_name = last_name
    else:
        user.email = token.email or user.email
        user.first_name = first_name
        user.last_name = last_name
        user.profile_image_url = token.avatar_url
        user.updated_at = utcnow()

    await db.flush()
    return user
