"""
services/notification/service.py
In-app notification dispatcher.

A notification is created unread and can only move to read. Callers decide
whether a failed write matters: submission treats it as best-effort, status
updates let it propagate, and broadcast isolates each recipient.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from shared.models.models import Notification, NotificationType, User
from shared.utils.errors import ForbiddenError, NotFoundError

logger = logging.getLogger(__name__)


@dataclass
class BroadcastResult:
    sent: int = 0
    failed: List[str] = field(default_factory=list)
    notifications: List[Notification] = field(default_factory=list)


async def create(
    db: AsyncSession,
    user_id: str,
    type: str,
    title: str,
    message: str,
) -> Notification:
    """Persist an unread notification and return it."""
    notification = Notification(
        user_id=user_id,
        type=type or NotificationType.INFO.value,
        title=title,
        message=message,
        is_read=False,
    )
    db.add(notification)
    await db.flush()
    return notification


async def list_for_user(db: AsyncSession, user_id: str) -> List[Notification]:
    result = await db.execute(
        select(Notification)
        .where(Notification.user_id == user_id)
        .order_by(Notification.created_at.desc(), Notification.id.desc())
    )
    return list(result.scalars())


async def unread_count(db: AsyncSession, user_id: str) -> int:
    count = await db.scalar(
        select(func.count(Notification.id)).where(
            Notification.user_id == user_id,
            Notification.is_read.is_(False),
        )
    )
    return count or 0


async def mark_read(
    db: AsyncSession,
    notification_id: int,
    user_id: Optional[str] = None,
) -> Notification:
    """
    Mark a notification read. Repeating the call is a no-op.
    When user_id is given, the notification must belong to that user.
    """
    notification = await db.get(Notification, notification_id)
    if not notification:
        raise NotFoundError("Notification not found")
    if user_id is not None and notification.user_id != user_id:
        raise ForbiddenError("Notification belongs to another user")

    if not notification.is_read:
        notification.is_read = True
        await db.flush()
    return notification


async def broadcast(
    db: AsyncSession,
    type: str,
    title: str,
    message: str,
    user_ids: Optional[List[str]] = None,
) -> BroadcastResult:
    """
    Create one notification per recipient: the given ids, or every user.
    Each recipient is written in its own savepoint so one failure does not
    undo the others. Unknown ids count as failures.
    """
    if user_ids:
        # Preserve caller order, drop duplicates
        recipients = list(dict.fromkeys(user_ids))
        result = await db.execute(select(User.id).where(User.id.in_(recipients)))
        known = set(result.scalars())
    else:
        result = await db.execute(select(User.id).order_by(User.created_at, User.id))
        recipients = list(result.scalars())
        known = set(recipients)

    outcome = BroadcastResult()
    for user_id in recipients:
        if user_id not in known:
            logger.warning(f"Broadcast skipped unknown user {user_id}")
            outcome.failed.append(user_id)
            continue
        try:
            async with db.begin_nested():
                notification = await create(db, user_id, type, title, message)
        except SQLAlchemyError as exc:
            logger.error(f"Broadcast to {user_id} failed: {exc}")
            outcome.failed.append(user_id)
            continue
        outcome.notifications.append(notification)
        outcome.sent += 1

    logger.info(
        f"Broadcast '{title}': {outcome.sent} sent, {len(outcome.failed)} failed"
    )
    return outcome
