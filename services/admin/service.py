"""
services/admin/service.py
Admin dashboard aggregation and listings. Everything here is read-only
except broadcast, which is delegated to the notification dispatcher.
"""

from datetime import datetime, timedelta, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import List, Optional, Sequence

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from services.notification import service as notification_service
from services.notification.service import BroadcastResult
from shared.models.models import (
    APPLICATION_STATUS_VISA_APPROVED,
    Application,
    Course,
    University,
    User,
)

WEEK = timedelta(days=7)


def round_half_up(value: Decimal) -> int:
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def percentage(part: int, whole: int) -> int:
    """Whole-number percentage, halves rounded up; 0 when whole is 0."""
    if whole == 0:
        return 0
    return round_half_up(Decimal(100 * part) / Decimal(whole))


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def created_since(timestamps: Sequence[Optional[datetime]], cutoff: datetime) -> int:
    """Count timestamps strictly after cutoff. Missing timestamps never count."""
    return sum(1 for ts in timestamps if ts is not None and _as_utc(ts) > cutoff)


def summarize(
    users: Sequence,
    applications: Sequence,
    total_courses: int,
    total_universities: int,
    now: Optional[datetime] = None,
) -> dict:
    """
    Pure dashboard computation.

    users: rows with id and created_at.
    applications: rows with user_id, status and created_at.
    """
    now = _as_utc(now or datetime.now(timezone.utc))
    cutoff = now - WEEK

    applicants = {a.user_id for a in applications}
    visa_approved = {
        a.user_id for a in applications if a.status == APPLICATION_STATUS_VISA_APPROVED
    }

    return {
        "total_users": len(users),
        "total_applications": len(applications),
        "total_courses": total_courses,
        "total_universities": total_universities,
        "new_users_this_week": created_since([u.created_at for u in users], cutoff),
        "new_applications_this_week": created_since([a.created_at for a in applications], cutoff),
        "conversion_rate": percentage(len(applicants), len(users)),
        "final_conversion_rate": percentage(len(visa_approved), len(applicants)),
    }


async def compute_stats(db: AsyncSession, now: Optional[datetime] = None) -> dict:
    users = (await db.execute(select(User.id, User.created_at))).all()
    applications = (
        await db.execute(select(Application.user_id, Application.status, Application.created_at))
    ).all()
    total_courses = await db.scalar(select(func.count(Course.id))) or 0
    total_universities = await db.scalar(select(func.count(University.id))) or 0
    return summarize(users, applications, total_courses, total_universities, now)


async def compute_analytics(db: AsyncSession) -> dict:
    """Raw time series: one point per registration and per submission."""
    users = await db.execute(select(User.created_at).order_by(User.created_at))
    applications = await db.execute(
        select(Application.created_at, Application.status).order_by(Application.created_at)
    )
    return {
        "user_registrations": [
            {"date": created_at, "count": 1} for created_at in users.scalars()
        ],
        "application_submissions": [
            {"date": row.created_at, "count": 1, "status": row.status}
            for row in applications
        ],
    }


async def list_users(db: AsyncSession) -> List[User]:
    result = await db.execute(select(User).order_by(User.created_at.desc(), User.id.desc()))
    return list(result.scalars())


async def list_applications(db: AsyncSession) -> List[Application]:
    result = await db.execute(
        select(Application).order_by(Application.created_at.desc(), Application.id.desc())
    )
    return list(result.scalars())


async def broadcast(
    db: AsyncSession,
    type: str,
    title: str,
    message: str,
    user_ids: Optional[List[str]] = None,
) -> BroadcastResult:
    return await notification_service.broadcast(db, type, title, message, user_ids)
