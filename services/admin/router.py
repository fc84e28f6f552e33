"""
services/admin/router.py
Admin-only endpoints: dashboard stats and analytics, user and application
listings, application status changes, notification broadcast, catalog create.

Every route depends on require_admin, which rejects non-admins before the
route body runs.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from config.database import get_db
from config.redis_client import RedisCache, get_cache
from services.admin import service
from services.application import service as application_service
from services.catalog import service as catalog_service
from shared.middleware.auth import require_admin
from shared.models.models import User
from shared.schemas.schemas import (
    AdminAnalyticsResponse,
    AdminStatsResponse,
    ApplicationResponse,
    ApplicationStatusUpdateRequest,
    BroadcastRequest,
    BroadcastResponse,
    CourseCreate,
    CourseResponse,
    NotificationResponse,
    UniversityCreate,
    UniversityResponse,
    UserResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["Admin"])


# ── Dashboard ─────────────────────────────────────────────────────────────────

@router.get("/stats", response_model=AdminStatsResponse)
async def get_stats(
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Totals, this week's sign-ups and submissions, and conversion rates."""
    stats = await service.compute_stats(db)
    return AdminStatsResponse(**stats)


@router.get("/analytics", response_model=AdminAnalyticsResponse)
async def get_analytics(
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    analytics = await service.compute_analytics(db)
    return AdminAnalyticsResponse(**analytics)


@router.get("/users", response_model=List[UserResponse])
async def list_users(
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    users = await service.list_users(db)
    return [UserResponse.model_validate(u) for u in users]


# ── Applications ───────────────────────────────────────────────────────────────

@router.get("/applications", response_model=List[ApplicationResponse])
async def list_applications(
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    applications = await service.list_applications(db)
    return [ApplicationResponse.model_validate(a) for a in applications]


@router.patch("/applications/{application_id}/status", response_model=ApplicationResponse)
async def update_application_status(
    application_id: int,
    data: ApplicationStatusUpdateRequest,
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Change an application's status and notify the applicant."""
    application = await application_service.update_status(db, application_id, data.status)
    await db.commit()
    logger.info(f"Admin {current_user.id} set application {application_id} to {data.status}")
    return ApplicationResponse.model_validate(application)


# ── Notifications ──────────────────────────────────────────────────────────────

@router.post("/notifications", response_model=BroadcastResponse)
async def broadcast_notification(
    data: BroadcastRequest,
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """
    Send a notification to the listed users, or to everyone when userIds is
    omitted. Delivery is per recipient; failures are reported, not raised.
    """
    result = await service.broadcast(db, data.type, data.title, data.message, data.user_ids)
    await db.commit()
    return BroadcastResponse(
        success=True,
        message=f"Notification sent to {result.sent} users",
        sent=result.sent,
        failed=result.failed,
        notifications=[NotificationResponse.model_validate(n) for n in result.notifications],
    )


# ── Catalog ────────────────────────────────────────────────────────────────────

@router.post("/universities", response_model=UniversityResponse, status_code=status.HTTP_201_CREATED)
async def create_university(
    data: UniversityCreate,
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    cache: Optional[RedisCache] = Depends(get_cache),
):
    university = await catalog_service.create_university(db, data)
    await db.commit()
    await catalog_service.invalidate_catalog_cache(cache)
    return UniversityResponse.model_validate(university)


@router.post("/courses", response_model=CourseResponse, status_code=status.HTTP_201_CREATED)
async def create_course(
    data: CourseCreate,
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    cache: Optional[RedisCache] = Depends(get_cache),
):
    course = await catalog_service.create_course(db, data)
    await db.commit()
    await catalog_service.invalidate_catalog_cache(cache)
    return CourseResponse.model_validate(course)
