"""
services/application/router.py
Applicant-facing endpoints: submit an application and list your own.
Status changes live under /api/admin.
"""

from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from config.database import get_db
from services.application import service
from shared.middleware.auth import get_current_user
from shared.models.models import User
from shared.schemas.schemas import (
    ApplicationCreateRequest,
    ApplicationResponse,
    ApplicationWithCoursesResponse,
)

router = APIRouter(prefix="/api/applications", tags=["Applications"])


@router.get("", response_model=List[ApplicationWithCoursesResponse])
async def list_my_applications(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await service.list_for_user(db, current_user.id)


@router.post("", response_model=ApplicationResponse, status_code=status.HTTP_201_CREATED)
async def submit_application(
    data: ApplicationCreateRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Submit an application. The status always starts as "Submitted" whatever
    the body says, and the applicant gets a confirmation notification.
    """
    application = await service.submit(db, current_user.id, data)
    await db.commit()
    return ApplicationResponse.model_validate(application)
