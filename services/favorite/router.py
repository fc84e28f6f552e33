"""
services/favorite/router.py
Per-user saved courses. One row per (user, course).
"""

from typing import List

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from config.database import get_db
from shared.middleware.auth import get_current_user
from shared.models.models import Course, Favorite, User
from shared.schemas.schemas import (
    FavoriteCheckResponse,
    FavoriteCreate,
    FavoriteDeleteResponse,
    FavoriteResponse,
)
from shared.utils.errors import NotFoundError

router = APIRouter(prefix="/api/favorites", tags=["Favorites"])


async def _get_favorite(db: AsyncSession, user_id: str, course_id: int):
    return await db.scalar(
        select(Favorite).where(
            Favorite.user_id == user_id,
            Favorite.course_id == course_id,
        )
    )


@router.get("", response_model=List[FavoriteResponse])
async def list_favorites(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """The caller's saved courses, each with its university, newest first."""
    result = await db.execute(
        select(Favorite)
        .where(Favorite.user_id == current_user.id)
        .order_by(Favorite.created_at.desc(), Favorite.id.desc())
    )
    return [FavoriteResponse.model_validate(f) for f in result.unique().scalars()]


@router.post("", response_model=FavoriteResponse, status_code=status.HTTP_201_CREATED)
async def add_favorite(
    data: FavoriteCreate,
    response: Response,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Save a course. Idempotent: saving twice returns the existing row with 200."""
    course = await db.scalar(select(Course).where(Course.id == data.course_id))
    if not course:
        raise NotFoundError("Course not found")

    existing = await _get_favorite(db, current_user.id, data.course_id)
    if existing:
        response.status_code = status.HTTP_200_OK
        return FavoriteResponse.model_validate(existing)

    favorite = Favorite(user_id=current_user.id, course_id=course.id, course=course)
    try:
        async with db.begin_nested():
            db.add(favorite)
    except IntegrityError:
        # Saved by a concurrent request
        favorite = await _get_favorite(db, current_user.id, data.course_id)
        response.status_code = status.HTTP_200_OK

    await db.commit()
    return FavoriteResponse.model_validate(favorite)


@router.delete("/{course_id}", response_model=FavoriteDeleteResponse)
async def remove_favorite(
    course_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(
        delete(Favorite).where(
            Favorite.user_id == current_user.id,
            Favorite.course_id == course_id,
        )
    )
    await db.commit()
    return FavoriteDeleteResponse(
        message="Removed from favorites",
        deleted=result.rowcount > 0,
    )


@router.get("/check/{course_id}", response_model=FavoriteCheckResponse)
async def check_favorite(
    course_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    favorite = await _get_favorite(db, current_user.id, course_id)
    return FavoriteCheckResponse(is_favorite=favorite is not None)
