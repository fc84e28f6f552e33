"""
services/catalog/router.py
Public catalog endpoints: courses (with filters), universities, counselors,
tutorials, and the development-only seed endpoint.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from config.database import get_db
from config.redis_client import RedisCache, get_cache
from config.settings import settings
from services.catalog import service
from services.catalog.seed import seed_catalog
from shared.schemas.schemas import (
    CounselorResponse,
    CourseResponse,
    TutorialResponse,
    UniversityResponse,
)
from shared.utils.errors import NotFoundError

router = APIRouter(prefix="/api", tags=["Catalog"])


@router.get("/courses", response_model=List[CourseResponse])
async def list_courses(
    search: Optional[str] = Query(None),
    faculty: Optional[str] = Query(None),
    level: Optional[str] = Query(None),
    ielts_score: Optional[str] = Query(None, alias="ieltsScore"),
    db: AsyncSession = Depends(get_db),
):
    """
    Browse courses. "All Faculties", "All Levels" and "All IELTS Scores"
    behave like an absent filter.
    """
    courses = await service.get_courses(db, search, faculty, level, ielts_score)
    return [CourseResponse.model_validate(c) for c in courses]


@router.get("/courses/{course_id}", response_model=CourseResponse)
async def get_course(course_id: int, db: AsyncSession = Depends(get_db)):
    course = await service.get_course(db, course_id)
    return CourseResponse.model_validate(course)


@router.get("/universities", response_model=List[UniversityResponse])
async def list_universities(
    db: AsyncSession = Depends(get_db),
    cache: Optional[RedisCache] = Depends(get_cache),
):
    return await service.get_universities(db, cache)


@router.get("/counselors", response_model=List[CounselorResponse])
async def list_counselors(db: AsyncSession = Depends(get_db)):
    """Active counselors only."""
    counselors = await service.get_counselors(db)
    return [CounselorResponse.model_validate(c) for c in counselors]


@router.get("/tutorials", response_model=List[TutorialResponse])
async def list_tutorials(db: AsyncSession = Depends(get_db)):
    """Active tutorials, newest first."""
    tutorials = await service.get_tutorials(db)
    return [TutorialResponse.model_validate(t) for t in tutorials]


@router.post("/seed", include_in_schema=False)
async def seed(
    db: AsyncSession = Depends(get_db),
    cache: Optional[RedisCache] = Depends(get_cache),
):
    """Load the sample catalog. Only exists in development."""
    if not settings.is_development:
        raise NotFoundError("Not found")

    counts = await seed_catalog(db)
    await db.commit()
    await service.invalidate_catalog_cache(cache)
    return {"message": "Sample data seeded successfully", **counts}
