"""
services/catalog/service.py
Read and create operations for universities, courses, counselors and tutorials.
"""

import logging
import math
from decimal import Decimal
from typing import List, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from config.redis_client import RedisCache
from shared.models.models import Counselor, Course, Tutorial, University
from shared.schemas.schemas import CourseCreate, UniversityCreate, UniversityResponse
from shared.utils.errors import InternalError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

ALL_FACULTIES = "All Faculties"
ALL_LEVELS = "All Levels"
ALL_IELTS_SCORES = "All IELTS Scores"

UNIVERSITIES_CACHE_KEY = "catalog:universities"
CATALOG_CACHE_PATTERN = "catalog:*"


def parse_ielts_score(value: Optional[str]) -> Optional[Decimal]:
    """Parse the ieltsScore filter. Empty or the sentinel means no filter."""
    if not value or value == ALL_IELTS_SCORES:
        return None
    try:
        score = float(value)
    except ValueError:
        raise ValidationError(f"Invalid IELTS score: {value}")
    if not math.isfinite(score):
        raise ValidationError(f"Invalid IELTS score: {value}")
    return Decimal(str(score))


def _ensure_university(courses: Sequence[Course]) -> None:
    for course in courses:
        if course.university is None:
            logger.error(
                f"Course {course.id} references missing university {course.university_id}"
            )
            raise InternalError(f"Course {course.id} has no university")


async def get_courses(
    db: AsyncSession,
    search: Optional[str] = None,
    faculty: Optional[str] = None,
    level: Optional[str] = None,
    ielts_score: Optional[str] = None,
) -> List[Course]:
    """
    Filtered course list with each course's university.
    search: case-insensitive substring of the name.
    faculty/level: exact match unless empty or the "All ..." sentinel.
    ielts_score: exact match on the overall band.
    """
    query = select(Course).order_by(Course.id)

    if search:
        query = query.where(Course.name.ilike(f"%{search}%"))
    if faculty and faculty != ALL_FACULTIES:
        query = query.where(Course.faculty == faculty)
    if level and level != ALL_LEVELS:
        query = query.where(Course.level == level)

    score = parse_ielts_score(ielts_score)
    if score is not None:
        query = query.where(Course.ielts_overall == score)

    result = await db.execute(query)
    courses = list(result.unique().scalars())
    _ensure_university(courses)
    return courses


async def get_course(db: AsyncSession, course_id: int) -> Course:
    course = await db.scalar(select(Course).where(Course.id == course_id))
    if not course:
        raise NotFoundError("Course not found")
    _ensure_university([course])
    return course


async def get_universities(db: AsyncSession, cache: Optional[RedisCache] = None) -> List[dict]:
    """All universities as JSON-ready dicts, served from Redis when cached."""
    if cache:
        cached = await cache.get(UNIVERSITIES_CACHE_KEY)
        if cached is not None:
            return cached

    result = await db.execute(select(University).order_by(University.id))
    universities = [
        UniversityResponse.model_validate(u).model_dump(mode="json", by_alias=True)
        for u in result.scalars()
    ]

    if cache:
        await cache.set(UNIVERSITIES_CACHE_KEY, universities)
    return universities


async def get_counselors(db: AsyncSession) -> List[Counselor]:
    result = await db.execute(
        select(Counselor).where(Counselor.is_active.is_(True)).order_by(Counselor.id)
    )
    return list(result.scalars())


async def get_tutorials(db: AsyncSession) -> List[Tutorial]:
    result = await db.execute(
        select(Tutorial)
        .where(Tutorial.is_active.is_(True))
        .order_by(Tutorial.created_at.desc(), Tutorial.id.desc())
    )
    return list(result.scalars())


async def invalidate_catalog_cache(cache: Optional[RedisCache]) -> None:
    if cache:
        await cache.delete_pattern(CATALOG_CACHE_PATTERN)


async def create_university(db: AsyncSession, data: UniversityCreate) -> University:
    university = University(**data.model_dump())
    db.add(university)
    await db.flush()
    logger.info(f"University created: {university.id} ({university.name})")
    return university


async def create_course(db: AsyncSession, data: CourseCreate) -> Course:
    university = await db.get(University, data.university_id)
    if not university:
        raise NotFoundError("University not found")

    course = Course(**data.model_dump())
    course.university = university
    db.add(course)
    await db.flush()
    logger.info(f"Course created: {course.id} ({course.name})")
    return course
