"""
services/catalog/seed.py
Sample catalog for development: universities, courses, counselors and tutorials.
"""

import logging
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from shared.models.models import Counselor, Course, Tutorial, University

logger = logging.getLogger(__name__)


SEED_UNIVERSITIES = [
    {
        "name": "University of Oxford",
        "city": "Oxford",
        "country": "United Kingdom",
        "image_url": "https://images.unsplash.com/photo-1564126220613-7c0c6b8e8f7a?w=400&h=300&fit=crop",
    },
    {
        "name": "University of Cambridge",
        "city": "Cambridge",
        "country": "United Kingdom",
        "image_url": "https://images.unsplash.com/photo-1520637836862-4d197d17c936?w=400&h=300&fit=crop",
    },
    {
        "name": "Imperial College London",
        "city": "London",
        "country": "United Kingdom",
        "image_url": "https://images.unsplash.com/photo-1513475382585-d06e58bcb0e0?w=400&h=300&fit=crop",
    },
    {
        "name": "University College London",
        "city": "London",
        "country": "United Kingdom",
        "image_url": "https://images.unsplash.com/photo-1501594907352-04cda38ebc29?w=400&h=300&fit=crop",
    },
]

# university_index points into SEED_UNIVERSITIES
SEED_COURSES = [
    {
        "name": "Master of Computer Science",
        "university_index": 0,
        "level": "Masters",
        "duration": "12 months",
        "tuition_fee": Decimal("35000"),
        "ielts_overall": Decimal("7.0"),
        "ielts_sub": Decimal("6.5"),
        "faculty": "Computer Science",
        "start_dates": "September",
    },
    {
        "name": "MBA - Master of Business Administration",
        "university_index": 1,
        "level": "Masters",
        "duration": "24 months",
        "tuition_fee": Decimal("45000"),
        "ielts_overall": Decimal("7.5"),
        "ielts_sub": Decimal("7.0"),
        "faculty": "Business",
        "start_dates": "September, January",
    },
    {
        "name": "MSc Engineering Management",
        "university_index": 2,
        "level": "Masters",
        "duration": "12 months",
        "tuition_fee": Decimal("38000"),
        "ielts_overall": Decimal("6.5"),
        "ielts_sub": Decimal("6.0"),
        "faculty": "Engineering",
        "start_dates": "September",
    },
    {
        "name": "Master of Laws (LLM)",
        "university_index": 3,
        "level": "Masters",
        "duration": "12 months",
        "tuition_fee": Decimal("42000"),
        "ielts_overall": Decimal("7.5"),
        "ielts_sub": Decimal("7.0"),
        "faculty": "Law",
        "start_dates": "September",
    },
]

SEED_COUNSELORS = [
    {
        "name": "Sarah Ahmed",
        "title": "Senior Admissions Counsellor",
        "whatsapp": "+447700900123",
        "languages": ["English", "Bengali"],
        "experience": "8 years",
    },
    {
        "name": "James Wilson",
        "title": "Visa Specialist",
        "whatsapp": "+447700900456",
        "languages": ["English"],
        "experience": "5 years",
    },
]

SEED_TUTORIALS = [
    {
        "title": "How to apply to UK universities",
        "description": "A walkthrough of the application process from shortlisting to offer.",
        "youtube_url": "https://www.youtube.com/watch?v=uk-application-guide",
        "category": "Applications",
    },
    {
        "title": "Preparing for your student visa",
        "description": "Documents, timelines and the CAS letter explained.",
        "youtube_url": "https://www.youtube.com/watch?v=uk-student-visa",
        "category": "Visa",
    },
]


async def seed_catalog(db: AsyncSession) -> dict:
    """
    Insert the sample catalog unless universities already exist.
    Returns the resulting table counts; calling it again changes nothing.
    """
    count = await db.scalar(select(func.count(University.id)))
    if not count:
        universities = [University(**u) for u in SEED_UNIVERSITIES]
        db.add_all(universities)
        await db.flush()

        for c in SEED_COURSES:
            c = dict(c)
            university = universities[c.pop("university_index")]
            sub_score = c.pop("ielts_sub")
            db.add(Course(
                university_id=university.id,
                ielts_listening=sub_score,
                ielts_reading=sub_score,
                ielts_writing=sub_score,
                ielts_speaking=sub_score,
                currency="GBP",
                **c,
            ))

        db.add_all(Counselor(**c) for c in SEED_COUNSELORS)
        db.add_all(Tutorial(**t) for t in SEED_TUTORIALS)
        await db.flush()
        logger.info(
            f"Seeded {len(SEED_UNIVERSITIES)} universities, {len(SEED_COURSES)} courses, "
            f"{len(SEED_COUNSELORS)} counselors, {len(SEED_TUTORIALS)} tutorials"
        )

    return {
        "universities": await db.scalar(select(func.count(University.id))),
        "courses": await db.scalar(select(func.count(Course.id))),
        "counselors": await db.scalar(select(func.count(Counselor.id))),
        "tutorials": await db.scalar(select(func.count(Tutorial.id))),
    }
