"""
services/application/service.py
Study-abroad application lifecycle.

- submit: always starts at "Submitted"; the confirmation notification is
  best-effort and never fails the submission.
- update_status: admin-driven; the status change and its notification
  commit or roll back together.
"""

import logging
from typing import Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from services.notification import service as notification_service
from shared.models.models import (
    APPLICATION_STATUS_SUBMITTED,
    Application,
    Course,
    NotificationType,
    utcnow,
)
from shared.schemas.schemas import (
    ApplicationCreateRequest,
    ApplicationWithCoursesResponse,
    CourseDetail,
)
from shared.utils.errors import NotFoundError, ValidationError

logger = logging.getLogger(__name__)

SUBMITTED_TITLE = "Application Submitted Successfully"
STATUS_UPDATED_TITLE = "Application Status Updated"
COUNSELLOR_PROMISE = "A counsellor will contact you within 6 working hours."


def submitted_message(application_id: int, course: Optional[Course] = None) -> str:
    if course is not None and course.university is not None:
        return (
            f'Your application to "{course.university.name}" for {course.name} '
            f"has been submitted. {COUNSELLOR_PROMISE}"
        )
    return f"Your application #{application_id} has been submitted. {COUNSELLOR_PROMISE}"


def course_descriptor(course: Optional[Course]) -> str:
    """'<Course> at <University>' for the first selected course, if it resolves."""
    if course is None:
        return "your application"
    if course.university is None:
        return course.name
    return f"{course.name} at {course.university.name}"


async def _first_course(db: AsyncSession, application: Application) -> Optional[Course]:
    if not application.selected_courses:
        return None
    return await db.scalar(
        select(Course).where(Course.id == application.selected_courses[0])
    )


async def submit(db: AsyncSession, user_id: str, data: ApplicationCreateRequest) -> Application:
    """Persist a new application for user_id, then notify the applicant."""
    application = Application(
        user_id=user_id,
        full_name=data.full_name,
        email=data.email,
        phone=data.phone,
        selected_courses=list(data.selected_courses),
        additional_notes=data.additional_notes,
        status=APPLICATION_STATUS_SUBMITTED,
    )
    db.add(application)
    await db.flush()
    logger.info(f"Application {application.id} submitted by {user_id}")

    course = None
    try:
        async with db.begin_nested():
            course = await _first_course(db, application)
    except Exception:
        logger.exception(f"Course lookup for application {application.id} failed")

    try:
        async with db.begin_nested():
            await notification_service.create(
                db,
                user_id,
                NotificationType.APPLICATION.value,
                SUBMITTED_TITLE,
                submitted_message(application.id, course),
            )
    except Exception:
        logger.exception(f"Failed to create notification for application {application.id}")

    return application


async def update_status(db: AsyncSession, application_id: int, new_status: str) -> Application:
    """
    Set a new status and notify the applicant. Any failure propagates so the
    surrounding transaction rolls back both writes.
    """
    new_status = (new_status or "").strip()
    if not new_status:
        raise ValidationError("Status is required")

    application = await db.get(Application, application_id)
    if not application:
        raise NotFoundError("Application not found")

    application.status = new_status
    application.updated_at = utcnow()
    await db.flush()

    descriptor = course_descriptor(await _first_course(db, application))
    await notification_service.create(
        db,
        application.user_id,
        NotificationType.APPLICATION.value,
        STATUS_UPDATED_TITLE,
        f"Your application status for {descriptor} has been updated to: {new_status}",
    )
    logger.info(f"Application {application_id} status -> {new_status}")
    return application


async def list_for_user(db: AsyncSession, user_id: str) -> List[ApplicationWithCoursesResponse]:
    """The user's applications, newest first, with the selected courses resolved."""
    result = await db.execute(
        select(Application)
        .where(Application.user_id == user_id)
        .order_by(Application.created_at.desc(), Application.id.desc())
    )
    applications = list(result.scalars())

    course_ids = {cid for a in applications for cid in (a.selected_courses or [])}
    courses: Dict[int, Course] = {}
    if course_ids:
        course_result = await db.execute(select(Course).where(Course.id.in_(course_ids)))
        courses = {c.id: c for c in course_result.unique().scalars()}

    enriched = []
    for application in applications:
        details = [
            CourseDetail(
                id=courses[cid].id,
                name=courses[cid].name,
                university_name=courses[cid].university.name if courses[cid].university else None,
            )
            for cid in (application.selected_courses or [])
            if cid in courses
        ]
        item = ApplicationWithCoursesResponse.model_validate(application)
        item.course_details = details
        enriched.append(item)
    return enriched
