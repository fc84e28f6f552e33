"""
tests/test_applications.py
Tests for application submission, listing and admin status updates,
including the notifications each one produces.
"""

import pytest
from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from services.application import service as application_service
from services.notification import service as notification_service
from shared.models.models import Application, Course, Notification, User
from tests.conftest import auth_headers


def application_body(**overrides) -> dict:
    body = {
        "fullName": "Amina Rahman",
        "email": "amina@example.com",
        "phone": "+447700900123",
        "selectedCourses": [],
        "additionalNotes": "Interested in September intake",
    }
    body.update(overrides)
    return body


async def notifications_for(db: AsyncSession, user_id: str):
    result = await db.execute(
        select(Notification).where(Notification.user_id == user_id).order_by(Notification.id)
    )
    return result.scalars().all()


# ── Submission ────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_submit_requires_authentication(client: AsyncClient):
    response = await client.post("/api/applications", json=application_body())
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_submit_creates_application_and_course_notification(
    client: AsyncClient, user: User, course: Course, db: AsyncSession
):
    response = await client.post(
        "/api/applications",
        json=application_body(selectedCourses=[course.id]),
        headers=auth_headers(user),
    )
    assert response.status_code == 201
    data = response.json()
    assert data["status"] == "Submitted"
    assert data["userId"] == user.id
    assert data["selectedCourses"] == [course.id]

    notifications = await notifications_for(db, user.id)
    assert len(notifications) == 1
    assert notifications[0].title == "Application Submitted Successfully"
    assert notifications[0].type == "application"
    assert notifications[0].is_read is False
    assert notifications[0].message == (
        'Your application to "University of Oxford" for MSc Computer Science has been '
        "submitted. A counsellor will contact you within 6 working hours."
    )


@pytest.mark.asyncio
async def test_submit_without_courses_uses_generic_message(
    client: AsyncClient, user: User, db: AsyncSession
):
    response = await client.post("/api/applications", json=application_body(), headers=auth_headers(user))
    assert response.status_code == 201
    application_id = response.json()["id"]

    notifications = await notifications_for(db, user.id)
    assert notifications[0].message == (
        f"Your application #{application_id} has been submitted. "
        "A counsellor will contact you within 6 working hours."
    )


@pytest.mark.asyncio
async def test_submit_with_unknown_course_uses_generic_message(
    client: AsyncClient, user: User, db: AsyncSession
):
    response = await client.post(
        "/api/applications",
        json=application_body(selectedCourses=[4242]),
        headers=auth_headers(user),
    )
    assert response.status_code == 201
    notifications = await notifications_for(db, user.id)
    assert notifications[0].message.startswith(f"Your application #{response.json()['id']} ")


@pytest.mark.asyncio
async def test_client_supplied_status_is_ignored(client: AsyncClient, user: User):
    response = await client.post(
        "/api/applications",
        json=application_body(status="Visa Approved"),
        headers=auth_headers(user),
    )
    assert response.status_code == 201
    assert response.json()["status"] == "Submitted"


@pytest.mark.asyncio
async def test_notification_failure_does_not_fail_submission(
    client: AsyncClient, user: User, db: AsyncSession, monkeypatch
):
    async def broken_create(*args, **kwargs):
        raise SQLAlchemyError("notifications table unavailable")

    monkeypatch.setattr(notification_service, "create", broken_create)

    response = await client.post("/api/applications", json=application_body(), headers=auth_headers(user))
    assert response.status_code == 201

    stored = await db.scalar(select(Application).where(Application.id == response.json()["id"]))
    assert stored is not None
    assert await notifications_for(db, user.id) == []


@pytest.mark.asyncio
async def test_unexpected_notification_error_does_not_fail_submission(
    client: AsyncClient, user: User, db: AsyncSession, monkeypatch
):
    async def broken_create(*args, **kwargs):
        raise RuntimeError("dispatcher crashed")

    monkeypatch.setattr(notification_service, "create", broken_create)

    response = await client.post("/api/applications", json=application_body(), headers=auth_headers(user))
    assert response.status_code == 201

    stored = await db.scalar(select(Application).where(Application.id == response.json()["id"]))
    assert stored is not None
    assert await notifications_for(db, user.id) == []


@pytest.mark.asyncio
@pytest.mark.parametrize("error", [SQLAlchemyError("courses table unavailable"), RuntimeError("boom")])
async def test_course_lookup_failure_falls_back_to_generic_message(
    client: AsyncClient, user: User, course: Course, db: AsyncSession, monkeypatch, error
):
    async def broken_lookup(*args, **kwargs):
        raise error

    monkeypatch.setattr(application_service, "_first_course", broken_lookup)

    response = await client.post(
        "/api/applications",
        json=application_body(selectedCourses=[course.id]),
        headers=auth_headers(user),
    )
    assert response.status_code == 201
    application_id = response.json()["id"]

    notifications = await notifications_for(db, user.id)
    assert len(notifications) == 1
    assert notifications[0].message == (
        f"Your application #{application_id} has been submitted. "
        "A counsellor will contact you within 6 working hours."
    )


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "overrides",
    [
        {"fullName": ""},
        {"fullName": "   "},
        {"email": "not-an-email"},
        {"phone": ""},
        {"selectedCourses": "1,2"},
    ],
)
async def test_invalid_submission_returns_400(client: AsyncClient, user: User, overrides):
    response = await client.post(
        "/api/applications",
        json=application_body(**overrides),
        headers=auth_headers(user),
    )
    assert response.status_code == 400
    assert response.json()["errors"]


@pytest.mark.asyncio
async def test_missing_selected_courses_returns_400(client: AsyncClient, user: User):
    body = application_body()
    del body["selectedCourses"]
    response = await client.post("/api/applications", json=body, headers=auth_headers(user))
    assert response.status_code == 400


# ── Listing ───────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_list_applications_newest_first_with_course_details(
    client: AsyncClient, user: User, other_user: User, course: Course, second_course: Course
):
    headers = auth_headers(user)
    first = await client.post(
        "/api/applications", json=application_body(selectedCourses=[course.id]), headers=headers
    )
    second = await client.post(
        "/api/applications",
        json=application_body(selectedCourses=[second_course.id, 4242, course.id]),
        headers=headers,
    )
    await client.post("/api/applications", json=application_body(), headers=auth_headers(other_user))

    response = await client.get("/api/applications", headers=headers)
    assert response.status_code == 200
    data = response.json()
    assert [a["id"] for a in data] == [second.json()["id"], first.json()["id"]]

    details = data[0]["courseDetails"]
    assert [d["id"] for d in details] == [second_course.id, course.id]
    assert details[0]["name"] == "MBA Business Administration"
    assert details[0]["universityName"] == "University of Oxford"


# ── Status updates ────────────────────────────────────────────

@pytest.mark.asyncio
async def test_admin_status_update_notifies_applicant(
    client: AsyncClient, user: User, admin_user: User, course: Course, db: AsyncSession
):
    submitted = await client.post(
        "/api/applications",
        json=application_body(selectedCourses=[course.id]),
        headers=auth_headers(user),
    )
    application_id = submitted.json()["id"]

    response = await client.patch(
        f"/api/admin/applications/{application_id}/status",
        json={"status": "Offer Received"},
        headers=auth_headers(admin_user),
    )
    assert response.status_code == 200
    assert response.json()["status"] == "Offer Received"

    notifications = await notifications_for(db, user.id)
    assert len(notifications) == 2
    assert notifications[1].title == "Application Status Updated"
    assert notifications[1].type == "application"
    assert notifications[1].message == (
        "Your application status for MSc Computer Science at University of Oxford "
        "has been updated to: Offer Received"
    )


@pytest.mark.asyncio
async def test_status_update_without_courses_uses_fallback_descriptor(
    client: AsyncClient, user: User, admin_user: User, db: AsyncSession
):
    submitted = await client.post("/api/applications", json=application_body(), headers=auth_headers(user))
    application_id = submitted.json()["id"]

    await client.patch(
        f"/api/admin/applications/{application_id}/status",
        json={"status": "Visa Approved"},
        headers=auth_headers(admin_user),
    )
    notifications = await notifications_for(db, user.id)
    assert notifications[-1].message == (
        "Your application status for your application has been updated to: Visa Approved"
    )


@pytest.mark.asyncio
async def test_status_update_unknown_application_returns_404(
    client: AsyncClient, admin_user: User, db: AsyncSession
):
    response = await client.patch(
        "/api/admin/applications/9999/status",
        json={"status": "Offer Received"},
        headers=auth_headers(admin_user),
    )
    assert response.status_code == 404
    assert (await db.execute(select(Notification))).scalars().all() == []


@pytest.mark.asyncio
async def test_status_update_blank_status_returns_400(
    client: AsyncClient, user: User, admin_user: User
):
    submitted = await client.post("/api/applications", json=application_body(), headers=auth_headers(user))
    response = await client.patch(
        f"/api/admin/applications/{submitted.json()['id']}/status",
        json={"status": "  "},
        headers=auth_headers(admin_user),
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_status_update_requires_admin(client: AsyncClient, user: User):
    submitted = await client.post("/api/applications", json=application_body(), headers=auth_headers(user))
    response = await client.patch(
        f"/api/admin/applications/{submitted.json()['id']}/status",
        json={"status": "Visa Approved"},
        headers=auth_headers(user),
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_status_update_rolls_back_when_notification_fails(
    client: AsyncClient, user: User, admin_user: User, db: AsyncSession, monkeypatch
):
    submitted = await client.post("/api/applications", json=application_body(), headers=auth_headers(user))
    application_id = submitted.json()["id"]

    async def broken_create(*args, **kwargs):
        raise SQLAlchemyError("notifications table unavailable")

    monkeypatch.setattr(notification_service, "create", broken_create)

    response = await client.patch(
        f"/api/admin/applications/{application_id}/status",
        json={"status": "Visa Approved"},
        headers=auth_headers(admin_user),
    )
    assert response.status_code == 500
    assert response.json()["detail"] == "An internal server error occurred"

    stored = await db.scalar(select(Application).where(Application.id == application_id))
    assert stored.status == "Submitted"
