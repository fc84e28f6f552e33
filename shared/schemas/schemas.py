"""
shared/schemas/schemas.py
All Pydantic v2 request/response schemas for the platform.
JSON keys are camelCase on the wire; snake_case is accepted on input too.
"""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel


# ── Base ──────────────────────────────────────────────────────

class BaseSchema(BaseModel):
    model_config = ConfigDict(
        from_attributes=True,
        use_enum_values=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


def _require_text(value: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError("must not be blank")
    return value


# ── User ──────────────────────────────────────────────────────

class UserResponse(BaseSchema):
    id: str
    email: Optional[str]
    first_name: Optional[str]
    last_name: Optional[str]
    profile_image_url: Optional[str]
    phone: Optional[str]
    is_admin: bool
    created_at: Optional[datetime]
    updated_at: Optional[datetime]


class UserUpsertRequest(BaseSchema):
    first_name: Optional[str] = Field(None, max_length=255)
    last_name: Optional[str] = Field(None, max_length=255)


# ── Catalog ───────────────────────────────────────────────────

class UniversityCreate(BaseSchema):
    name: str = Field(..., min_length=1, max_length=255)
    city: str = Field(..., min_length=1, max_length=255)
    country: str = Field(..., min_length=1, max_length=255)
    google_map_url: Optional[str] = None
    image_url: Optional[str] = None


class UniversityResponse(BaseSchema):
    id: int
    name: str
    city: str
    country: str
    google_map_url: Optional[str]
    image_url: Optional[str]
    created_at: Optional[datetime]


class CourseCreate(BaseSchema):
    name: str = Field(..., min_length=1, max_length=255)
    university_id: int
    level: str = Field(..., min_length=1, max_length=100)
    duration: str = Field(..., min_length=1, max_length=100)
    tuition_fee: Decimal = Field(..., ge=0)
    currency: str = Field("GBP", min_length=3, max_length=3)
    ielts_overall: Decimal = Field(..., ge=0, le=9)
    ielts_listening: Optional[Decimal] = Field(None, ge=0, le=9)
    ielts_reading: Optional[Decimal] = Field(None, ge=0, le=9)
    ielts_writing: Optional[Decimal] = Field(None, ge=0, le=9)
    ielts_speaking: Optional[Decimal] = Field(None, ge=0, le=9)
    faculty: str = Field(..., min_length=1, max_length=255)
    scholarships: Optional[List[str]] = None
    start_dates: Optional[str] = None


class CourseResponse(BaseSchema):
    id: int
    name: str
    university_id: int
    level: str
    duration: str
    tuition_fee: Decimal
    currency: Optional[str]
    ielts_overall: Decimal
    ielts_listening: Optional[Decimal]
    ielts_reading: Optional[Decimal]
    ielts_writing: Optional[Decimal]
    ielts_speaking: Optional[Decimal]
    faculty: str
    scholarships: Optional[List[str]]
    start_dates: Optional[str]
    created_at: Optional[datetime]
    university: UniversityResponse


class CounselorResponse(BaseSchema):
    id: int
    name: str
    title: str
    whatsapp: str
    languages: List[str]
    experience: Optional[str]
    profile_image_url: Optional[str]
    is_active: bool


class TutorialResponse(BaseSchema):
    id: int
    title: str
    description: Optional[str]
    youtube_url: str
    thumbnail_url: Optional[str]
    category: str
    is_active: bool
    created_at: Optional[datetime]


# ── Favorites ─────────────────────────────────────────────────

class FavoriteCreate(BaseSchema):
    course_id: int


class FavoriteResponse(BaseSchema):
    id: int
    course_id: int
    created_at: Optional[datetime]
    course: CourseResponse


class FavoriteCheckResponse(BaseSchema):
    is_favorite: bool


class FavoriteDeleteResponse(BaseSchema):
    message: str
    deleted: bool


# ── Application ───────────────────────────────────────────────

class ApplicationCreateRequest(BaseSchema):
    """Submission body. Unknown keys, including any status, are ignored."""
    full_name: str = Field(..., max_length=255)
    email: EmailStr
    phone: str = Field(..., max_length=50)
    selected_courses: List[int]
    additional_notes: Optional[str] = Field(None, max_length=5000)

    @field_validator("full_name", "phone")
    @classmethod
    def validate_required_text(cls, v: str) -> str:
        return _require_text(v)


class CourseDetail(BaseSchema):
    id: int
    name: str
    university_name: Optional[str]


class ApplicationResponse(BaseSchema):
    id: int
    user_id: str
    full_name: str
    email: str
    phone: str
    selected_courses: List[int]
    additional_notes: Optional[str]
    status: str
    created_at: Optional[datetime]
    updated_at: Optional[datetime]


class ApplicationWithCoursesResponse(ApplicationResponse):
    course_details: List[CourseDetail] = []


class ApplicationStatusUpdateRequest(BaseSchema):
    status: str = Field(..., max_length=100)

    @field_validator("status")
    @classmethod
    def validate_status(cls, v: str) -> str:
        return _require_text(v)


# ── Notification ──────────────────────────────────────────────

class NotificationResponse(BaseSchema):
    id: int
    user_id: str
    title: str
    message: str
    type: str
    is_read: bool
    created_at: Optional[datetime]


class UnreadCountResponse(BaseSchema):
    count: int


class BroadcastRequest(BaseSchema):
    user_ids: Optional[List[str]] = None
    type: str = Field(..., max_length=50)
    title: str = Field(..., max_length=255)
    message: str

    @field_validator("type", "title", "message")
    @classmethod
    def validate_required_text(cls, v: str) -> str:
        return _require_text(v)


class BroadcastResponse(BaseSchema):
    success: bool
    message: str
    sent: int
    failed: List[str]
    notifications: List[NotificationResponse]


# ── Admin ─────────────────────────────────────────────────────

class AdminStatsResponse(BaseSchema):
    total_users: int
    total_applications: int
    total_courses: int
    total_universities: int
    new_users_this_week: int
    new_applications_this_week: int
    conversion_rate: int
    final_conversion_rate: int


class RegistrationPoint(BaseSchema):
    date: Optional[datetime]
    count: int = 1


class SubmissionPoint(RegistrationPoint):
    status: str


class AdminAnalyticsResponse(BaseSchema):
    user_registrations: List[RegistrationPoint]
    application_submissions: List[SubmissionPoint]


# ── Generic ───────────────────────────────────────────────────

class SuccessResponse(BaseSchema):
    success: bool = True
