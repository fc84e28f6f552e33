"""
shared/models/models.py
All SQLAlchemy ORM models for the study-abroad counseling platform.
Integer primary keys throughout, except users, which are keyed by the
identity provider's subject id.
"""

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum as PyEnum
from typing import List, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import ARRAY
from sqlalchemy.orm import Mapped, mapped_column, relationship

from config.database import Base


# ── Constants ─────────────────────────────────────────────────

APPLICATION_STATUS_SUBMITTED = "Submitted"
APPLICATION_STATUS_VISA_APPROVED = "Visa Approved"


class NotificationType(str, PyEnum):
    INFO = "info"
    APPLICATION = "application"
    APPOINTMENT = "appointment"
    CRITICAL = "critical"


# PostgreSQL arrays; plain JSON lists on SQLite
IntegerList = ARRAY(Integer).with_variant(JSON(), "sqlite")
StringList = ARRAY(String(255)).with_variant(JSON(), "sqlite")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ── Mixins ────────────────────────────────────────────────────

class CreatedAtMixin:
    """Adds created_at to any model."""
    created_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=True
    )


class TimestampMixin(CreatedAtMixin):
    """Adds created_at and updated_at to any model."""
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=True
    )


# ── Models ────────────────────────────────────────────────────

class User(TimestampMixin, Base):
    """Local user record. The id is the identity provider's subject."""
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(255), primary_key=True)
    email: Mapped[Optional[str]] = mapped_column(String(255), unique=True, nullable=True)
    first_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    last_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    profile_image_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    is_admin: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    applications: Mapped[List["Application"]] = relationship(back_populates="user")
    notifications: Mapped[List["Notification"]] = relationship(back_populates="user")
    favorites: Mapped[List["Favorite"]] = relationship(back_populates="user")

    def __repr__(self) -> str:
        return f"<User {self.email} (admin={self.is_admin})>"


class University(CreatedAtMixin, Base):
    __tablename__ = "universities"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    city: Mapped[str] = mapped_column(String(255), nullable=False)
    country: Mapped[str] = mapped_column(String(255), nullable=False)
    google_map_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    image_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    courses: Mapped[List["Course"]] = relationship(back_populates="university")


class Course(CreatedAtMixin, Base):
    """
    A course offered by a university. The university is always loaded with
    the course (joined eager load) since every catalog read needs it.
    """
    __tablename__ = "courses"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    university_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("universities.id"), nullable=False
    )
    level: Mapped[str] = mapped_column(String(100), nullable=False)        # Bachelors, Masters, PhD
    duration: Mapped[str] = mapped_column(String(100), nullable=False)     # "12 months", "3 Years"
    tuition_fee: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), default="GBP")
    ielts_overall: Mapped[Decimal] = mapped_column(Numeric(2, 1), nullable=False)
    ielts_listening: Mapped[Optional[Decimal]] = mapped_column(Numeric(2, 1), nullable=True)
    ielts_reading: Mapped[Optional[Decimal]] = mapped_column(Numeric(2, 1), nullable=True)
    ielts_writing: Mapped[Optional[Decimal]] = mapped_column(Numeric(2, 1), nullable=True)
    ielts_speaking: Mapped[Optional[Decimal]] = mapped_column(Numeric(2, 1), nullable=True)
    faculty: Mapped[str] = mapped_column(String(255), nullable=False)
    scholarships: Mapped[Optional[List[str]]] = mapped_column(StringList, nullable=True)
    start_dates: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    university: Mapped[Optional["University"]] = relationship(
        back_populates="courses", lazy="joined"
    )

    __table_args__ = (
        Index("ix_courses_university_id", "university_id"),
        Index("ix_courses_faculty", "faculty"),
        Index("ix_courses_level", "level"),
        Index("ix_courses_ielts_overall", "ielts_overall"),
        Index("ix_courses_name", "name"),
    )


class Counselor(CreatedAtMixin, Base):
    __tablename__ = "counselors"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    whatsapp: Mapped[str] = mapped_column(String(50), nullable=False)
    languages: Mapped[List[str]] = mapped_column(StringList, nullable=False, default=list)
    experience: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    profile_image_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)


class Tutorial(CreatedAtMixin, Base):
    __tablename__ = "tutorials"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    youtube_url: Mapped[str] = mapped_column(Text, nullable=False)
    thumbnail_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    category: Mapped[str] = mapped_column(String(100), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)


class Favorite(CreatedAtMixin, Base):
    """A user's saved course. One row per (user, course)."""
    __tablename__ = "favorites"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(
        String(255), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    course_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("courses.id", ondelete="CASCADE"), nullable=False
    )

    user: Mapped["User"] = relationship(back_populates="favorites")
    course: Mapped["Course"] = relationship(lazy="joined")

    __table_args__ = (
        UniqueConstraint("user_id", "course_id", name="uq_favorite_user_course"),
    )


class Application(TimestampMixin, Base):
    """
    A study-abroad application. selected_courses keeps the applicant's order;
    the first entry is the one named in notifications.
    """
    __tablename__ = "applications"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(
        String(255), ForeignKey("users.id"), nullable=False
    )
    full_name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[str] = mapped_column(String(50), nullable=False)
    selected_courses: Mapped[List[int]] = mapped_column(IntegerList, nullable=False, default=list)
    additional_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(
        String(100), nullable=False, default=APPLICATION_STATUS_SUBMITTED
    )

    user: Mapped["User"] = relationship(back_populates="applications")

    __table_args__ = (
        Index("ix_applications_user_id", "user_id"),
        Index("ix_applications_status", "status"),
    )


class Notification(CreatedAtMixin, Base):
    """In-app notification. Unread until marked read; never un-read."""
    __tablename__ = "notifications"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(
        String(255), ForeignKey("users.id"), nullable=False
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[str] = mapped_column(
        String(50), nullable=False, default=NotificationType.INFO.value
    )
    is_read: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    user: Mapped["User"] = relationship(back_populates="notifications")

    __table_args__ = (Index("ix_notifications_user_id_read", "user_id", "is_read"),)
