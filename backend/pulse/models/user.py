"""
models/user.py — User table definition.

No business logic. No imports from services or routes.

The rating / total_ratings / flags columns are denormalized counters.
They are maintained by reputation_service in the same transaction as the
rows they summarise, and moderation_service.reconcile_counters() recomputes
them from user_ratings / flag_reports.
"""

from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, Float, Integer, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backend.pulse.extensions import db
from backend.pulse.models.base import str_enum


class UserRole(str, enum.Enum):
    ADMIN = "admin"
    USER  = "user"


class UserStatus(str, enum.Enum):
    ACTIVE    = "active"
    SUSPENDED = "suspended"
    PENDING   = "pending"


class User(db.Model):
    __tablename__ = "users"

    __table_args__ = (
        UniqueConstraint("username", name="uq_users_username"),
        UniqueConstraint("email", name="uq_users_email"),
        CheckConstraint(
            "LENGTH(TRIM(username)) > 0",
            name="ck_users_username_nonempty",
        ),
        CheckConstraint(
            "email LIKE '%@%'",
            name="ck_users_email_format",
        ),
        CheckConstraint(
            "rating >= 0 AND rating <= 5",
            name="ck_users_rating_range",
        ),
        CheckConstraint("total_ratings >= 0", name="ck_users_total_ratings_nonneg"),
        CheckConstraint("flags >= 0", name="ck_users_flags_nonneg"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    name: Mapped[str] = mapped_column(String(100), nullable=False)

    username: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
    )

    email: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    password_hash: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    role: Mapped[UserRole] = mapped_column(
        str_enum(UserRole, "user_role_enum"),
        nullable=False,
        default=UserRole.USER,
        server_default=UserRole.USER.value,
    )

    # Mean of user_ratings.rating for this user, one decimal place.
    # Meaningful only while total_ratings > 0.
    rating: Mapped[float] = mapped_column(
        Float,
        nullable=False,
        default=0.0,
        server_default="0",
    )

    total_ratings: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        server_default="0",
    )

    # Count of flag_reports naming this user as the reported party.
    flags: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        server_default="0",
    )

    status: Mapped[UserStatus] = mapped_column(
        str_enum(UserStatus, "user_status_enum"),
        nullable=False,
        default=UserStatus.ACTIVE,
        server_default=UserStatus.ACTIVE.value,
    )

    join_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    last_activity: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    # ── Relationships ──────────────────────────────────────────────────────
    # Read-only navigation.

    memberships: Mapped[list["GroupMember"]] = relationship(  # noqa: F821
        "GroupMember",
        back_populates="user",
    )

    organized_groups: Mapped[list["Group"]] = relationship(  # noqa: F821
        "Group",
        back_populates="organizer",
    )

    def __repr__(self) -> str:  # pragma: no cover
        return f"<User id={self.id} username={self.username!r} status={self.status}>"
