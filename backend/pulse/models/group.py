"""
models/group.py — Group (activity) table definition.

No business logic. No imports from services or routes.

A group is a scheduled sports session. The organizer is always also a
member (group_members row with role 'organizer'), written in the same
transaction as the group row by activity_service.create_activity().

Groups are never deleted. status moves toward completed/cancelled, but no
code path performs that transition yet.
"""

from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backend.pulse.extensions import db
from backend.pulse.models.base import str_enum


class Privacy(str, enum.Enum):
    PUBLIC  = "PUBLIC"
    FRIENDS = "FRIENDS"
    INVITE  = "INVITE"
    PRIVATE = "PRIVATE"


class GroupStatus(str, enum.Enum):
    UPCOMING  = "upcoming"
    ACTIVE    = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class Group(db.Model):
    # 'groups' is a keyword in recent SQLite versions; SQLAlchemy quotes it.
    __tablename__ = "groups"

    __table_args__ = (
        CheckConstraint("LENGTH(TRIM(title)) > 0", name="ck_groups_title_nonempty"),
        CheckConstraint("max_members > 0", name="ck_groups_max_members_positive"),
        # Discover page: upcoming activities in schedule order.
        Index("idx_groups_status_date_time", "status", "date_time"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    title: Mapped[str] = mapped_column(String(150), nullable=False)

    details: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        default="",
        server_default="",
    )

    sport_id: Mapped[int] = mapped_column(
        ForeignKey("sports.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    organizer_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    city: Mapped[str] = mapped_column(String(100), nullable=False)

    # Full address / venue; optional.
    location: Mapped[str | None] = mapped_column(String(255), nullable=True)

    date_time: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    privacy: Mapped[Privacy] = mapped_column(
        str_enum(Privacy, "privacy_enum"),
        nullable=False,
        default=Privacy.PUBLIC,
        server_default=Privacy.PUBLIC.value,
    )

    max_members: Mapped[int] = mapped_column(Integer, nullable=False)

    status: Mapped[GroupStatus] = mapped_column(
        str_enum(GroupStatus, "group_status_enum"),
        nullable=False,
        default=GroupStatus.UPCOMING,
        server_default=GroupStatus.UPCOMING.value,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    # ── Relationships ──────────────────────────────────────────────────────

    sport: Mapped["Sport"] = relationship(  # noqa: F821
        "Sport",
        back_populates="groups",
    )

    organizer: Mapped["User"] = relationship(  # noqa: F821
        "User",
        back_populates="organized_groups",
        foreign_keys=[organizer_id],
    )

    members: Mapped[list["GroupMember"]] = relationship(  # noqa: F821
        "GroupMember",
        back_populates="group",
    )

    def __repr__(self) -> str:  # pragma: no cover
        return f"<Group id={self.id} title={self.title!r} status={self.status}>"
