"""
models/sport.py — Sport table definition.

No business logic. No imports from services or routes.

group_count is a denormalized counter of groups referencing this sport.
activity_service increments it in the same transaction that inserts the
group; moderation_service.reconcile_counters() recomputes it.
Sports are never hard-deleted: is_active=False retires one.
"""

from __future__ import annotations

from sqlalchemy import Boolean, CheckConstraint, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backend.pulse.extensions import db


class Sport(db.Model):
    __tablename__ = "sports"

    __table_args__ = (
        UniqueConstraint("name", name="uq_sports_name"),
        UniqueConstraint("slug", name="uq_sports_slug"),
        CheckConstraint("LENGTH(TRIM(name)) > 0", name="ck_sports_name_nonempty"),
        CheckConstraint("group_count >= 0", name="ck_sports_group_count_nonneg"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    name: Mapped[str] = mapped_column(String(50), nullable=False)

    # A single emoji glyph in practice; sized for multi-codepoint sequences.
    icon: Mapped[str] = mapped_column(String(16), nullable=False)

    # URL-safe identifier, e.g. "table-tennis".
    slug: Mapped[str] = mapped_column(String(60), nullable=False)

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        server_default="1",
    )

    group_count: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        server_default="0",
    )

    # ── Relationships ──────────────────────────────────────────────────────

    groups: Mapped[list["Group"]] = relationship(  # noqa: F821
        "Group",
        back_populates="sport",
    )

    def __repr__(self) -> str:  # pragma: no cover
        return f"<Sport id={self.id} slug={self.slug!r} active={self.is_active}>"
