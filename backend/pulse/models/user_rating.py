"""
models/user_rating.py — UserRating table definition.

No business logic. No imports from services or routes.

One row per (rated user, rater, activity). A second submission for the same
key replaces the value via INSERT ... ON CONFLICT DO UPDATE in
reputation_service.rate_user(); it never adds a row or averages.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Integer, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backend.pulse.extensions import db


class UserRating(db.Model):
    __tablename__ = "user_ratings"

    __table_args__ = (
        UniqueConstraint(
            "rated_user_id",
            "rater_user_id",
            "group_id",
            name="uq_user_ratings_rated_rater_group",
        ),
        CheckConstraint("rating BETWEEN 1 AND 5", name="ck_user_ratings_rating_range"),
        # Also rejected as SELF_RATING by reputation_service before the write.
        CheckConstraint(
            "rated_user_id <> rater_user_id",
            name="ck_user_ratings_no_self_rating",
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    rated_user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    rater_user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
    )

    # The activity the rating was given for.
    group_id: Mapped[int] = mapped_column(
        ForeignKey("groups.id", ondelete="RESTRICT"),
        nullable=False,
    )

    rating: Mapped[int] = mapped_column(Integer, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    # Set whenever a resubmission replaces the value.
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    # ── Relationships ──────────────────────────────────────────────────────

    rated_user: Mapped["User"] = relationship(  # noqa: F821
        "User",
        foreign_keys=[rated_user_id],
    )

    rater: Mapped["User"] = relationship(  # noqa: F821
        "User",
        foreign_keys=[rater_user_id],
    )

    group: Mapped["Group"] = relationship("Group")  # noqa: F821

    def __repr__(self) -> str:  # pragma: no cover
        return (
            f"<UserRating id={self.id} "
            f"rated={self.rated_user_id} "
            f"rater={self.rater_user_id} "
            f"group={self.group_id} "
            f"rating={self.rating}>"
        )
