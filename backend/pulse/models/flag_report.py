"""
models/flag_report.py — FlagReport table definition.

No business logic. No imports from services or routes.

Status machine (enforced in moderation_service):

    pending ──► dismissed
            ├─► reviewed
            └─► action_taken

All three targets are terminal. Nothing moves a flag back to pending.
"""

from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backend.pulse.extensions import db
from backend.pulse.models.base import str_enum


class FlagType(str, enum.Enum):
    HARASSMENT             = "harassment"
    BAD_SPORTSMANSHIP      = "bad_sportsmanship"
    CHEATING               = "cheating"
    NO_SHOW                = "no_show"
    INAPPROPRIATE_BEHAVIOR = "inappropriate_behavior"
    OTHER                  = "other"


# Human-readable reason used when the reporter sends none.
FLAG_TYPE_LABELS: dict[FlagType, str] = {
    FlagType.HARASSMENT:             "Harassment or Bullying",
    FlagType.BAD_SPORTSMANSHIP:      "Bad Sportsmanship",
    FlagType.CHEATING:               "Cheating or Unfair Play",
    FlagType.NO_SHOW:                "No Show",
    FlagType.INAPPROPRIATE_BEHAVIOR: "Inappropriate Behavior",
    FlagType.OTHER:                  "Other",
}


class FlagSeverity(str, enum.Enum):
    LOW    = "low"
    MEDIUM = "medium"
    HIGH   = "high"


class FlagStatus(str, enum.Enum):
    PENDING      = "pending"
    REVIEWED     = "reviewed"
    DISMISSED    = "dismissed"
    ACTION_TAKEN = "action_taken"


class FlagReport(db.Model):
    __tablename__ = "flag_reports"

    __table_args__ = (
        # Also rejected as SELF_FLAG by reputation_service before the write.
        CheckConstraint(
            "reporter_id <> reported_id",
            name="ck_flag_reports_no_self_flag",
        ),
        # Moderation queue and suspension cascade both filter on these.
        Index("idx_flag_reports_reported_status", "reported_id", "status"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    reporter_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
    )

    reported_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
    )

    # The activity the report is about.
    group_id: Mapped[int] = mapped_column(
        ForeignKey("groups.id", ondelete="RESTRICT"),
        nullable=False,
    )

    type: Mapped[FlagType] = mapped_column(
        str_enum(FlagType, "flag_type_enum"),
        nullable=False,
    )

    reason: Mapped[str] = mapped_column(String(100), nullable=False)

    details: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        default="",
        server_default="",
    )

    severity: Mapped[FlagSeverity] = mapped_column(
        str_enum(FlagSeverity, "flag_severity_enum"),
        nullable=False,
        default=FlagSeverity.MEDIUM,
        server_default=FlagSeverity.MEDIUM.value,
    )

    status: Mapped[FlagStatus] = mapped_column(
        str_enum(FlagStatus, "flag_status_enum"),
        nullable=False,
        default=FlagStatus.PENDING,
        server_default=FlagStatus.PENDING.value,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    # ── Review stamp (all NULL while pending) ─────────────────────────────

    reviewed_by_id: Mapped[int | None] = mapped_column(
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=True,
    )

    reviewed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    action_taken: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # ── Relationships ──────────────────────────────────────────────────────

    reporter: Mapped["User"] = relationship(  # noqa: F821
        "User",
        foreign_keys=[reporter_id],
    )

    reported: Mapped["User"] = relationship(  # noqa: F821
        "User",
        foreign_keys=[reported_id],
    )

    reviewer: Mapped["User"] = relationship(  # noqa: F821
        "User",
        foreign_keys=[reviewed_by_id],
    )

    group: Mapped["Group"] = relationship("Group")  # noqa: F821

    def __repr__(self) -> str:  # pragma: no cover
        return (
            f"<FlagReport id={self.id} "
            f"reporter={self.reporter_id} "
            f"reported={self.reported_id} "
            f"type={self.type} "
            f"status={self.status}>"
        )
