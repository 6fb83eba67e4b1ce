"""
services/reputation_service.py — Ratings, flags and public profiles.

Guarantees enforced here:
  - One rating per (rated user, rater, activity). Resubmitting replaces the
    stored value; it never adds a row.
  - users.rating / users.total_ratings are recomputed from user_ratings in
    the same transaction as every rating write.
  - users.flags goes up by one in the same transaction as every flag insert.
  - Nobody rates or flags themselves.

Layer rules:
  - No Flask imports. Pure Python with a SQLAlchemy session parameter.
  - Commits are the route's responsibility — only flush here.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import func, select, update
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session

from backend.pulse.errors import AppError, ErrorCode
from backend.pulse.models.flag_report import (
    FLAG_TYPE_LABELS,
    FlagReport,
    FlagSeverity,
    FlagStatus,
    FlagType,
)
from backend.pulse.models.group import Group
from backend.pulse.models.user import User, UserStatus
from backend.pulse.models.user_rating import UserRating

logger = logging.getLogger(__name__)


# ── Private helpers ────────────────────────────────────────────────────────

def _get_user_or_404(user_id: int, session: Session) -> User:
    user = session.get(User, user_id)
    if user is None:
        raise AppError(
            ErrorCode.USER_NOT_FOUND,
            "User not found",
            404,
        )
    return user


def _require_group(group_id: int, session: Session) -> None:
    if session.get(Group, group_id) is None:
        raise AppError(
            ErrorCode.GROUP_NOT_FOUND,
            "Group not found",
            404,
            field="group_id",
        )


def _upsert_rating(
        rated_user_id: int,
        rater_user_id: int,
        group_id: int,
        rating: int,
        session: Session,
) -> None:
    """
    INSERT ... ON CONFLICT (rated_user_id, rater_user_id, group_id)
    DO UPDATE SET rating = excluded.rating, updated_at = now
    """
    now = datetime.now(timezone.utc)
    stmt = sqlite_insert(UserRating.__table__).values(
        rated_user_id=rated_user_id,
        rater_user_id=rater_user_id,
        group_id=group_id,
        rating=rating,
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=["rated_user_id", "rater_user_id", "group_id"],
        set_={"rating": stmt.excluded.rating, "updated_at": now},
    )
    session.execute(stmt)


def recompute_user_rating(user_id: int, session: Session) -> tuple[float, int]:
    """
    Sets users.rating to the mean of the user's stored ratings (one decimal
    place) and users.total_ratings to their count. 0.0 / 0 when unrated.

    Returns: (rating, total_ratings)
    """
    avg, count = session.execute(
        select(func.avg(UserRating.rating), func.count(UserRating.id))
        .where(UserRating.rated_user_id == user_id)
    ).one()

    rating = round(float(avg), 1) if count else 0.0
    session.execute(
        update(User)
        .where(User.id == user_id)
        .values(rating=rating, total_ratings=count)
    )
    return rating, count


def _build_profile_dict(user: User) -> dict:
    """Public profile: no email, no password hash."""
    return {
        "id": user.id,
        "name": user.name,
        "username": user.username,
        "rating": user.rating,
        "total_ratings": user.total_ratings,
        "flags": user.flags,
        "status": UserStatus(user.status).value,
        "join_date": user.join_date.isoformat() if user.join_date else None,
    }


# ── Public service functions ───────────────────────────────────────────────

def rate_user(
        rated_user_id: int,
        rater_user_id: int,
        group_id: int,
        rating: int,
        session: Session,
) -> dict:
    """
    Records (or replaces) rater's rating of rated_user for one activity and
    refreshes the rated user's aggregate.

    Raises:
      AppError(INVALID_RATING, 400)  — rating outside 1..5
      AppError(SELF_RATING, 400)     — rater and rated are the same user
      AppError(USER_NOT_FOUND, 404)
      AppError(GROUP_NOT_FOUND, 404)

    Returns: {"message", "rated_user_id", "group_id", "rating",
              "user_rating", "total_ratings"}
    """
    if not isinstance(rating, int) or isinstance(rating, bool) or not 1 <= rating <= 5:
        raise AppError(
            ErrorCode.INVALID_RATING,
            "Rating must be between 1 and 5",
            400,
            field="rating",
        )
    if rated_user_id == rater_user_id:
        raise AppError(
            ErrorCode.SELF_RATING,
            "You cannot rate yourself",
            400,
        )

    _get_user_or_404(rated_user_id, session)
    _require_group(group_id, session)

    _upsert_rating(rated_user_id, rater_user_id, group_id, rating, session)
    user_rating, total_ratings = recompute_user_rating(rated_user_id, session)
    session.flush()

    logger.info(
        "Rating stored rated=%s rater=%s group_id=%s rating=%s",
        rated_user_id, rater_user_id, group_id, rating,
    )
    return {
        "message": "Rating submitted successfully",
        "rated_user_id": rated_user_id,
        "group_id": group_id,
        "rating": rating,
        "user_rating": user_rating,
        "total_ratings": total_ratings,
    }


def flag_user(
        reported_id: int,
        reporter_id: int,
        group_id: int,
        flag_type: FlagType,
        session: Session,
        reason: str | None = None,
        details: str = "",
        severity: FlagSeverity = FlagSeverity.MEDIUM,
) -> dict:
    """
    Files a pending flag report and bumps the reported user's flag counter.

    Raises:
      AppError(SELF_FLAG, 400)
      AppError(USER_NOT_FOUND, 404)
      AppError(GROUP_NOT_FOUND, 404)

    Returns: {"message", "flag": {...}}
    """
    if reported_id == reporter_id:
        raise AppError(
            ErrorCode.SELF_FLAG,
            "You cannot flag yourself",
            400,
        )

    _get_user_or_404(reported_id, session)
    _require_group(group_id, session)

    flag_type = FlagType(flag_type)
    flag = FlagReport(
        reporter_id=reporter_id,
        reported_id=reported_id,
        group_id=group_id,
        type=flag_type,
        reason=(reason or "").strip() or FLAG_TYPE_LABELS[flag_type],
        details=details or "",
        severity=FlagSeverity(severity),
        status=FlagStatus.PENDING,
    )
    session.add(flag)
    session.execute(
        update(User)
        .where(User.id == reported_id)
        .values(flags=User.flags + 1)
    )
    session.flush()

    logger.info(
        "Flag filed id=%s reported=%s reporter=%s type=%s",
        flag.id, reported_id, reporter_id, flag_type.value,
    )
    return {
        "message": "Report submitted successfully",
        "flag": {
            "id": flag.id,
            "reported_id": reported_id,
            "group_id": group_id,
            "type": flag_type.value,
            "reason": flag.reason,
            "severity": FlagSeverity(flag.severity).value,
            "status": FlagStatus.PENDING.value,
        },
    }


def get_profile(user_id: int, session: Session) -> dict:
    """
    Public profile of any user.

    Raises:
      AppError(USER_NOT_FOUND, 404)
    """
    return _build_profile_dict(_get_user_or_404(user_id, session))
