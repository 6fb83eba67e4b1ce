"""
services/moderation_service.py — Admin moderation view and actions.

Guarantees enforced here:
  - Flags only move forward: pending -> dismissed | reviewed | action_taken.
    Resolving a flag that is no longer pending raises FLAG_ALREADY_RESOLVED.
  - Suspending a user also resolves every pending flag against that user
    (status action_taken, reviewer and timestamp stamped) in the same
    transaction.
  - User status transitions are limited to the ones in _ALLOWED_TRANSITIONS.
  - Admin accounts cannot be suspended.

Authorization (admin role) is checked by @require_admin on every route that
reaches this module; functions here receive the acting admin's id as a
plain int.

Layer rules:
  - No Flask imports. Pure Python with a SQLAlchemy session parameter.
  - Commits are the route's responsibility — only flush here.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import func, or_, select, update
from sqlalchemy.orm import Session

from backend.pulse.errors import AppError, ErrorCode
from backend.pulse.models.flag_report import FlagReport, FlagSeverity, FlagStatus, FlagType
from backend.pulse.models.group import Group, GroupStatus
from backend.pulse.models.sport import Sport
from backend.pulse.models.user import User, UserRole, UserStatus
from backend.pulse.models.user_rating import UserRating
from backend.pulse.services.query_helpers import LIKE_ESCAPE, contains_pattern

logger = logging.getLogger(__name__)

DEFAULT_DISMISS_REASON = "No reason provided"
DEFAULT_ACTION = "Community guidelines violation"
DEFAULT_SUSPEND_REASON = "Suspended by admin"

# (from, to) pairs an admin may apply directly.
_ALLOWED_TRANSITIONS: frozenset[tuple[UserStatus, UserStatus]] = frozenset({
    (UserStatus.ACTIVE, UserStatus.SUSPENDED),
    (UserStatus.SUSPENDED, UserStatus.ACTIVE),
    (UserStatus.PENDING, UserStatus.ACTIVE),
})

_NO_FILTER = {None, "", "all"}


# ── Private helpers ────────────────────────────────────────────────────────

def _now() -> datetime:
    return datetime.now(timezone.utc)


def _isoformat(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _get_user_or_404(user_id: int, session: Session) -> User:
    user = session.get(User, user_id)
    if user is None:
        raise AppError(
            ErrorCode.USER_NOT_FOUND,
            "User not found",
            404,
        )
    return user


def _get_flag_or_404(flag_id: int, session: Session) -> FlagReport:
    flag = session.get(FlagReport, flag_id)
    if flag is None:
        raise AppError(
            ErrorCode.FLAG_NOT_FOUND,
            "Flag not found",
            404,
        )
    return flag


def _build_admin_user_dict(user: User) -> dict:
    return {
        "id": user.id,
        "name": user.name,
        "username": user.username,
        "email": user.email,
        "role": UserRole(user.role).value,
        "status": UserStatus(user.status).value,
        "rating": user.rating,
        "total_ratings": user.total_ratings,
        "flags": user.flags,
        "join_date": _isoformat(user.join_date),
        "last_activity": _isoformat(user.last_activity),
    }


def _build_flag_dict(flag: FlagReport) -> dict:
    """Serialises a flag with the names the moderation screen shows."""
    return {
        "id": flag.id,
        "reporter_id": flag.reporter_id,
        "reporter_name": flag.reporter.name if flag.reporter else None,
        "reported_id": flag.reported_id,
        "reported_name": flag.reported.name if flag.reported else None,
        "reported_username": flag.reported.username if flag.reported else None,
        "group_id": flag.group_id,
        "activity_name": flag.group.title if flag.group else None,
        "type": FlagType(flag.type).value,
        "reason": flag.reason,
        "details": flag.details,
        "severity": FlagSeverity(flag.severity).value,
        "status": FlagStatus(flag.status).value,
        "created_at": _isoformat(flag.created_at),
        "reviewed_by_id": flag.reviewed_by_id,
        "reviewed_by": flag.reviewer.username if flag.reviewer else None,
        "reviewed_at": _isoformat(flag.reviewed_at),
        "action_taken": flag.action_taken,
    }


def _ensure_pending(flag: FlagReport) -> None:
    if FlagStatus(flag.status) != FlagStatus.PENDING:
        raise AppError(
            ErrorCode.FLAG_ALREADY_RESOLVED,
            f"Flag is already {FlagStatus(flag.status).value}",
            409,
        )


def _resolve_flag(
        flag: FlagReport,
        new_status: FlagStatus,
        admin_id: int,
        action_text: str | None,
) -> None:
    """Moves a pending flag to a terminal status and stamps the reviewer."""
    _ensure_pending(flag)
    flag.status = new_status
    flag.reviewed_by_id = admin_id
    flag.reviewed_at = _now()
    flag.action_taken = action_text


def _suspend(user: User, admin_id: int, reason: str, session: Session) -> int:
    """
    Suspension cascade: user -> suspended, and every pending flag against
    the user -> action_taken "User suspended: {reason}".

    Returns the number of flags resolved.
    """
    if UserRole(user.role) == UserRole.ADMIN:
        raise AppError(
            ErrorCode.FORBIDDEN,
            "Admin accounts cannot be suspended",
            403,
        )

    user.status = UserStatus.SUSPENDED
    pending_ids = session.execute(
        select(FlagReport.id).where(
            FlagReport.reported_id == user.id,
            FlagReport.status == FlagStatus.PENDING,
        )
    ).scalars().all()

    if pending_ids:
        session.execute(
            update(FlagReport)
            .where(FlagReport.id.in_(pending_ids))
            .values(
                status=FlagStatus.ACTION_TAKEN,
                reviewed_by_id=admin_id,
                reviewed_at=_now(),
                action_taken=f"User suspended: {reason}",
            )
            .execution_options(synchronize_session="fetch")
        )
    session.flush()

    logger.info(
        "User suspended id=%s by admin=%s flags_resolved=%s",
        user.id, admin_id, len(pending_ids),
    )
    return len(pending_ids)


def _check_transition(current: UserStatus, new_status: UserStatus) -> None:
    if (current, new_status) not in _ALLOWED_TRANSITIONS:
        raise AppError(
            ErrorCode.INVALID_STATUS_TRANSITION,
            f"Cannot change status from {current.value} to {new_status.value}",
            409,
            field="status",
        )


def _apply_status(
        user: User,
        new_status: UserStatus,
        admin_id: int,
        reason: str | None,
        session: Session,
) -> int:
    """Validates and applies a status transition. Returns flags resolved."""
    current = UserStatus(user.status)
    _check_transition(current, new_status)
    if new_status == UserStatus.SUSPENDED:
        return _suspend(user, admin_id, reason or DEFAULT_SUSPEND_REASON, session)

    user.status = new_status
    session.flush()
    logger.info(
        "User status changed id=%s %s -> %s by admin=%s",
        user.id, current.value, new_status.value, admin_id,
    )
    return 0


# ── Users ──────────────────────────────────────────────────────────────────

def list_users(
        session: Session,
        status: str | None = None,
        role: str | None = None,
        search: str | None = None,
) -> list[dict]:
    """All users ordered by name, optionally filtered."""
    stmt = select(User)
    if status not in _NO_FILTER:
        stmt = stmt.where(User.status == UserStatus(status))
    if role not in _NO_FILTER:
        stmt = stmt.where(User.role == UserRole(role))
    if search:
        term = contains_pattern(search)
        stmt = stmt.where(
            or_(
                User.name.ilike(term, escape=LIKE_ESCAPE),
                User.username.ilike(term, escape=LIKE_ESCAPE),
                User.email.ilike(term, escape=LIKE_ESCAPE),
            )
        )
    stmt = stmt.order_by(User.name.asc(), User.id.asc())
    return [_build_admin_user_dict(u) for u in session.execute(stmt).scalars().all()]


def get_user_detail(user_id: int, session: Session) -> dict:
    """
    One user with their flag history (newest first) and ratings received.

    Raises:
      AppError(USER_NOT_FOUND, 404)
    """
    user = _get_user_or_404(user_id, session)

    flags = session.execute(
        select(FlagReport)
        .where(FlagReport.reported_id == user_id)
        .order_by(FlagReport.created_at.desc(), FlagReport.id.desc())
    ).scalars().all()

    ratings_received = session.execute(
        select(func.count(UserRating.id)).where(UserRating.rated_user_id == user_id)
    ).scalar_one()

    return {
        **_build_admin_user_dict(user),
        "flag_history": [_build_flag_dict(f) for f in flags],
        "ratings_received": ratings_received,
    }


def update_user(
        user_id: int,
        admin_id: int,
        session: Session,
        role: UserRole | None = None,
        status: UserStatus | None = None,
        reason: str | None = None,
) -> dict:
    """
    Changes a user's role and/or status.

    Raises:
      AppError(USER_NOT_FOUND, 404)
      AppError(INVALID_STATUS_TRANSITION, 409)
      AppError(FORBIDDEN, 403) — suspending an admin
    """
    user = _get_user_or_404(user_id, session)

    if role is not None and UserRole(role) != UserRole(user.role):
        user.role = UserRole(role)
        logger.info("User role changed id=%s -> %s by admin=%s", user.id, user.role.value, admin_id)

    if status is not None and UserStatus(status) != UserStatus(user.status):
        _apply_status(user, UserStatus(status), admin_id, reason, session)

    session.flush()
    return _build_admin_user_dict(user)


def suspend_user(
        user_id: int,
        admin_id: int,
        session: Session,
        reason: str | None = None,
) -> dict:
    """
    Suspends a user and resolves their pending flags.

    Raises:
      AppError(USER_NOT_FOUND, 404)
      AppError(FORBIDDEN, 403)                 — target is an admin
      AppError(INVALID_STATUS_TRANSITION, 409) — not currently active
    """
    user = _get_user_or_404(user_id, session)
    if UserRole(user.role) == UserRole.ADMIN:
        raise AppError(
            ErrorCode.FORBIDDEN,
            "Admin accounts cannot be suspended",
            403,
        )
    resolved = _apply_status(user, UserStatus.SUSPENDED, admin_id, reason, session)
    return {
        "user": _build_admin_user_dict(user),
        "flags_resolved": resolved,
    }


def activate_user(user_id: int, admin_id: int, session: Session) -> dict:
    """
    suspended | pending -> active.

    Raises:
      AppError(USER_NOT_FOUND, 404)
      AppError(INVALID_STATUS_TRANSITION, 409) — already active
    """
    user = _get_user_or_404(user_id, session)
    _apply_status(user, UserStatus.ACTIVE, admin_id, None, session)
    return _build_admin_user_dict(user)


# ── Flags ──────────────────────────────────────────────────────────────────

def list_flags(session: Session, status: str | None = None) -> list[dict]:
    """Flag reports, newest first, optionally filtered by status."""
    stmt = select(FlagReport)
    if status not in _NO_FILTER:
        stmt = stmt.where(FlagReport.status == FlagStatus(status))
    stmt = stmt.order_by(FlagReport.created_at.desc(), FlagReport.id.desc())
    return [_build_flag_dict(f) for f in session.execute(stmt).scalars().all()]


def dismiss_flag(
        flag_id: int,
        admin_id: int,
        session: Session,
        reason: str | None = None,
) -> dict:
    """
    pending -> dismissed.

    Raises:
      AppError(FLAG_NOT_FOUND, 404)
      AppError(FLAG_ALREADY_RESOLVED, 409)
    """
    flag = _get_flag_or_404(flag_id, session)
    _resolve_flag(flag, FlagStatus.DISMISSED, admin_id, reason or DEFAULT_DISMISS_REASON)
    session.flush()
    logger.info("Flag dismissed id=%s by admin=%s", flag.id, admin_id)
    return _build_flag_dict(flag)


def review_flag(
        flag_id: int,
        admin_id: int,
        session: Session,
        note: str | None = None,
) -> dict:
    """
    pending -> reviewed. The report stays on record without further action.

    Raises:
      AppError(FLAG_NOT_FOUND, 404)
      AppError(FLAG_ALREADY_RESOLVED, 409)
    """
    flag = _get_flag_or_404(flag_id, session)
    _resolve_flag(flag, FlagStatus.REVIEWED, admin_id, note)
    session.flush()
    logger.info("Flag reviewed id=%s by admin=%s", flag.id, admin_id)
    return _build_flag_dict(flag)


def take_action_on_flag(
        flag_id: int,
        admin_id: int,
        session: Session,
        action: str | None = None,
) -> dict:
    """
    pending -> action_taken, and suspends the reported user (with the usual
    cascade over their other pending flags). An already suspended user is
    left as is.

    Raises:
      AppError(FLAG_NOT_FOUND, 404)
      AppError(FLAG_ALREADY_RESOLVED, 409)
      AppError(FORBIDDEN, 403) — the reported user is an admin
      AppError(INVALID_STATUS_TRANSITION, 409) — the reported user is pending
    """
    flag = _get_flag_or_404(flag_id, session)
    _ensure_pending(flag)
    action_text = action or DEFAULT_ACTION

    reported = _get_user_or_404(flag.reported_id, session)
    current = UserStatus(reported.status)
    must_suspend = current != UserStatus.SUSPENDED
    if must_suspend:
        _check_transition(current, UserStatus.SUSPENDED)
        if UserRole(reported.role) == UserRole.ADMIN:
            raise AppError(
                ErrorCode.FORBIDDEN,
                "Admin accounts cannot be suspended",
                403,
            )

    # Resolve this flag first so the cascade does not overwrite its text.
    _resolve_flag(flag, FlagStatus.ACTION_TAKEN, admin_id, action_text)
    session.flush()

    if must_suspend:
        _suspend(reported, admin_id, action_text, session)

    session.flush()
    logger.info("Action taken on flag id=%s by admin=%s", flag.id, admin_id)
    return _build_flag_dict(flag)


# ── Dashboard & maintenance ────────────────────────────────────────────────

def get_stats(session: Session) -> dict:
    """Counts behind the admin dashboard badges."""
    users_by_status = {s.value: 0 for s in UserStatus}
    for status, count in session.execute(
        select(User.status, func.count(User.id)).group_by(User.status)
    ).all():
        users_by_status[UserStatus(status).value] = count

    users_by_role = {r.value: 0 for r in UserRole}
    for role, count in session.execute(
        select(User.role, func.count(User.id)).group_by(User.role)
    ).all():
        users_by_role[UserRole(role).value] = count

    flags_by_status = {s.value: 0 for s in FlagStatus}
    for status, count in session.execute(
        select(FlagReport.status, func.count(FlagReport.id)).group_by(FlagReport.status)
    ).all():
        flags_by_status[FlagStatus(status).value] = count

    active_sports = session.execute(
        select(func.count(Sport.id)).where(Sport.is_active.is_(True))
    ).scalar_one()
    upcoming_activities = session.execute(
        select(func.count(Group.id)).where(Group.status == GroupStatus.UPCOMING)
    ).scalar_one()

    return {
        "users": {
            "total": sum(users_by_status.values()),
            "by_status": users_by_status,
            "by_role": users_by_role,
        },
        "flags": {
            "total": sum(flags_by_status.values()),
            "by_status": flags_by_status,
        },
        "active_sports": active_sports,
        "upcoming_activities": upcoming_activities,
    }


def reconcile_counters(session: Session) -> dict:
    """
    Recomputes every denormalized counter from the rows it summarises:
      sports.group_count          <- COUNT(groups)
      users.flags                 <- COUNT(flag_reports as reported)
      users.rating, total_ratings <- AVG / COUNT(user_ratings)

    Returns how many rows of each kind were corrected.
    """
    sports_fixed = 0
    group_counts = dict(session.execute(
        select(Group.sport_id, func.count(Group.id)).group_by(Group.sport_id)
    ).all())
    for sport in session.execute(select(Sport)).scalars().all():
        expected = group_counts.get(sport.id, 0)
        if sport.group_count != expected:
            sport.group_count = expected
            sports_fixed += 1

    flag_counts = dict(session.execute(
        select(FlagReport.reported_id, func.count(FlagReport.id))
        .group_by(FlagReport.reported_id)
    ).all())

    rating_rows = session.execute(
        select(UserRating.rated_user_id, func.avg(UserRating.rating), func.count(UserRating.id))
        .group_by(UserRating.rated_user_id)
    ).all()
    ratings = {
        user_id: (round(float(avg), 1), count)
        for user_id, avg, count in rating_rows
    }

    users_fixed = 0
    for user in session.execute(select(User)).scalars().all():
        expected_flags = flag_counts.get(user.id, 0)
        expected_rating, expected_total = ratings.get(user.id, (0.0, 0))
        if (
            user.flags != expected_flags
            or user.total_ratings != expected_total
            or round(user.rating or 0.0, 1) != expected_rating
        ):
            user.flags = expected_flags
            user.rating = expected_rating
            user.total_ratings = expected_total
            users_fixed += 1

    session.flush()
    logger.info("Counters reconciled sports_fixed=%s users_fixed=%s", sports_fixed, users_fixed)
    return {"sports_fixed": sports_fixed, "users_fixed": users_fixed}
