"""
services/activity_service.py — Activity (group) and membership business logic.

Guarantees enforced here:
  - Creating an activity writes the group row, the organizer's membership
    (role organizer) and sports.group_count + 1 in one transaction.
  - A group never holds more than max_members members, even under
    concurrent joins (see join_activity).
  - A user is a member of a group at most once.
  - The organizer cannot leave their own activity.

Layer rules:
  - No Flask imports. Pure Python with a SQLAlchemy session parameter.
  - Commits are the route's responsibility — only flush here. The one
    exception is the rollback after a UNIQUE violation in join_activity,
    which discards the failed statement before the error envelope is sent.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, time

from sqlalchemy import case, func, insert, literal, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from backend.pulse.errors import AppError, ErrorCode
from backend.pulse.models.group import Group, GroupStatus, Privacy
from backend.pulse.models.group_member import GroupMember, MemberRole
from backend.pulse.models.sport import Sport
from backend.pulse.models.user import User
from backend.pulse.services.query_helpers import LIKE_ESCAPE, contains_pattern

logger = logging.getLogger(__name__)

SKILL_LABELS: dict[str, str] = {
    "newbie":  "Newbie Friendly",
    "weekend": "Weekend Warrior",
    "serious": "Serious Player",
    "elite":   "Elite Level",
}

# Query-string value meaning "do not filter on this field".
_NO_FILTER = {"", "all"}


# ── Private helpers ────────────────────────────────────────────────────────

def skill_label(skill_level: str) -> str:
    """Display label for a skill level; unknown levels are used verbatim."""
    return SKILL_LABELS.get(skill_level, skill_level)


def build_title(sport_name: str, skill_level: str) -> str:
    return f"{sport_name} - {skill_label(skill_level)}"


def _get_group_or_404(group_id: int, session: Session) -> Group:
    """Returns the Group or raises GROUP_NOT_FOUND (404)."""
    group = session.get(Group, group_id)
    if group is None:
        raise AppError(
            ErrorCode.GROUP_NOT_FOUND,
            "Group not found",
            404,
        )
    return group


def _get_membership(group_id: int, user_id: int, session: Session) -> GroupMember | None:
    return session.execute(
        select(GroupMember).where(
            GroupMember.group_id == group_id,
            GroupMember.user_id == user_id,
        )
    ).scalar_one_or_none()


def _count_members(group_id: int, session: Session) -> int:
    return session.execute(
        select(func.count(GroupMember.id)).where(GroupMember.group_id == group_id)
    ).scalar_one()


def _insert_member_if_capacity(group_id: int, user_id: int, session: Session) -> int:
    """
    INSERT INTO group_members (group_id, user_id, role)
    SELECT :group_id, :user_id, 'member'
    WHERE (SELECT COUNT(*) FROM group_members WHERE group_id = :group_id)
        < (SELECT max_members FROM groups WHERE id = :group_id)

    The count and the insert are one statement, so they run under the same
    SQLite write lock and no concurrent join can slip in between them.

    Returns the number of rows inserted (0 means the group was full).
    Raises IntegrityError if the (group_id, user_id) pair already exists.
    """
    table = GroupMember.__table__

    current_count = (
        select(func.count(table.c.id))
        .where(table.c.group_id == group_id)
        .correlate(None)
        .scalar_subquery()
    )
    capacity = (
        select(Group.__table__.c.max_members)
        .where(Group.__table__.c.id == group_id)
        .correlate(None)
        .scalar_subquery()
    )

    source = select(
        literal(group_id),
        literal(user_id),
        literal(MemberRole.MEMBER.value),
    ).where(current_count < capacity)

    stmt = insert(table).from_select(["group_id", "user_id", "role"], source)
    return session.execute(stmt).rowcount


def _load_members(group_ids: list[int], session: Session) -> dict[int, list[dict]]:
    """
    Members for each group id: organizer first, then by name.
    One query for all groups in the page.
    """
    members: dict[int, list[dict]] = {gid: [] for gid in group_ids}
    if not group_ids:
        return members

    organizer_first = case((GroupMember.role == MemberRole.ORGANIZER, 0), else_=1)
    rows = session.execute(
        select(GroupMember, User)
        .join(User, User.id == GroupMember.user_id)
        .where(GroupMember.group_id.in_(group_ids))
        .order_by(GroupMember.group_id, organizer_first, User.name)
    ).all()

    for membership, user in rows:
        members[membership.group_id].append({
            "id": user.id,
            "name": user.name,
            "username": user.username,
            "rating": user.rating,
            "total_ratings": user.total_ratings,
            "flags": user.flags,
            "role": MemberRole(membership.role).value,
        })
    return members


def _build_group_dict(group: Group, members: list[dict]) -> dict:
    """Serialises a Group joined with its sport, organizer and members."""
    return {
        "id": group.id,
        "title": group.title,
        "details": group.details,
        "sport_id": group.sport_id,
        "sport_name": group.sport.name if group.sport else None,
        "sport_icon": group.sport.icon if group.sport else None,
        "organizer_id": group.organizer_id,
        "organizer_name": group.organizer.name if group.organizer else None,
        "city": group.city,
        "location": group.location,
        "date_time": group.date_time.isoformat(),
        "privacy": Privacy(group.privacy).value,
        "max_members": group.max_members,
        "status": GroupStatus(group.status).value,
        "created_at": group.created_at.isoformat() if group.created_at else None,
        "member_count": len(members),
        "members": members,
    }


def _group_detail(group_id: int, session: Session) -> dict:
    group = session.execute(
        select(Group)
        .options(joinedload(Group.sport), joinedload(Group.organizer))
        .where(Group.id == group_id)
    ).scalar_one_or_none()
    if group is None:
        raise AppError(
            ErrorCode.GROUP_NOT_FOUND,
            "Group not found",
            404,
        )
    members = _load_members([group.id], session)[group.id]
    return _build_group_dict(group, members)


# ── Public service functions ───────────────────────────────────────────────

def create_activity(
        organizer_id: int,
        sport_id: int,
        on_date: date,
        at_time: time,
        skill_level: str,
        location: str,
        privacy: Privacy,
        session: Session,
        description: str = "",
        max_members: int | None = None,
        city: str | None = None,
        default_max_members: int = 10,
) -> dict:
    """
    Creates an activity. The organizer automatically becomes its first
    member with role organizer, and the sport's group_count goes up by one.

    Args:
        organizer_id:        The authenticated user (flask.g.user_id).
        max_members:         Capacity; default_max_members when None.
        city:                Defaults to `location`.
        default_max_members: DEFAULT_MAX_MEMBERS from config, passed by the route.

    Raises:
      AppError(INVALID_SPORT, 400) — sport does not exist or is retired.

    Returns: the joined group record (see _build_group_dict).
    """
    sport = session.get(Sport, sport_id)
    if sport is None or not sport.is_active:
        raise AppError(
            ErrorCode.INVALID_SPORT,
            "Invalid sport",
            400,
            field="sport_id",
        )

    location = location.strip()
    group = Group(
        title=build_title(sport.name, skill_level.strip()),
        details=description or "",
        sport_id=sport.id,
        organizer_id=organizer_id,
        city=(city or location).strip(),
        location=location,
        date_time=datetime.combine(on_date, at_time),
        privacy=Privacy(privacy),
        max_members=max_members if max_members is not None else default_max_members,
        status=GroupStatus.UPCOMING,
    )
    session.add(group)
    session.flush()  # populate group.id before creating membership

    session.add(GroupMember(
        group_id=group.id,
        user_id=organizer_id,
        role=MemberRole.ORGANIZER,
    ))
    session.execute(
        update(Sport)
        .where(Sport.id == sport.id)
        .values(group_count=Sport.group_count + 1)
    )
    session.flush()

    logger.info(
        "Activity created id=%s sport_id=%s organizer_id=%s max_members=%s",
        group.id, sport.id, organizer_id, group.max_members,
    )
    return _group_detail(group.id, session)


def list_activities(
        session: Session,
        sport: str | None = None,
        city: str | None = None,
        privacy: str | None = None,
        search: str | None = None,
) -> list[dict]:
    """
    Upcoming activities in date_time order.

    Filters (None, "" and "all" mean no filter):
      sport   — sport id, or a sport slug
      city    — exact match
      privacy — PUBLIC / FRIENDS / INVITE / PRIVATE
      search  — case-insensitive substring of title, details or sport name
    """
    stmt = (
        select(Group)
        .join(Sport, Sport.id == Group.sport_id)
        .options(joinedload(Group.sport), joinedload(Group.organizer))
        .where(Group.status == GroupStatus.UPCOMING)
    )

    if sport is not None and sport.strip() not in _NO_FILTER:
        sport = sport.strip()
        if sport.isdigit():
            stmt = stmt.where(Group.sport_id == int(sport))
        else:
            stmt = stmt.where(Sport.slug == sport.lower())

    if city is not None and city.strip() not in _NO_FILTER:
        stmt = stmt.where(Group.city == city.strip())

    if privacy is not None and privacy.strip() not in _NO_FILTER:
        stmt = stmt.where(Group.privacy == Privacy(privacy.strip()))

    if search:
        term = contains_pattern(search)
        stmt = stmt.where(
            or_(
                Group.title.ilike(term, escape=LIKE_ESCAPE),
                Group.details.ilike(term, escape=LIKE_ESCAPE),
                Sport.name.ilike(term, escape=LIKE_ESCAPE),
            )
        )

    stmt = stmt.order_by(Group.date_time.asc(), Group.id.asc())
    groups = session.execute(stmt).unique().scalars().all()

    members = _load_members([g.id for g in groups], session)
    return [_build_group_dict(g, members[g.id]) for g in groups]


def get_activity(group_id: int, session: Session) -> dict:
    """
    Returns one activity with its member list.

    Raises:
      AppError(GROUP_NOT_FOUND, 404)
    """
    return _group_detail(group_id, session)


def join_activity(group_id: int, user_id: int, session: Session) -> dict:
    """
    Adds the caller to an activity as a member.

    Raises:
      AppError(GROUP_NOT_FOUND, 404)
      AppError(ALREADY_MEMBER, 400) — already in the group, including a
                                      duplicate join that lost a race
      AppError(GROUP_FULL, 400)     — member count already at max_members

    Returns: {"message", "group_id", "user_id", "member_count"}
    """
    _get_group_or_404(group_id, session)

    if _get_membership(group_id, user_id, session) is not None:
        raise AppError(
            ErrorCode.ALREADY_MEMBER,
            "Already a member",
            400,
        )

    try:
        inserted = _insert_member_if_capacity(group_id, user_id, session)
    except IntegrityError:
        session.rollback()
        raise AppError(
            ErrorCode.ALREADY_MEMBER,
            "Already a member",
            400,
        )

    if inserted == 0:
        logger.info("Join refused, group full group_id=%s user_id=%s", group_id, user_id)
        raise AppError(
            ErrorCode.GROUP_FULL,
            "Group is full",
            400,
        )

    member_count = _count_members(group_id, session)
    logger.info(
        "User joined group_id=%s user_id=%s member_count=%s",
        group_id, user_id, member_count,
    )
    return {
        "message": "Successfully joined group",
        "group_id": group_id,
        "user_id": user_id,
        "member_count": member_count,
    }


def leave_activity(group_id: int, user_id: int, session: Session) -> dict:
    """
    Removes the caller's own membership.

    Raises:
      AppError(GROUP_NOT_FOUND, 404)
      AppError(NOT_A_MEMBER, 404)
      AppError(ORGANIZER_CANNOT_LEAVE, 400)
    """
    _get_group_or_404(group_id, session)

    membership = _get_membership(group_id, user_id, session)
    if membership is None:
        raise AppError(
            ErrorCode.NOT_A_MEMBER,
            "Not a member of this group",
            404,
        )
    if MemberRole(membership.role) == MemberRole.ORGANIZER:
        raise AppError(
            ErrorCode.ORGANIZER_CANNOT_LEAVE,
            "The organizer cannot leave their own activity",
            400,
        )

    session.delete(membership)
    session.flush()

    member_count = _count_members(group_id, session)
    logger.info("User left group_id=%s user_id=%s", group_id, user_id)
    return {
        "message": "Successfully left group",
        "group_id": group_id,
        "user_id": user_id,
        "member_count": member_count,
    }
