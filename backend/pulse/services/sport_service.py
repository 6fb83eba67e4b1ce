"""
services/sport_service.py — Sport catalogue.

Sports are reference data: listed publicly, created and edited by admins,
retired with is_active=False and never deleted (groups reference them with
ON DELETE RESTRICT).

Layer rules:
  - No Flask imports. Pure Python with a SQLAlchemy session parameter.
  - Commits are the route's responsibility — only flush here.
"""

from __future__ import annotations

import logging
import re

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from backend.pulse.errors import AppError, ErrorCode
from backend.pulse.models.sport import Sport

logger = logging.getLogger(__name__)

_NON_SLUG_CHARS = re.compile(r"[^a-z0-9]+")


def slugify(name: str) -> str:
    """'Table Tennis' -> 'table-tennis'."""
    return _NON_SLUG_CHARS.sub("-", name.strip().lower()).strip("-")


def _build_sport_dict(sport: Sport) -> dict:
    return {
        "id": sport.id,
        "name": sport.name,
        "icon": sport.icon,
        "slug": sport.slug,
        "is_active": sport.is_active,
        "group_count": sport.group_count,
    }


def _get_sport_or_404(sport_id: int, session: Session) -> Sport:
    sport = session.get(Sport, sport_id)
    if sport is None:
        raise AppError(
            ErrorCode.SPORT_NOT_FOUND,
            "Sport not found",
            404,
        )
    return sport


def _ensure_unique(
        session: Session,
        name: str | None,
        slug: str | None,
        exclude_id: int | None = None,
) -> None:
    """Raises DUPLICATE_SPORT if another sport already uses `name` or `slug`."""
    if name is not None:
        stmt = select(Sport.id).where(func.lower(Sport.name) == name.lower())
        if exclude_id is not None:
            stmt = stmt.where(Sport.id != exclude_id)
        if session.execute(stmt).first() is not None:
            raise AppError(
                ErrorCode.DUPLICATE_SPORT,
                "Sport already exists",
                400,
                field="name",
            )
    if slug is not None:
        stmt = select(Sport.id).where(Sport.slug == slug)
        if exclude_id is not None:
            stmt = stmt.where(Sport.id != exclude_id)
        if session.execute(stmt).first() is not None:
            raise AppError(
                ErrorCode.DUPLICATE_SPORT,
                "Sport slug already exists",
                400,
                field="slug",
            )


# ── Public service functions ───────────────────────────────────────────────

def list_sports(session: Session, active_only: bool = False) -> list[dict]:
    """Returns sports ordered by name; inactive ones only when asked for."""
    stmt = select(Sport).order_by(Sport.name.asc())
    if active_only:
        stmt = stmt.where(Sport.is_active.is_(True))
    return [_build_sport_dict(s) for s in session.execute(stmt).scalars().all()]


def create_sport(
        name: str,
        icon: str,
        session: Session,
        slug: str | None = None,
) -> dict:
    """
    Adds a sport to the catalogue. The slug is derived from the name unless
    one is supplied.

    Raises:
      AppError(DUPLICATE_SPORT, 400)  — name or slug already in use
      AppError(INVALID_FIELD, 400)    — name produces an empty slug
    """
    name = name.strip()
    slug = slug or slugify(name)
    if not slug:
        raise AppError(
            ErrorCode.INVALID_FIELD,
            "Sport name must contain at least one letter or digit.",
            400,
            field="name",
        )

    _ensure_unique(session, name=name, slug=slug)

    sport = Sport(name=name, icon=icon.strip(), slug=slug, is_active=True, group_count=0)
    session.add(sport)
    session.flush()

    logger.info("Created sport id=%s slug=%s", sport.id, sport.slug)
    return _build_sport_dict(sport)


def update_sport(sport_id: int, changes: dict, session: Session) -> dict:
    """
    Applies a partial update (name / icon / slug / is_active).

    Raises:
      AppError(SPORT_NOT_FOUND, 404)
      AppError(DUPLICATE_SPORT, 400)
    """
    sport = _get_sport_or_404(sport_id, session)

    name = changes.get("name")
    slug = changes.get("slug")
    _ensure_unique(
        session,
        name=name.strip() if name is not None else None,
        slug=slug,
        exclude_id=sport.id,
    )

    if name is not None:
        sport.name = name.strip()
    if slug is not None:
        sport.slug = slug
    if "icon" in changes:
        sport.icon = changes["icon"].strip()
    if "is_active" in changes:
        sport.is_active = changes["is_active"]

    session.flush()
    logger.info("Updated sport id=%s fields=%s", sport.id, sorted(changes))
    return _build_sport_dict(sport)
