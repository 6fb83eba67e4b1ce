"""
routes/sports.py — Sport catalogue route handlers.

Endpoints (base url_prefix=/api/v1/sports):
  GET    /sports            → 200  public; ?active=true for active only
  POST   /sports            → 201  admin
  PATCH  /sports/:id        → 200  admin
"""

from __future__ import annotations

from flask import Blueprint, jsonify, request

from backend.pulse.extensions import db
from backend.pulse.middleware.auth_middleware import require_admin
from backend.pulse.schemas.sport_schema import CreateSportSchema, UpdateSportSchema
from backend.pulse.services import sport_service

sports_bp = Blueprint("sports", __name__)


@sports_bp.route("", methods=["GET"])
def list_sports():
    active_only = request.args.get("active", "").lower() in ("1", "true", "yes")
    result = sport_service.list_sports(session=db.session, active_only=active_only)
    return jsonify({"data": result, "warnings": []}), 200


@sports_bp.route("", methods=["POST"])
@require_admin
def create_sport():
    data = CreateSportSchema().load(request.get_json(force=True, silent=True) or {})
    result = sport_service.create_sport(
        name=data["name"],
        icon=data["icon"],
        slug=data["slug"],
        session=db.session,
    )
    db.session.commit()
    return jsonify({"data": result, "warnings": []}), 201


@sports_bp.route("/<int:sport_id>", methods=["PATCH"])
@require_admin
def update_sport(sport_id: int):
    """PATCH /sports/:id — Rename, re-icon, or (de)activate a sport."""
    changes = UpdateSportSchema().load(request.get_json(force=True, silent=True) or {})
    result = sport_service.update_sport(
        sport_id=sport_id,
        changes=changes,
        session=db.session,
    )
    db.session.commit()
    return jsonify({"data": result, "warnings": []}), 200
