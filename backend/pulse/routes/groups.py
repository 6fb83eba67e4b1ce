"""
routes/groups.py — Activity (group) and membership route handlers.

Layer rules:
  - Parse, validate, call ONE service, commit, return envelope.
  - No business logic. No DB queries. No bare SQL.

Endpoints (base url_prefix=/api/v1/groups):
  POST   /groups                 → 201  create activity (auth)
  GET    /groups                 → 200  list upcoming activities (public)
  GET    /groups/:id             → 200  activity + members (public)
  POST   /groups/:id/join        → 200  join as member (auth)
  POST   /groups/:id/leave       → 200  leave (auth; not the organizer)
"""

from __future__ import annotations

from flask import Blueprint, current_app, g, jsonify, request

from backend.pulse.extensions import db
from backend.pulse.middleware.auth_middleware import require_auth
from backend.pulse.schemas.group_schema import ActivityFiltersSchema, CreateActivitySchema
from backend.pulse.services import activity_service

groups_bp = Blueprint("groups", __name__)


@groups_bp.route("", methods=["POST"])
@require_auth
def create_activity():
    """POST /groups — Create an activity. Caller becomes organizer and first member."""
    data = CreateActivitySchema().load(request.get_json(force=True, silent=True) or {})
    result = activity_service.create_activity(
        organizer_id=g.user_id,
        sport_id=data["sport_id"],
        on_date=data["date"],
        at_time=data["time"],
        skill_level=data["skill_level"],
        location=data["location"],
        privacy=data["privacy"],
        description=data["description"],
        max_members=data["max_members"],
        city=data["city"],
        default_max_members=current_app.config["DEFAULT_MAX_MEMBERS"],
        session=db.session,
    )
    db.session.commit()
    return jsonify({"data": result, "warnings": []}), 201


@groups_bp.route("", methods=["GET"])
def list_activities():
    """GET /groups — Upcoming activities; ?sport=&city=&privacy=&search= filters."""
    filters = ActivityFiltersSchema().load(request.args.to_dict())
    result = activity_service.list_activities(session=db.session, **filters)
    return jsonify({"data": result, "warnings": []}), 200


@groups_bp.route("/<int:group_id>", methods=["GET"])
def get_activity(group_id: int):
    result = activity_service.get_activity(group_id=group_id, session=db.session)
    return jsonify({"data": result, "warnings": []}), 200


@groups_bp.route("/<int:group_id>/join", methods=["POST"])
@require_auth
def join_activity(group_id: int):
    """POST /groups/:id/join — Join as a member, subject to capacity."""
    result = activity_service.join_activity(
        group_id=group_id,
        user_id=g.user_id,
        session=db.session,
    )
    db.session.commit()
    return jsonify({"data": result, "warnings": []}), 200


@groups_bp.route("/<int:group_id>/leave", methods=["POST"])
@require_auth
def leave_activity(group_id: int):
    """POST /groups/:id/leave — Leave an activity. The organizer cannot leave."""
    result = activity_service.leave_activity(
        group_id=group_id,
        user_id=g.user_id,
        session=db.session,
    )
    db.session.commit()
    return jsonify({"data": result, "warnings": []}), 200
