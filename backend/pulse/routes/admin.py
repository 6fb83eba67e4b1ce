"""
routes/admin.py — Moderation route handlers. Every endpoint is admin-only.

Endpoints (base url_prefix=/api/v1/admin):
  GET    /admin/users                  → 200  ?status=&role=&search=
  GET    /admin/users/:id              → 200  user + flag history
  PATCH  /admin/users/:id              → 200  {role?, status?}
  POST   /admin/users/:id/suspend      → 200  {reason?}; cascades to pending flags
  POST   /admin/users/:id/activate     → 200
  GET    /admin/flags                  → 200  ?status=
  POST   /admin/flags/:id/dismiss      → 200  {reason?}
  POST   /admin/flags/:id/review       → 200  {note?}
  POST   /admin/flags/:id/action       → 200  {action?}; suspends reported user
  GET    /admin/stats                  → 200
  POST   /admin/reconcile              → 200  recompute denormalized counters
"""

from __future__ import annotations

from flask import Blueprint, g, jsonify, request

from backend.pulse.extensions import db
from backend.pulse.middleware.auth_middleware import require_admin
from backend.pulse.schemas.moderation_schema import (
    FlagActionSchema,
    FlagFiltersSchema,
    ModerationNoteSchema,
    UpdateUserSchema,
    UserFiltersSchema,
)
from backend.pulse.services import moderation_service

admin_bp = Blueprint("admin", __name__)


def _optional_body() -> dict:
    """Moderation actions accept an empty body."""
    return request.get_json(force=True, silent=True) or {}


# ── Users ──────────────────────────────────────────────────────────────────

@admin_bp.route("/users", methods=["GET"])
@require_admin
def list_users():
    filters = UserFiltersSchema().load(request.args.to_dict())
    result = moderation_service.list_users(session=db.session, **filters)
    return jsonify({"data": result, "warnings": []}), 200


@admin_bp.route("/users/<int:user_id>", methods=["GET"])
@require_admin
def get_user(user_id: int):
    result = moderation_service.get_user_detail(user_id=user_id, session=db.session)
    return jsonify({"data": result, "warnings": []}), 200


@admin_bp.route("/users/<int:user_id>", methods=["PATCH"])
@require_admin
def update_user(user_id: int):
    """PATCH /admin/users/:id — Change role and/or status (transition-checked)."""
    data = UpdateUserSchema().load(request.get_json(force=True, silent=True) or {})
    result = moderation_service.update_user(
        user_id=user_id,
        admin_id=g.user_id,
        role=data.get("role"),
        status=data.get("status"),
        reason=data.get("reason"),
        session=db.session,
    )
    db.session.commit()
    return jsonify({"data": result, "warnings": []}), 200


@admin_bp.route("/users/<int:user_id>/suspend", methods=["POST"])
@require_admin
def suspend_user(user_id: int):
    """POST /admin/users/:id/suspend — Suspend and resolve the user's pending flags."""
    data = ModerationNoteSchema().load(_optional_body())
    result = moderation_service.suspend_user(
        user_id=user_id,
        admin_id=g.user_id,
        reason=data["reason"],
        session=db.session,
    )
    db.session.commit()
    return jsonify({"data": result, "warnings": []}), 200


@admin_bp.route("/users/<int:user_id>/activate", methods=["POST"])
@require_admin
def activate_user(user_id: int):
    result = moderation_service.activate_user(
        user_id=user_id,
        admin_id=g.user_id,
        session=db.session,
    )
    db.session.commit()
    return jsonify({"data": result, "warnings": []}), 200


# ── Flags ──────────────────────────────────────────────────────────────────

@admin_bp.route("/flags", methods=["GET"])
@require_admin
def list_flags():
    filters = FlagFiltersSchema().load(request.args.to_dict())
    result = moderation_service.list_flags(session=db.session, status=filters["status"])
    return jsonify({"data": result, "warnings": []}), 200


@admin_bp.route("/flags/<int:flag_id>/dismiss", methods=["POST"])
@require_admin
def dismiss_flag(flag_id: int):
    data = ModerationNoteSchema().load(_optional_body())
    result = moderation_service.dismiss_flag(
        flag_id=flag_id,
        admin_id=g.user_id,
        reason=data["reason"],
        session=db.session,
    )
    db.session.commit()
    return jsonify({"data": result, "warnings": []}), 200


@admin_bp.route("/flags/<int:flag_id>/review", methods=["POST"])
@require_admin
def review_flag(flag_id: int):
    data = ModerationNoteSchema().load(_optional_body())
    result = moderation_service.review_flag(
        flag_id=flag_id,
        admin_id=g.user_id,
        note=data["note"] or data["reason"],
        session=db.session,
    )
    db.session.commit()
    return jsonify({"data": result, "warnings": []}), 200


@admin_bp.route("/flags/<int:flag_id>/action", methods=["POST"])
@require_admin
def take_action(flag_id: int):
    """POST /admin/flags/:id/action — Resolve the flag and suspend the reported user."""
    data = FlagActionSchema().load(_optional_body())
    result = moderation_service.take_action_on_flag(
        flag_id=flag_id,
        admin_id=g.user_id,
        action=data["action"],
        session=db.session,
    )
    db.session.commit()
    return jsonify({"data": result, "warnings": []}), 200


# ── Dashboard & maintenance ────────────────────────────────────────────────

@admin_bp.route("/stats", methods=["GET"])
@require_admin
def stats():
    result = moderation_service.get_stats(session=db.session)
    return jsonify({"data": result, "warnings": []}), 200


@admin_bp.route("/reconcile", methods=["POST"])
@require_admin
def reconcile():
    result = moderation_service.reconcile_counters(session=db.session)
    db.session.commit()
    return jsonify({"data": result, "warnings": []}), 200
