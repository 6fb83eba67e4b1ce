# backend/pulse/routes/users.py
from flask import Blueprint, g, jsonify, request

from backend.pulse.extensions import db
from backend.pulse.middleware.auth_middleware import require_auth
from backend.pulse.schemas.reputation_schema import FlagUserSchema, RateUserSchema
from backend.pulse.services import reputation_service

users_bp = Blueprint("users", __name__)


@users_bp.route("/<int:user_id>", methods=["GET"])
@require_auth
def get_profile(user_id: int):
    result = reputation_service.get_profile(user_id=user_id, session=db.session)
    return jsonify({"data": result, "warnings": []}), 200


@users_bp.route("/<int:user_id>/rate", methods=["POST"])
@require_auth
def rate_user(user_id: int):
    data = RateUserSchema().load(request.get_json(force=True, silent=True) or {})
    result = reputation_service.rate_user(
        rated_user_id=user_id,
        rater_user_id=g.user_id,
        group_id=data["group_id"],
        rating=data["rating"],
        session=db.session,
    )
    db.session.commit()
    return jsonify({"data": result, "warnings": []}), 200


@users_bp.route("/<int:user_id>/flag", methods=["POST"])
@require_auth
def flag_user(user_id: int):
    data = FlagUserSchema().load(request.get_json(force=True, silent=True) or {})
    result = reputation_service.flag_user(
        reported_id=user_id,
        reporter_id=g.user_id,
        group_id=data["group_id"],
        flag_type=data["type"],
        reason=data["reason"],
        details=data["details"],
        severity=data["severity"],
        session=db.session,
    )
    db.session.commit()
    return jsonify({"data": result, "warnings": []}), 201
