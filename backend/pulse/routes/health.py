"""routes/health.py — Liveness probe that also checks the store answers."""

from __future__ import annotations

from flask import Blueprint, jsonify
from sqlalchemy import text

from backend.pulse.extensions import db

health_bp = Blueprint("health", __name__)


@health_bp.route("/health", methods=["GET"])
def health():
    db.session.execute(text("SELECT 1"))
    return jsonify({"data": {"status": "ok", "database": "connected"}, "warnings": []}), 200
