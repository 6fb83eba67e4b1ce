"""
middleware/auth_middleware.py — Bearer-token Auth Gate.

The @require_auth decorator:
  1. Reads the Authorization header (expected: "Bearer <token>")
  2. Decodes and verifies the JWT signature using HS256
  3. Checks token expiry
  4. Attaches user_id (int), username and role to flask.g for the request
  5. Raises the appropriate AppError if any step fails

The @require_admin decorator runs the same sequence and then requires
is_admin(g.role).

The token is the full credential: self-contained, stateless, and valid for
JWT_ACCESS_TOKEN_EXPIRES from issuance. Nothing is looked up in the store
here. Services receive user_id as a plain integer argument, with no knowledge
of JWT or HTTP headers.

Error codes:
  TOKEN_MISSING  (401) — no Authorization header
  TOKEN_INVALID  (403) — malformed header, invalid signature, or bad payload
  TOKEN_EXPIRED  (403) — valid token but exp claim is in the past
  FORBIDDEN      (403) — authenticated, but role is not admin
"""

from __future__ import annotations

import functools
from typing import Callable

import jwt
from flask import current_app, g, request

from backend.pulse.errors import AppError, ErrorCode
from backend.pulse.models.user import UserRole


def is_admin(role: str | None) -> bool:
    """Authorization predicate for every admin-only operation."""
    return role == UserRole.ADMIN.value


def require_auth(f: Callable) -> Callable:
    """
    Route decorator that enforces bearer-token authentication.

    Usage:
        @groups_bp.route("/", methods=["POST"])
        @require_auth
        def create_activity():
            organizer_id = g.user_id  # always an int when this runs
            ...
    """
    @functools.wraps(f)
    def decorated(*args, **kwargs):
        _authenticate_request()
        return f(*args, **kwargs)

    return decorated


def require_admin(f: Callable) -> Callable:
    """Route decorator: authenticated AND role == admin, else 403 FORBIDDEN."""
    @functools.wraps(f)
    def decorated(*args, **kwargs):
        _authenticate_request()
        if not is_admin(g.role):
            raise AppError(
                ErrorCode.FORBIDDEN,
                "Admin access required",
                403,
            )
        return f(*args, **kwargs)

    return decorated


def _authenticate_request() -> None:
    """
    Performs the full token check and sets g.user_id / g.username / g.role.

    Separated from the decorator wrapper so tests can call it directly inside
    a test_request_context without wrapping a real view function.
    """
    auth_header = request.headers.get("Authorization", "")

    # ── Step 1: Require Authorization header ──────────────────────────────
    if not auth_header:
        raise AppError(
            ErrorCode.TOKEN_MISSING,
            "Unauthorized",
            401,
        )

    # ── Step 2: Parse "Bearer <token>" format ─────────────────────────────
    parts = auth_header.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise AppError(
            ErrorCode.TOKEN_INVALID,
            "Authorization header must be in the format: Bearer <token>.",
            403,
        )

    raw_token = parts[1]

    # ── Step 3: Decode and verify the JWT ─────────────────────────────────
    try:
        payload = jwt.decode(
            raw_token,
            current_app.config["JWT_SECRET_KEY"],
            algorithms=[current_app.config.get("JWT_ALGORITHM", "HS256")],
            options={"require": ["exp", "sub"]},
        )
    except jwt.ExpiredSignatureError:
        raise AppError(
            ErrorCode.TOKEN_EXPIRED,
            "The access token has expired. Log in again.",
            403,
        )
    except jwt.InvalidTokenError:
        # Covers: bad signature, malformed token, missing claims, etc.
        raise AppError(
            ErrorCode.TOKEN_INVALID,
            "The access token is invalid or has been tampered with.",
            403,
        )

    # ── Step 4: Extract identity claims ───────────────────────────────────
    try:
        user_id = int(payload["sub"])
    except (TypeError, ValueError):
        raise AppError(
            ErrorCode.TOKEN_INVALID,
            "The 'sub' claim in the access token is not a valid user ID.",
            403,
        )

    role = payload.get("role")
    if role not in {r.value for r in UserRole}:
        raise AppError(
            ErrorCode.TOKEN_INVALID,
            "The access token carries an unknown role.",
            403,
        )

    # ── Step 5: Attach identity to flask.g ────────────────────────────────
    # Routes pass these to services as plain arguments; services never read g.
    g.user_id = user_id
    g.username = payload.get("username")
    g.role = role
