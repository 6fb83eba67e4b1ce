"""
services/auth_service.py — Authentication business logic.

Responsibilities:
  - User registration and credential validation
  - Bearer token creation (JWT, HS256)
  - Password hashing (bcrypt) and verification

Layer rules:
  - No imports from routes or schemas
  - No use of flask.request, flask.g, or HTTP status codes beyond AppError
  - current_app.config is read ONLY for the JWT secret / TTL and the bcrypt
    cost factor, so secrets never bypass Flask config validation.

Token design:
  - One bearer token per login, HS256, TTL JWT_ACCESS_TOKEN_EXPIRES (24 h).
  - Payload: sub (user_id as str), username, role, iat, exp, jti.
  - No refresh token and no server-side session: the token is the credential
    until it expires.

Password storage:
  - Hashed with bcrypt (cost factor from config BCRYPT_LOG_ROUNDS, default 12)
  - Raw password is never stored, never logged
"""

from __future__ import annotations

import logging
import secrets
from datetime import datetime, timezone

import bcrypt
import jwt
from flask import current_app
from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from backend.pulse.errors import AppError, ErrorCode
from backend.pulse.models.user import User, UserRole, UserStatus

logger = logging.getLogger(__name__)


# ── Private helpers ────────────────────────────────────────────────────────

def _create_access_token(user: User) -> str:
    """
    Creates a signed JWT bearer token for `user`.
    Secret from current_app.config["JWT_SECRET_KEY"], TTL from
    current_app.config["JWT_ACCESS_TOKEN_EXPIRES"] (timedelta).
    """
    now = datetime.now(timezone.utc)
    expiry = now + current_app.config["JWT_ACCESS_TOKEN_EXPIRES"]
    payload = {
        "sub": str(user.id),
        "username": user.username,
        "role": UserRole(user.role).value,
        "iat": now,
        "exp": expiry,
        # Guarantees each issued token is unique even if generated in the same second.
        "jti": secrets.token_hex(8),
    }
    return jwt.encode(
        payload,
        current_app.config["JWT_SECRET_KEY"],
        algorithm=current_app.config.get("JWT_ALGORITHM", "HS256"),
    )


def _hash_password(password: str) -> str:
    rounds = current_app.config.get("BCRYPT_LOG_ROUNDS", 12)
    return bcrypt.hashpw(
        password.encode("utf-8"),
        bcrypt.gensalt(rounds=rounds),
    ).decode("utf-8")


def _isoformat(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _build_user_dict(user: User) -> dict:
    """Serialises a User for its owner. No business logic."""
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


def _raise_if_inactive(user: User) -> None:
    """
    Correct credentials are not enough: only active accounts get a token.
    Runs after the password check so status is never revealed to a caller
    who does not know the password.
    """
    status = UserStatus(user.status)
    if status == UserStatus.SUSPENDED:
        logger.info("Login refused for suspended user id=%s", user.id)
        raise AppError(ErrorCode.ACCOUNT_SUSPENDED, "Account suspended", 403)
    if status == UserStatus.PENDING:
        logger.info("Login refused for pending user id=%s", user.id)
        raise AppError(ErrorCode.ACCOUNT_PENDING, "Account pending approval", 403)


# ── Public service functions ───────────────────────────────────────────────

def register_user(
        name: str,
        username: str,
        email: str,
        password: str,
        session: Session,
) -> dict:
    """
    Creates a new user account (role user, status active) and issues a token.

    Raises:
      AppError(DUPLICATE_USERNAME, 400) — username already taken
      AppError(DUPLICATE_EMAIL, 400)    — email already registered

    Returns: {"user": {...}, "token": "..."}
    """
    email = email.strip().lower()

    # Cross-entity uniqueness checks (they need the DB, so not in the schema).
    existing_username = session.execute(
        select(User.id).where(User.username == username)
    ).scalar_one_or_none()
    if existing_username is not None:
        raise AppError(
            ErrorCode.DUPLICATE_USERNAME,
            "Username already exists",
            400,
            field="username",
        )

    existing_email = session.execute(
        select(User.id).where(func.lower(User.email) == email)
    ).scalar_one_or_none()
    if existing_email is not None:
        raise AppError(
            ErrorCode.DUPLICATE_EMAIL,
            "Email already registered",
            400,
            field="email",
        )

    user = User(
        name=name.strip(),
        username=username,
        email=email,
        password_hash=_hash_password(password),
        role=UserRole.USER,
        status=UserStatus.ACTIVE,
        last_activity=datetime.now(timezone.utc),
    )
    session.add(user)
    try:
        session.flush()  # populate user.id and join_date
    except IntegrityError:
        # Lost a race with a concurrent registration for the same name.
        session.rollback()
        raise AppError(
            ErrorCode.DUPLICATE_USERNAME,
            "Username or email already exists",
            400,
            field="username",
        )
    session.refresh(user)

    logger.info("Registered user id=%s username=%s", user.id, user.username)
    return {
        "user": _build_user_dict(user),
        "token": _create_access_token(user),
    }


def login_user(
        username_or_email: str,
        password: str,
        session: Session,
) -> dict:
    """
    Validates credentials and issues a new bearer token.

    Raises:
      AppError(INVALID_CREDENTIALS, 401) — identifier not found or password wrong.
        Uses the same error for both to avoid username enumeration.
      AppError(ACCOUNT_SUSPENDED, 403) / AppError(ACCOUNT_PENDING, 403)
        — credentials correct but the account is not active.

    Returns: {"token": "...", "user": {...}}
    """
    identifier = username_or_email.strip()
    user = session.execute(
        select(User).where(
            or_(
                User.username == identifier,
                func.lower(User.email) == identifier.lower(),
            )
        )
    ).scalars().first()

    # bcrypt.checkpw compares in constant time.
    if user is None or not bcrypt.checkpw(
            password.encode("utf-8"),
            user.password_hash.encode("utf-8"),
    ):
        raise AppError(
            ErrorCode.INVALID_CREDENTIALS,
            "Invalid credentials",
            401,
        )

    _raise_if_inactive(user)

    user.last_activity = datetime.now(timezone.utc)
    session.flush()

    return {
        "token": _create_access_token(user),
        "user": _build_user_dict(user),
    }


def get_current_user(user_id: int, session: Session) -> dict:
    """
    Returns the profile of the currently authenticated user.

    Raises:
      AppError(USER_NOT_FOUND, 404) — user_id from the token no longer exists.
    """
    user = session.get(User, user_id)
    if user is None:
        raise AppError(
            ErrorCode.USER_NOT_FOUND,
            "User not found",
            404,
        )
    return _build_user_dict(user)
