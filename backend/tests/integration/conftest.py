"""
tests/integration/conftest.py — Fixtures and helpers for all integration tests.

Design:
  - Tests run against a real SQLite file in a per-session temp directory,
    with the same pragmas (foreign keys, WAL, busy timeout) as production.
  - The app is created once per session using create_app("testing").
  - All tables are created once via db.create_all() at session start.
  - Between tests, all rows are deleted in FK-safe order so tests are isolated.

Helper functions (not fixtures) are provided for common operations:
  - register(client, ...)          → dict with user + token
  - login(client, ...)             → dict with user + token
  - auth_headers(token)            → {"Authorization": "Bearer <token>"}
  - make_admin(app, client, ...)   → dict with admin user + token
  - make_sport(app, ...)           → sport dict (inserted directly)
  - make_activity(client, ...)     → activity dict
  - join(client, ...)              → HTTP response

These are plain functions (not pytest fixtures) so they can be called with
arbitrary arguments in any test without fixture parameterization overhead.
"""

from __future__ import annotations

import pytest
from sqlalchemy import text

from backend.pulse import create_app
from backend.pulse.extensions import db as _db


# ═══════════════════════════════════════════════════════════════════════════
# Session-scoped app fixture
# ═══════════════════════════════════════════════════════════════════════════

@pytest.fixture(scope="session")
def app(tmp_path_factory):
    """
    Creates the Flask application in 'testing' mode once for the entire test session.

    Steps:
      1. Create app with TestingConfig pointed at a temp SQLite file.
      2. Run db.create_all() to create all tables.
      3. Yield the app for the test session.
      4. Drop all tables at teardown.
    """
    db_path = tmp_path_factory.mktemp("db") / "pulse_test.db"
    flask_app = create_app(
        "testing",
        test_config={"SQLALCHEMY_DATABASE_URI": f"sqlite:///{db_path}"},
    )

    with flask_app.app_context():
        _db.create_all()

    yield flask_app

    with flask_app.app_context():
        _db.drop_all()
        _db.engine.dispose()


# ═══════════════════════════════════════════════════════════════════════════
# Function-scoped test isolation
# ═══════════════════════════════════════════════════════════════════════════

@pytest.fixture(autouse=True)
def clean_tables(app):
    """
    Deletes all rows between tests in FK-safe order.

    Children (flag_reports, user_ratings, group_members) go before the rows
    they reference; every FK is RESTRICT.
    """
    yield  # run the test

    with app.app_context():
        _db.session.rollback()  # discard any uncommitted state from a failed test

        with _db.engine.connect() as conn:
            conn.execute(text("DELETE FROM flag_reports"))
            conn.execute(text("DELETE FROM user_ratings"))
            conn.execute(text("DELETE FROM group_members"))
            conn.execute(text("DELETE FROM groups"))
            conn.execute(text("DELETE FROM sports"))
            conn.execute(text("DELETE FROM users"))
            conn.commit()


# ═══════════════════════════════════════════════════════════════════════════
# Client fixture
# ═══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def client(app):
    """Flask test client. Each test gets a fresh client (function-scoped)."""
    return app.test_client()


# ═══════════════════════════════════════════════════════════════════════════
# Shared helper functions (not fixtures)
# ═══════════════════════════════════════════════════════════════════════════

def register(
    client,
    username: str = "alice",
    email: str | None = None,
    password: str = "Password1",
    name: str | None = None,
) -> dict:
    """
    Registers a new user and returns the full response data dict.
    Returns: {"user": {...}, "token": "..."}
    """
    if email is None:
        email = f"{username}@test.com"
    if name is None:
        name = username.capitalize()
    resp = client.post(
        "/api/v1/auth/register",
        json={"name": name, "username": username, "email": email, "password": password},
    )
    assert resp.status_code == 201, f"register failed: {resp.get_json()}"
    return resp.get_json()["data"]


def login(client, username_or_email: str, password: str = "Password1") -> dict:
    """
    Logs in a user and returns the response data dict.
    Returns: {"token": "...", "user": {...}}
    """
    resp = client.post(
        "/api/v1/auth/login",
        json={"username_or_email": username_or_email, "password": password},
    )
    assert resp.status_code == 200, f"login failed: {resp.get_json()}"
    return resp.get_json()["data"]


def auth_headers(token: str) -> dict:
    """Returns the Authorization header dict for use in test requests."""
    return {"Authorization": f"Bearer {token}"}


def set_user_fields(app, user_id: int, **fields) -> None:
    """Writes columns on a users row directly, bypassing the API."""
    assignments = ", ".join(f"{name} = :{name}" for name in fields)
    with app.app_context():
        _db.session.execute(
            text(f"UPDATE users SET {assignments} WHERE id = :user_id"),
            {**fields, "user_id": user_id},
        )
        _db.session.commit()


def make_admin(app, client, username: str = "admin") -> dict:
    """
    Registers a user, promotes them to admin in the store, and logs in again
    so the returned token carries role=admin.
    Returns: {"token": "...", "user": {...}}
    """
    registered = register(client, username=username)
    set_user_fields(app, registered["user"]["id"], role="admin")
    return login(client, username)


def make_sport(
    app,
    name: str = "Basketball",
    icon: str = "🏀",
    slug: str | None = None,
    is_active: bool = True,
) -> dict:
    """Inserts a sport directly (seeding is not an API concern)."""
    from backend.pulse.models.sport import Sport
    from backend.pulse.services.sport_service import slugify

    with app.app_context():
        sport = Sport(
            name=name,
            icon=icon,
            slug=slug or slugify(name),
            is_active=is_active,
            group_count=0,
        )
        _db.session.add(sport)
        _db.session.commit()
        return {"id": sport.id, "name": sport.name, "icon": sport.icon, "slug": sport.slug}


def activity_payload(sport_id: int, **overrides) -> dict:
    payload = {
        "sport_id": sport_id,
        "date": "2030-09-01",
        "time": "18:30",
        "skill_level": "weekend",
        "location": "Riverside Park",
        "privacy": "PUBLIC",
        "description": "Pickup game, all welcome",
    }
    payload.update(overrides)
    return payload


def make_activity(client, token: str, sport_id: int, **overrides) -> dict:
    """
    Creates an activity and returns the activity data dict.
    The caller (token owner) becomes the organizer and first member.
    """
    resp = client.post(
        "/api/v1/groups",
        json=activity_payload(sport_id, **overrides),
        headers=auth_headers(token),
    )
    assert resp.status_code == 201, f"make_activity failed: {resp.get_json()}"
    return resp.get_json()["data"]


def join(client, token: str, group_id: int):
    """Joins an activity. Returns the HTTP response."""
    return client.post(
        f"/api/v1/groups/{group_id}/join",
        headers=auth_headers(token),
    )


def get_sport(client, sport_id: int) -> dict:
    resp = client.get("/api/v1/sports")
    return next(s for s in resp.get_json()["data"] if s["id"] == sport_id)
