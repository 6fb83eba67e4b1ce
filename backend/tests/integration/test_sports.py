"""
tests/integration/test_sports.py — Sport catalogue endpoints.

  GET   /api/v1/sports           public
  POST  /api/v1/sports           admin
  PATCH /api/v1/sports/:id       admin
"""

from __future__ import annotations

import pytest

from .conftest import auth_headers, make_activity, make_admin, make_sport, register


@pytest.fixture
def admin(app, client):
    return make_admin(app, client)


def _create(client, token, **body):
    return client.post("/api/v1/sports", json=body, headers=auth_headers(token))


class TestListSports:

    def test_public_and_ordered_by_name(self, app, client):
        make_sport(app, name="Tennis", icon="🎾")
        make_sport(app, name="Basketball", icon="🏀")

        resp = client.get("/api/v1/sports")
        assert resp.status_code == 200
        names = [s["name"] for s in resp.get_json()["data"]]
        assert names == ["Basketball", "Tennis"]

    def test_active_filter_hides_retired(self, app, client):
        make_sport(app, name="Tennis", icon="🎾")
        make_sport(app, name="Cricket", icon="🏏", is_active=False)

        everything = client.get("/api/v1/sports").get_json()["data"]
        active = client.get("/api/v1/sports?active=true").get_json()["data"]
        assert {s["name"] for s in everything} == {"Tennis", "Cricket"}
        assert [s["name"] for s in active] == ["Tennis"]

    def test_group_count_tracks_new_activities(self, app, client):
        sport = make_sport(app)
        alice = register(client, "alice")
        make_activity(client, alice["token"], sport["id"])
        make_activity(client, alice["token"], sport["id"], location="Gym B")

        listed = client.get("/api/v1/sports").get_json()["data"][0]
        assert listed["group_count"] == 2


class TestCreateSport:

    def test_admin_creates_with_derived_slug(self, client, admin):
        resp = _create(client, admin["token"], name="Table Tennis", icon="🏓")
        assert resp.status_code == 201
        data = resp.get_json()["data"]
        assert data["slug"] == "table-tennis"
        assert data["is_active"] is True
        assert data["group_count"] == 0

    def test_explicit_slug(self, client, admin):
        resp = _create(client, admin["token"], name="Ultimate Frisbee", icon="🥏", slug="ultimate")
        assert resp.get_json()["data"]["slug"] == "ultimate"

    def test_bad_slug_rejected(self, client, admin):
        resp = _create(client, admin["token"], name="Padel", icon="🎾", slug="Padel Court")
        assert resp.status_code == 400
        assert resp.get_json()["error"]["field"] == "slug"

    def test_duplicate_name_case_insensitive(self, client, admin):
        _create(client, admin["token"], name="Football", icon="⚽")
        resp = _create(client, admin["token"], name="FOOTBALL", icon="⚽")
        assert resp.status_code == 400
        assert resp.get_json()["error"]["code"] == "DUPLICATE_SPORT"

    def test_missing_icon(self, client, admin):
        resp = _create(client, admin["token"], name="Rugby")
        assert resp.status_code == 400
        err = resp.get_json()["error"]
        assert err["code"] == "MISSING_FIELD"
        assert err["field"] == "icon"

    def test_regular_user_forbidden(self, client):
        user = register(client, "bob")
        resp = _create(client, user["token"], name="Rugby", icon="🏉")
        assert resp.status_code == 403
        assert resp.get_json()["error"]["code"] == "FORBIDDEN"


class TestUpdateSport:

    def test_retire_sport_blocks_new_activities(self, app, client, admin):
        sport = make_sport(app)
        resp = client.patch(
            f"/api/v1/sports/{sport['id']}",
            json={"is_active": False},
            headers=auth_headers(admin["token"]),
        )
        assert resp.status_code == 200
        assert resp.get_json()["data"]["is_active"] is False

        alice = register(client, "alice")
        resp = client.post(
            "/api/v1/groups",
            json={
                "sport_id": sport["id"], "date": "2030-09-01", "time": "18:30",
                "skill_level": "weekend", "location": "Court 1", "privacy": "PUBLIC",
            },
            headers=auth_headers(alice["token"]),
        )
        assert resp.status_code == 400
        assert resp.get_json()["error"]["code"] == "INVALID_SPORT"

    def test_rename_to_taken_name(self, app, client, admin):
        make_sport(app, name="Tennis", icon="🎾")
        other = make_sport(app, name="Squash", icon="🎾")
        resp = client.patch(
            f"/api/v1/sports/{other['id']}",
            json={"name": "tennis"},
            headers=auth_headers(admin["token"]),
        )
        assert resp.status_code == 400
        assert resp.get_json()["error"]["code"] == "DUPLICATE_SPORT"

    def test_empty_body(self, app, client, admin):
        sport = make_sport(app)
        resp = client.patch(
            f"/api/v1/sports/{sport['id']}",
            json={},
            headers=auth_headers(admin["token"]),
        )
        assert resp.status_code == 400

    def test_unknown_sport(self, client, admin):
        resp = client.patch(
            "/api/v1/sports/999999",
            json={"icon": "🏐"},
            headers=auth_headers(admin["token"]),
        )
        assert resp.status_code == 404
        assert resp.get_json()["error"]["code"] == "SPORT_NOT_FOUND"
