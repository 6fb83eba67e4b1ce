"""
tests/integration/test_reputation.py — Ratings, flags and public profiles.

Endpoints covered:
  POST /users/:id/rate   → 200
  POST /users/:id/flag   → 201
  GET  /users/:id        → 200

Properties checked:
  - One rating row per (rated, rater, activity); resubmission overwrites.
  - users.rating / total_ratings follow the stored ratings.
  - users.flags counts flags filed against the user.
  - Self-rating and self-flagging are rejected.
"""

from __future__ import annotations

import pytest
from sqlalchemy import text

from backend.pulse.extensions import db

from .conftest import auth_headers, join, make_activity, make_sport, register


@pytest.fixture
def setup(app, client):
    """Two users in one activity: u1 organizes, u2 joins."""
    sport = make_sport(app, name="Football", icon="⚽")
    u1 = register(client, username="user1")
    u2 = register(client, username="user2")
    group = make_activity(client, u1["token"], sport["id"], max_members=4)
    join(client, u2["token"], group["id"])
    return {"u1": u1, "u2": u2, "group": group}


def _rate(client, token, user_id, rating, group_id, key="group_id"):
    return client.post(
        f"/api/v1/users/{user_id}/rate",
        json={"rating": rating, key: group_id},
        headers=auth_headers(token),
    )


def _flag(client, token, user_id, group_id, **extra):
    body = {"type": "no_show", "group_id": group_id}
    body.update(extra)
    return client.post(
        f"/api/v1/users/{user_id}/flag",
        json=body,
        headers=auth_headers(token),
    )


def _profile(client, token, user_id):
    return client.get(f"/api/v1/users/{user_id}", headers=auth_headers(token)).get_json()["data"]


# ═══════════════════════════════════════════════════════════════════════════
# POST /users/:id/rate
# ═══════════════════════════════════════════════════════════════════════════

class TestRateUser:

    def test_resubmission_overwrites_single_row(self, app, client, setup):
        u1, u2, group = setup["u1"], setup["u2"], setup["group"]

        assert _rate(client, u2["token"], u1["user"]["id"], 4, group["id"]).status_code == 200
        resp = _rate(client, u2["token"], u1["user"]["id"], 5, group["id"])
        assert resp.status_code == 200

        with app.app_context():
            rows = db.session.execute(
                text(
                    "SELECT rating, updated_at FROM user_ratings "
                    "WHERE rated_user_id = :rated AND rater_user_id = :rater AND group_id = :g"
                ),
                {"rated": u1["user"]["id"], "rater": u2["user"]["id"], "g": group["id"]},
            ).all()
        assert len(rows) == 1
        assert rows[0][0] == 5
        assert rows[0][1] is not None

        profile = _profile(client, u2["token"], u1["user"]["id"])
        assert profile["rating"] == 5.0
        assert profile["total_ratings"] == 1

    def test_aggregate_is_mean_rounded_to_one_decimal(self, client, setup):
        u1, u2, group = setup["u1"], setup["u2"], setup["group"]
        u3 = register(client, username="user3")
        u4 = register(client, username="user4")
        join(client, u3["token"], group["id"])
        join(client, u4["token"], group["id"])

        _rate(client, u2["token"], u1["user"]["id"], 5, group["id"])
        _rate(client, u3["token"], u1["user"]["id"], 4, group["id"])
        resp = _rate(client, u4["token"], u1["user"]["id"], 4, group["id"])

        data = resp.get_json()["data"]
        assert data["user_rating"] == 4.3
        assert data["total_ratings"] == 3

    def test_accepts_legacy_group_id_key(self, client, setup):
        u1, u2, group = setup["u1"], setup["u2"], setup["group"]
        resp = _rate(client, u2["token"], u1["user"]["id"], 3, group["id"], key="groupId")
        assert resp.status_code == 200

    @pytest.mark.parametrize("rating", [0, 6, -1, 4.5, "4"])
    def test_out_of_range_or_non_integer(self, client, setup, rating):
        u1, u2, group = setup["u1"], setup["u2"], setup["group"]
        resp = _rate(client, u2["token"], u1["user"]["id"], rating, group["id"])
        assert resp.status_code == 400
        err = resp.get_json()["error"]
        assert err["code"] == "INVALID_RATING"
        assert err["message"] == "Rating must be between 1 and 5"

    def test_self_rating_rejected(self, client, setup):
        u1, group = setup["u1"], setup["group"]
        resp = _rate(client, u1["token"], u1["user"]["id"], 5, group["id"])
        assert resp.status_code == 400
        assert resp.get_json()["error"]["code"] == "SELF_RATING"

    def test_unknown_user_and_group(self, client, setup):
        u1, u2, group = setup["u1"], setup["u2"], setup["group"]
        resp = _rate(client, u2["token"], 999999, 5, group["id"])
        assert resp.status_code == 404
        assert resp.get_json()["error"]["code"] == "USER_NOT_FOUND"

        resp = _rate(client, u2["token"], u1["user"]["id"], 5, 999999)
        assert resp.status_code == 404
        assert resp.get_json()["error"]["code"] == "GROUP_NOT_FOUND"

    def test_requires_auth(self, client, setup):
        resp = client.post(
            f"/api/v1/users/{setup['u1']['user']['id']}/rate",
            json={"rating": 5, "group_id": setup["group"]["id"]},
        )
        assert resp.status_code == 401


# ═══════════════════════════════════════════════════════════════════════════
# POST /users/:id/flag
# ═══════════════════════════════════════════════════════════════════════════

class TestFlagUser:

    def test_flag_created_pending_with_default_reason(self, client, setup):
        u1, u2, group = setup["u1"], setup["u2"], setup["group"]
        resp = _flag(client, u2["token"], u1["user"]["id"], group["id"])
        assert resp.status_code == 201
        flag = resp.get_json()["data"]["flag"]
        assert flag["status"] == "pending"
        assert flag["type"] == "no_show"
        assert flag["reason"] == "No Show"
        assert flag["severity"] == "medium"

    def test_explicit_reason_and_severity_kept(self, client, setup):
        u1, u2, group = setup["u1"], setup["u2"], setup["group"]
        resp = _flag(
            client, u2["token"], u1["user"]["id"], group["id"],
            type="harassment", reason="Shouting at players", severity="high",
            details="Second time this month",
        )
        flag = resp.get_json()["data"]["flag"]
        assert flag["reason"] == "Shouting at players"
        assert flag["severity"] == "high"

    def test_flag_increments_counter(self, client, setup):
        u1, u2, group = setup["u1"], setup["u2"], setup["group"]
        _flag(client, u2["token"], u1["user"]["id"], group["id"])
        _flag(client, u2["token"], u1["user"]["id"], group["id"], type="cheating")
        assert _profile(client, u2["token"], u1["user"]["id"])["flags"] == 2

    def test_unknown_type_rejected(self, client, setup):
        u1, u2, group = setup["u1"], setup["u2"], setup["group"]
        resp = _flag(client, u2["token"], u1["user"]["id"], group["id"], type="rudeness")
        assert resp.status_code == 400
        assert resp.get_json()["error"]["code"] == "INVALID_FIELD"

    def test_self_flag_rejected(self, client, setup):
        u1, group = setup["u1"], setup["group"]
        resp = _flag(client, u1["token"], u1["user"]["id"], group["id"])
        assert resp.status_code == 400
        assert resp.get_json()["error"]["code"] == "SELF_FLAG"
        assert _profile(client, u1["token"], u1["user"]["id"])["flags"] == 0

    def test_missing_group_id(self, client, setup):
        u1, u2 = setup["u1"], setup["u2"]
        resp = client.post(
            f"/api/v1/users/{u1['user']['id']}/flag",
            json={"type": "other"},
            headers=auth_headers(u2["token"]),
        )
        assert resp.status_code == 400
        assert resp.get_json()["error"]["code"] == "MISSING_FIELD"


class TestProfile:

    def test_profile_hides_private_fields(self, client, setup):
        u1, u2 = setup["u1"], setup["u2"]
        profile = _profile(client, u2["token"], u1["user"]["id"])
        assert profile["username"] == "user1"
        assert "email" not in profile
        assert "password_hash" not in profile

    def test_unknown_profile_returns_404(self, client, setup):
        resp = client.get("/api/v1/users/999999", headers=auth_headers(setup["u1"]["token"]))
        assert resp.status_code == 404
