"""
tests/unit/test_validation_schemas.py — Unit tests for the marshmallow schemas.

What this file proves:
  - Every schema accepts valid input without raising
  - Every schema rejects invalid input with the expected ValidationError
  - Field-level rules (type, length, enum, range) live in schemas; rules that
    need the store or the caller's identity are left to services

No database and no Flask application context: schemas inherit from
marshmallow.Schema directly.
"""

from __future__ import annotations

from datetime import date, time

import pytest
from marshmallow import ValidationError

from backend.pulse.errors import ErrorCode
from backend.pulse.models.flag_report import FlagSeverity, FlagType
from backend.pulse.models.group import Privacy
from backend.pulse.models.user import UserStatus
from backend.pulse.schemas.auth_schema import LoginSchema, RegisterSchema
from backend.pulse.schemas.group_schema import ActivityFiltersSchema, CreateActivitySchema
from backend.pulse.schemas.moderation_schema import UpdateUserSchema, UserFiltersSchema
from backend.pulse.schemas.reputation_schema import FlagUserSchema, RateUserSchema
from backend.pulse.schemas.sport_schema import CreateSportSchema, UpdateSportSchema


# ═══════════════════════════════════════════════════════════════════════════
# RegisterSchema
# ═══════════════════════════════════════════════════════════════════════════

class TestRegisterSchema:

    def _load(self, **overrides):
        data = {
            "name": "Alice Smith",
            "username": "alice_99",
            "email": "alice@example.com",
            "password": "Secure12",
        }
        data.update(overrides)
        return RegisterSchema().load(data)

    def test_valid_payload(self):
        result = self._load()
        assert result["username"] == "alice_99"
        assert result["name"] == "Alice Smith"

    @pytest.mark.parametrize("username", ["ab", "has space", "dash-name", "x" * 51])
    def test_bad_usernames(self, username):
        with pytest.raises(ValidationError) as exc_info:
            self._load(username=username)
        assert "username" in exc_info.value.messages

    @pytest.mark.parametrize("password", ["short1", "allletters", "12345678"])
    def test_weak_passwords(self, password):
        with pytest.raises(ValidationError) as exc_info:
            self._load(password=password)
        assert "password" in exc_info.value.messages

    def test_blank_name(self):
        with pytest.raises(ValidationError) as exc_info:
            self._load(name="   ")
        assert "name" in exc_info.value.messages

    def test_bad_email(self):
        with pytest.raises(ValidationError) as exc_info:
            self._load(email="not-an-email")
        assert "email" in exc_info.value.messages


# ═══════════════════════════════════════════════════════════════════════════
# LoginSchema
# ═══════════════════════════════════════════════════════════════════════════

class TestLoginSchema:

    def test_username_or_email(self):
        result = LoginSchema().load({"username_or_email": "alice", "password": "x"})
        assert result["username_or_email"] == "alice"

    @pytest.mark.parametrize("key", ["username", "email"])
    def test_legacy_keys_are_moved_across(self, key):
        result = LoginSchema().load({key: "alice@example.com", "password": "x"})
        assert result["username_or_email"] == "alice@example.com"

    def test_missing_identifier(self):
        with pytest.raises(ValidationError) as exc_info:
            LoginSchema().load({"password": "x"})
        assert "username_or_email" in exc_info.value.messages


# ═══════════════════════════════════════════════════════════════════════════
# CreateActivitySchema / ActivityFiltersSchema
# ═══════════════════════════════════════════════════════════════════════════

class TestCreateActivitySchema:

    def _payload(self, **overrides):
        data = {
            "sport_id": 1,
            "date": "2030-09-01",
            "time": "18:30",
            "skill_level": "weekend",
            "location": "Riverside Park",
            "privacy": "PUBLIC",
        }
        data.update(overrides)
        return data

    def test_valid_payload_parses_types(self):
        result = CreateActivitySchema().load(self._payload())
        assert result["date"] == date(2030, 9, 1)
        assert result["time"] == time(18, 30)
        assert result["privacy"] == Privacy.PUBLIC
        assert result["description"] == ""
        assert result["max_members"] is None
        assert result["city"] is None

    @pytest.mark.parametrize("field", [
        "sport_id", "date", "time", "skill_level", "location", "privacy",
    ])
    def test_each_required_field(self, field):
        data = self._payload()
        del data[field]
        with pytest.raises(ValidationError) as exc_info:
            CreateActivitySchema().load(data)
        assert field in exc_info.value.messages

    @pytest.mark.parametrize("max_members", [0, 101, "5", 2.5])
    def test_bad_capacity(self, max_members):
        with pytest.raises(ValidationError) as exc_info:
            CreateActivitySchema().load(self._payload(max_members=max_members))
        assert "max_members" in exc_info.value.messages

    def test_unknown_privacy(self):
        with pytest.raises(ValidationError) as exc_info:
            CreateActivitySchema().load(self._payload(privacy="SECRET"))
        assert "privacy" in exc_info.value.messages

    @pytest.mark.parametrize("value", ["public", "friends", "Private"])
    def test_lower_case_privacy_is_accepted(self, value):
        result = CreateActivitySchema().load(self._payload(privacy=value))
        assert result["privacy"] == Privacy(value.upper())

    def test_blank_location(self):
        with pytest.raises(ValidationError):
            CreateActivitySchema().load(self._payload(location="  "))


class TestActivityFiltersSchema:

    def test_unknown_keys_are_ignored(self):
        result = ActivityFiltersSchema().load({"sport": "basketball", "page": "2"})
        assert result == {"sport": "basketball", "city": None, "privacy": None, "search": None}

    def test_all_is_accepted_for_privacy(self):
        assert ActivityFiltersSchema().load({"privacy": "all"})["privacy"] == "all"
        assert ActivityFiltersSchema().load({"privacy": "ALL"})["privacy"] == "all"

    @pytest.mark.parametrize("value", ["public", "Public", " PUBLIC "])
    def test_privacy_case_is_normalised(self, value):
        assert ActivityFiltersSchema().load({"privacy": value})["privacy"] == "PUBLIC"

    def test_bad_privacy(self):
        with pytest.raises(ValidationError):
            ActivityFiltersSchema().load({"privacy": "secret"})


# ═══════════════════════════════════════════════════════════════════════════
# RateUserSchema / FlagUserSchema
# ═══════════════════════════════════════════════════════════════════════════

class TestRateUserSchema:

    def test_valid(self):
        assert RateUserSchema().load({"rating": 5, "group_id": 3}) == {"rating": 5, "group_id": 3}

    def test_group_id_alias(self):
        assert RateUserSchema().load({"rating": 4, "groupId": 3})["group_id"] == 3

    @pytest.mark.parametrize("rating", [0, 6, 4.5, "4"])
    def test_invalid_rating_reports_registered_code(self, rating):
        with pytest.raises(ValidationError) as exc_info:
            RateUserSchema().load({"rating": rating, "group_id": 3})
        assert exc_info.value.messages["rating"] == [ErrorCode.INVALID_RATING]


class TestFlagUserSchema:

    def test_defaults(self):
        result = FlagUserSchema().load({"type": "no_show", "group_id": 3})
        assert result["type"] == FlagType.NO_SHOW
        assert result["severity"] == FlagSeverity.MEDIUM
        assert result["reason"] is None
        assert result["details"] == ""

    def test_unknown_type(self):
        with pytest.raises(ValidationError) as exc_info:
            FlagUserSchema().load({"type": "rude", "group_id": 3})
        assert "type" in exc_info.value.messages


# ═══════════════════════════════════════════════════════════════════════════
# Sports and moderation
# ═══════════════════════════════════════════════════════════════════════════

class TestSportSchemas:

    def test_create_slug_optional(self):
        result = CreateSportSchema().load({"name": "Tennis", "icon": "🎾"})
        assert result["slug"] is None

    def test_create_bad_slug(self):
        with pytest.raises(ValidationError) as exc_info:
            CreateSportSchema().load({"name": "Tennis", "icon": "🎾", "slug": "Ten--nis"})
        assert "slug" in exc_info.value.messages

    def test_update_requires_a_field(self):
        with pytest.raises(ValidationError) as exc_info:
            UpdateSportSchema().load({})
        assert "_schema" in exc_info.value.messages

    def test_update_partial(self):
        assert UpdateSportSchema().load({"is_active": False}) == {"is_active": False}


class TestModerationSchemas:

    def test_update_user_requires_role_or_status(self):
        with pytest.raises(ValidationError):
            UpdateUserSchema().load({"reason": "because"})

    def test_update_user_status(self):
        assert UpdateUserSchema().load({"status": "suspended"})["status"] == UserStatus.SUSPENDED

    def test_user_filters(self):
        assert UserFiltersSchema().load({"status": "all"})["status"] == "all"
        with pytest.raises(ValidationError):
            UserFiltersSchema().load({"role": "owner"})
