"""
Unit tests for activity_service: titles, the join/leave decision paths and
the capacity race outcome. DB-free with mocked session/helpers.
"""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest
from sqlalchemy.exc import IntegrityError

from backend.pulse.errors import AppError, ErrorCode
from backend.pulse.models.group_member import MemberRole
from backend.pulse.services import activity_service


# ── Titles ──────────────────────────────────────────────────────────────────

@pytest.mark.parametrize("level, label", [
    ("newbie", "Newbie Friendly"),
    ("weekend", "Weekend Warrior"),
    ("serious", "Serious Player"),
    ("elite", "Elite Level"),
    ("casual", "casual"),
])
def test_skill_label(level, label):
    assert activity_service.skill_label(level) == label


def test_build_title():
    assert activity_service.build_title("Basketball", "elite") == "Basketball - Elite Level"


# ── Lookups ─────────────────────────────────────────────────────────────────

def test_get_group_or_404_raises_when_group_missing():
    session = MagicMock()
    session.get.return_value = None

    with pytest.raises(AppError) as exc_info:
        activity_service._get_group_or_404(group_id=404, session=session)

    err = exc_info.value
    assert err.code == ErrorCode.GROUP_NOT_FOUND
    assert err.http_status == 404


def test_create_activity_rejects_inactive_sport():
    session = MagicMock()
    session.get.return_value = SimpleNamespace(id=1, name="Cricket", is_active=False)

    with pytest.raises(AppError) as exc_info:
        activity_service.create_activity(
            organizer_id=1, sport_id=1, on_date=None, at_time=None,
            skill_level="weekend", location="Oval", privacy="PUBLIC",
            session=session,
        )

    assert exc_info.value.code == ErrorCode.INVALID_SPORT
    assert exc_info.value.field == "sport_id"
    session.add.assert_not_called()


# ── Join ────────────────────────────────────────────────────────────────────

@patch("backend.pulse.services.activity_service._count_members", return_value=3)
@patch("backend.pulse.services.activity_service._insert_member_if_capacity", return_value=1)
@patch("backend.pulse.services.activity_service._get_membership", return_value=None)
@patch("backend.pulse.services.activity_service._get_group_or_404")
def test_join_success(_group, _membership, insert, _count):
    session = MagicMock()

    result = activity_service.join_activity(group_id=5, user_id=9, session=session)

    assert result == {
        "message": "Successfully joined group",
        "group_id": 5,
        "user_id": 9,
        "member_count": 3,
    }
    insert.assert_called_once_with(5, 9, session)


@patch("backend.pulse.services.activity_service._insert_member_if_capacity")
@patch("backend.pulse.services.activity_service._get_membership")
@patch("backend.pulse.services.activity_service._get_group_or_404")
def test_join_existing_member_is_already_member(_group, membership, insert):
    membership.return_value = SimpleNamespace(role=MemberRole.MEMBER)

    with pytest.raises(AppError) as exc_info:
        activity_service.join_activity(group_id=5, user_id=9, session=MagicMock())

    assert exc_info.value.code == ErrorCode.ALREADY_MEMBER
    assert exc_info.value.http_status == 400
    insert.assert_not_called()


@patch("backend.pulse.services.activity_service._insert_member_if_capacity", return_value=0)
@patch("backend.pulse.services.activity_service._get_membership", return_value=None)
@patch("backend.pulse.services.activity_service._get_group_or_404")
def test_join_when_no_row_inserted_is_group_full(_group, _membership, _insert):
    with pytest.raises(AppError) as exc_info:
        activity_service.join_activity(group_id=5, user_id=9, session=MagicMock())

    assert exc_info.value.code == ErrorCode.GROUP_FULL
    assert exc_info.value.message == "Group is full"


@patch("backend.pulse.services.activity_service._insert_member_if_capacity")
@patch("backend.pulse.services.activity_service._get_membership", return_value=None)
@patch("backend.pulse.services.activity_service._get_group_or_404")
def test_join_unique_violation_rolls_back_and_reports_already_member(_group, _membership, insert):
    insert.side_effect = IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed"))
    session = MagicMock()

    with pytest.raises(AppError) as exc_info:
        activity_service.join_activity(group_id=5, user_id=9, session=session)

    assert exc_info.value.code == ErrorCode.ALREADY_MEMBER
    session.rollback.assert_called_once()


def test_insert_member_if_capacity_returns_rowcount():
    session = MagicMock()
    session.execute.return_value.rowcount = 0

    assert activity_service._insert_member_if_capacity(5, 9, session) == 0
    session.execute.assert_called_once()


# ── Leave ───────────────────────────────────────────────────────────────────

@patch("backend.pulse.services.activity_service._get_membership", return_value=None)
@patch("backend.pulse.services.activity_service._get_group_or_404")
def test_leave_non_member(_group, _membership):
    with pytest.raises(AppError) as exc_info:
        activity_service.leave_activity(group_id=5, user_id=9, session=MagicMock())

    assert exc_info.value.code == ErrorCode.NOT_A_MEMBER
    assert exc_info.value.http_status == 404


@patch("backend.pulse.services.activity_service._get_membership")
@patch("backend.pulse.services.activity_service._get_group_or_404")
def test_organizer_cannot_leave(_group, membership):
    membership.return_value = SimpleNamespace(role=MemberRole.ORGANIZER)
    session = MagicMock()

    with pytest.raises(AppError) as exc_info:
        activity_service.leave_activity(group_id=5, user_id=1, session=session)

    assert exc_info.value.code == ErrorCode.ORGANIZER_CANNOT_LEAVE
    session.delete.assert_not_called()


@patch("backend.pulse.services.activity_service._count_members", return_value=1)
@patch("backend.pulse.services.activity_service._get_membership")
@patch("backend.pulse.services.activity_service._get_group_or_404")
def test_member_leaves(_group, membership, _count):
    row = SimpleNamespace(role=MemberRole.MEMBER)
    membership.return_value = row
    session = MagicMock()

    result = activity_service.leave_activity(group_id=5, user_id=9, session=session)

    session.delete.assert_called_once_with(row)
    assert result["member_count"] == 1
