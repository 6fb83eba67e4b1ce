"""
schemas/reputation_schema.py — Marshmallow schemas for rating and flagging.

Validation responsibility:
  - This file: rating range, flag type / severity membership, lengths.
  - services/reputation_service.py: SELF_RATING / SELF_FLAG and existence
    of the target user and activity (require DB or caller identity).

Out-of-range and non-integer ratings both raise the bare INVALID_RATING code;
the global ValidationError handler expands it to
"Rating must be between 1 and 5".
"""

from __future__ import annotations

from marshmallow import Schema, fields, pre_load, validate

from backend.pulse.errors import ErrorCode
from backend.pulse.models.flag_report import FlagSeverity, FlagType


def _accept_group_id_alias(data):
    """Older clients send the activity id as `groupId`."""
    if isinstance(data, dict) and "groupId" in data and "group_id" not in data:
        data = dict(data)
        data["group_id"] = data.pop("groupId")
    return data


class RateUserSchema(Schema):
    """POST /users/:id/rate"""

    rating = fields.Int(
        required=True,
        strict=True,
        validate=validate.Range(min=1, max=5, error=ErrorCode.INVALID_RATING),
        error_messages={"invalid": ErrorCode.INVALID_RATING},
    )
    group_id = fields.Int(
        required=True,
        validate=validate.Range(min=1),
    )

    @pre_load
    def accept_legacy_keys(self, data, **kwargs):
        return _accept_group_id_alias(data)


class FlagUserSchema(Schema):
    """
    POST /users/:id/flag

    reason defaults to the type's display label in the service, so it is
    optional here. severity defaults to medium.
    """

    type = fields.Enum(FlagType, by_value=True, required=True)
    reason = fields.Str(
        load_default=None,
        allow_none=True,
        validate=validate.Length(max=100),
    )
    details = fields.Str(
        load_default="",
        validate=validate.Length(max=2000),
    )
    group_id = fields.Int(
        required=True,
        validate=validate.Range(min=1),
    )
    severity = fields.Enum(
        FlagSeverity,
        by_value=True,
        load_default=FlagSeverity.MEDIUM,
    )

    @pre_load
    def accept_legacy_keys(self, data, **kwargs):
        return _accept_group_id_alias(data)
