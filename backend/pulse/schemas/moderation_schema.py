"""
schemas/moderation_schema.py — Marshmallow schemas for the /admin endpoints.

Status-transition legality (INVALID_STATUS_TRANSITION) and flag state checks
(FLAG_ALREADY_RESOLVED) need the stored row, so they live in
moderation_service.py, not here.
"""

from __future__ import annotations

from marshmallow import EXCLUDE, Schema, ValidationError, fields, validate, validates_schema

from backend.pulse.models.flag_report import FlagStatus
from backend.pulse.models.user import UserRole, UserStatus

_NO_FILTER = ["all", ""]


class UserFiltersSchema(Schema):
    """GET /admin/users query string. "all" or empty means no filter."""

    class Meta:
        unknown = EXCLUDE

    status = fields.Str(
        load_default=None,
        validate=validate.OneOf([s.value for s in UserStatus] + _NO_FILTER),
    )
    role = fields.Str(
        load_default=None,
        validate=validate.OneOf([r.value for r in UserRole] + _NO_FILTER),
    )
    search = fields.Str(load_default=None, validate=validate.Length(max=100))


class FlagFiltersSchema(Schema):
    """GET /admin/flags query string."""

    class Meta:
        unknown = EXCLUDE

    status = fields.Str(
        load_default=None,
        validate=validate.OneOf([s.value for s in FlagStatus] + _NO_FILTER),
    )


class UpdateUserSchema(Schema):
    """PATCH /admin/users/:id — role and/or status."""

    role = fields.Enum(UserRole, by_value=True)
    status = fields.Enum(UserStatus, by_value=True)
    reason = fields.Str(validate=validate.Length(max=200))

    @validates_schema
    def validate_not_empty(self, data, **kwargs):
        if "role" not in data and "status" not in data:
            raise ValidationError("At least one of role or status must be provided.")


class ModerationNoteSchema(Schema):
    """
    Optional free-text body for suspend, dismiss and review.

    `note` is accepted as a synonym of `reason` for the review action.
    """

    class Meta:
        unknown = EXCLUDE

    reason = fields.Str(load_default=None, allow_none=True, validate=validate.Length(max=200))
    note = fields.Str(load_default=None, allow_none=True, validate=validate.Length(max=200))


class FlagActionSchema(Schema):
    """POST /admin/flags/:id/action"""

    class Meta:
        unknown = EXCLUDE

    action = fields.Str(load_default=None, allow_none=True, validate=validate.Length(max=200))
