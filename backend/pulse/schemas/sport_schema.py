"""
schemas/sport_schema.py — Marshmallow schemas for the sport catalogue.

DUPLICATE_SPORT (name / slug already taken) is checked in sport_service.py.
"""

from __future__ import annotations

from marshmallow import Schema, ValidationError, fields, validate, validates_schema

SLUG_PATTERN = r"^[a-z0-9]+(?:-[a-z0-9]+)*$"


def _validate_non_empty_after_trim(value: str) -> None:
    if not value.strip():
        raise ValidationError("This field must not be blank or contain only whitespace.")


class CreateSportSchema(Schema):
    """POST /sports — slug is derived from name when omitted."""

    name = fields.Str(
        required=True,
        validate=[validate.Length(min=1, max=50), _validate_non_empty_after_trim],
    )
    icon = fields.Str(
        required=True,
        validate=[validate.Length(min=1, max=16), _validate_non_empty_after_trim],
    )
    slug = fields.Str(
        load_default=None,
        allow_none=True,
        validate=[
            validate.Length(min=1, max=60),
            validate.Regexp(
                SLUG_PATTERN,
                error="Slug may only contain lowercase letters, digits, and single hyphens.",
            ),
        ],
    )


class UpdateSportSchema(Schema):
    """PATCH /sports/:id — at least one field must be supplied."""

    name = fields.Str(
        validate=[validate.Length(min=1, max=50), _validate_non_empty_after_trim],
    )
    icon = fields.Str(
        validate=[validate.Length(min=1, max=16), _validate_non_empty_after_trim],
    )
    slug = fields.Str(
        validate=[
            validate.Length(min=1, max=60),
            validate.Regexp(
                SLUG_PATTERN,
                error="Slug may only contain lowercase letters, digits, and single hyphens.",
            ),
        ],
    )
    is_active = fields.Bool()

    @validates_schema
    def validate_not_empty(self, data, **kwargs):
        if not data:
            raise ValidationError("At least one field must be provided.")
