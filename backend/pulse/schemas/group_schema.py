"""
schemas/group_schema.py — Marshmallow schemas for activity (group) endpoints.

Validation responsibility:
  - This file: field presence, types, enum membership, capacity range.
  - services/activity_service.py:
      - INVALID_SPORT   (sport existence requires a DB lookup)
      - GROUP_NOT_FOUND / ALREADY_MEMBER / GROUP_FULL

IMPORTANT: Inherits from marshmallow.Schema directly — never ma.Schema.
"""

from __future__ import annotations

from marshmallow import EXCLUDE, Schema, ValidationError, fields, pre_load, validate

from backend.pulse.models.group import Privacy

MAX_CAPACITY = 100


def _validate_non_empty_after_trim(value: str) -> None:
    """Raises ValidationError if the string is blank or only whitespace."""
    if not value.strip():
        raise ValidationError("This field must not be blank or contain only whitespace.")


def _upper_privacy(data):
    """Clients send privacy in any case ("public"); stored values are upper-case."""
    if not isinstance(data, dict):
        return data
    value = data.get("privacy")
    if isinstance(value, str):
        value = value.strip()
        data = dict(data)
        data["privacy"] = "all" if value.lower() == "all" else value.upper()
    return data


class CreateActivitySchema(Schema):
    """
    POST /groups

    Required: sport_id, date, time, skill_level, location, privacy.
    Optional: description (default ""), max_members (service default),
              city (defaults to location in the service).

    A missing required field surfaces as MISSING_FIELD,
    "Missing required fields" via the global ValidationError handler.
    """

    # Forms post ids as strings; accept "3" as well as 3.
    sport_id = fields.Int(
        required=True,
        validate=validate.Range(min=1, error="sport_id must be a positive integer."),
    )

    # "2025-09-01"
    date = fields.Date(required=True)

    # "18:30" or "18:30:00"
    time = fields.Time(required=True)

    # newbie | weekend | serious | elite; other labels are used verbatim.
    skill_level = fields.Str(
        required=True,
        validate=[validate.Length(min=1, max=30), _validate_non_empty_after_trim],
    )

    location = fields.Str(
        required=True,
        validate=[validate.Length(min=1, max=255), _validate_non_empty_after_trim],
    )

    privacy = fields.Enum(Privacy, by_value=True, required=True)

    description = fields.Str(
        load_default="",
        validate=validate.Length(max=2000),
    )

    max_members = fields.Int(
        load_default=None,
        allow_none=True,
        strict=True,
        validate=validate.Range(
            min=1,
            max=MAX_CAPACITY,
            error=f"max_members must be between 1 and {MAX_CAPACITY}.",
        ),
    )

    city = fields.Str(
        load_default=None,
        allow_none=True,
        validate=[validate.Length(min=1, max=100), _validate_non_empty_after_trim],
    )

    @pre_load
    def normalise_privacy(self, data, **kwargs):
        return _upper_privacy(data)


class ActivityFiltersSchema(Schema):
    """
    GET /groups query string.

    "all" or an empty value means "no filter" for sport / city / privacy;
    the service treats None the same way.
    """

    class Meta:
        unknown = EXCLUDE

    sport = fields.Str(load_default=None)
    city = fields.Str(load_default=None)
    privacy = fields.Str(
        load_default=None,
        validate=validate.OneOf([p.value for p in Privacy] + ["all", ""]),
    )
    search = fields.Str(load_default=None, validate=validate.Length(max=100))

    @pre_load
    def normalise_privacy(self, data, **kwargs):
        return _upper_privacy(data)
