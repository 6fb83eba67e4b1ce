"""
models/base.py — Column helpers shared by the model modules.

SQLite has no native enum type, so every enum column is a VARCHAR with a
named CHECK constraint listing the allowed values.
"""

from __future__ import annotations

import enum

from sqlalchemy import Enum


def enum_values(enum_cls: type[enum.Enum]) -> list[str]:
    """Ensure SQLAlchemy stores enum values (e.g. 'admin'), not names ('ADMIN')."""
    return [member.value for member in enum_cls]


def str_enum(enum_cls: type[enum.Enum], name: str) -> Enum:
    """VARCHAR + CHECK(value IN (...)) column type for a str-valued enum."""
    return Enum(
        enum_cls,
        name=name,
        native_enum=False,
        create_constraint=True,
        validate_strings=True,
        values_callable=enum_values,
    )
