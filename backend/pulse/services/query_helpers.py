"""
services/query_helpers.py — Small SQL building helpers shared by services.
"""

from __future__ import annotations

LIKE_ESCAPE = "\\"


def contains_pattern(search: str) -> str:
    """
    LIKE pattern matching `search` as a literal substring.

    % and _ in user input are escaped, so "%" only matches values that
    contain a percent sign. Use with .ilike(pattern, escape=LIKE_ESCAPE).
    """
    escaped = (
        search.strip()
        .replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )
    return f"%{escaped}%"
