"""
statecheck — Diagnostic Formatting

Renders queries and values for error messages and sub-test names.
None of these functions raise: a broken path is reported as unprintable
rather than masking the failure being diagnosed.
"""

from __future__ import annotations

from typing import Any

from statecheck.query import Query, Value


def format_path(query: Query[Any] | None) -> str:
    """Canonical string for query's path, or an unprintable placeholder."""
    if query is None:
        return "<nil path>"
    try:
        return str(query.path)
    except Exception as exc:  # noqa: BLE001
        return f"<Unprintable path: {exc}>"


def format_value(value: Value[Any] | None) -> str:
    """Format value's content, or "no value" if it isn't present."""
    if value is None:
        return "nil"
    val, present = value.val()
    if not present:
        return "no value"
    return repr(val)


def format_relative_path(base: Query[Any] | None, query: Query[Any] | None) -> str:
    """Format query's path relative to base, falling back to the full path."""
    if base is None or query is None:
        return format_path(query)
    try:
        return query.path.relative_to(base.path)
    except Exception:  # noqa: BLE001
        return format_path(query)
