# File: shadow_translate/behaviors/policy.py
"""
Empty-value policy: choose the final value of a translated field.

These are plain functions over values, usable outside the query overlay.
The overlay only ever passes fields the translation table has, since
explicit fields are checked against it when they are resolved; direct
callers may pass any field and get None for one the table lacks.
"""

from typing import Any, Dict, Iterable


def resolve_value(
    primary_value: Any,
    translated_value: Any,
    row_present: bool,
    allow_empty_translations: bool = True,
    in_shadow_schema: bool = True,
) -> Any:
    """
    Final value of one field.

    Args:
        primary_value: The main table's own value (None if it has no such column)
        translated_value: Value from the translation row
        row_present: Whether a translation row exists for the locale
        allow_empty_translations: Honor "" translations instead of falling back
        in_shadow_schema: Whether the translation table has this column at all

    Returns:
        The value the caller should see
    """
    if not in_shadow_schema:
        return None
    if not row_present or translated_value is None:
        return primary_value
    if translated_value == "" and not allow_empty_translations:
        return primary_value
    return translated_value


def apply_translation(
    row: Dict[str, Any],
    translated: Dict[str, Any],
    row_present: bool,
    fields: Iterable[str],
    shadow_fields: Iterable[str],
    allow_empty_translations: bool = True,
) -> Dict[str, Any]:
    """
    Overlay translated values onto a result row, in place.

    Returns:
        The same row
    """
    available = set(shadow_fields)
    for name in fields:
        row[name] = resolve_value(
            row.get(name),
            translated.get(name),
            row_present,
            allow_empty_translations,
            name in available,
        )
    return row
