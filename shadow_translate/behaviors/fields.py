# File: shadow_translate/behaviors/fields.py
"""
Resolution of translatable field names.

Fields come either from explicit configuration or from the columns the
primary and translation tables share. Resolution is deferred until a query
actually needs it, because it costs a schema introspection.
"""

import logging
from typing import Callable, List, Optional, Sequence

from shadow_translate.core.exceptions import UnknownTranslationFieldException
from shadow_translate.db.schema import SchemaInspector

logger = logging.getLogger(__name__)


def shadow_value_columns(shadow_columns: Sequence[str], key_columns: Sequence[str]) -> List[str]:
    """Every translation column that is not part of the key, in table order."""
    keys = set(key_columns)
    return [name for name in shadow_columns if name not in keys]


def resolve_fields(
    primary_columns: Sequence[str],
    shadow_columns: Sequence[str],
    explicit_fields: Optional[Sequence[str]] = None,
    key_columns: Sequence[str] = ("id", "locale"),
    table_name: str = "translation table",
) -> List[str]:
    """
    Compute the translatable fields of a primary table.

    Args:
        primary_columns: Primary table column names, in declaration order
        shadow_columns: Translation table column names
        explicit_fields: Configured field list; wins when non-empty
        key_columns: Columns shared only as keys (foreign key, locale)
        table_name: Translation table name, for error messages

    Returns:
        Ordered field names

    Raises:
        UnknownTranslationFieldException: If an explicit field has no
            translation column
    """
    if explicit_fields:
        missing = [f for f in explicit_fields if f not in shadow_columns]
        if missing:
            raise UnknownTranslationFieldException(table_name, missing)
        return list(explicit_fields)

    shadow = set(shadow_value_columns(shadow_columns, key_columns))
    return [name for name in primary_columns if name in shadow]


class FieldResolver:
    """
    Lazily memoised field lists for one primary/translation table pair.

    The memo is written once and never changes afterwards; two callers racing
    on first use compute the same list, so no lock is needed.
    """

    def __init__(
        self,
        inspector: SchemaInspector,
        primary_table: str,
        translation_table: Callable[[], str],
        explicit_fields: Optional[Sequence[str]] = None,
        key_columns: Sequence[str] = ("id", "locale"),
    ):
        self.inspector = inspector
        self.primary_table = primary_table
        self._translation_table = translation_table
        self.explicit_fields = list(explicit_fields) if explicit_fields else None
        self.key_columns = tuple(key_columns)
        self._fields: Optional[List[str]] = None
        self._shadow_fields: Optional[List[str]] = None

    @property
    def resolved(self) -> bool:
        return self._fields is not None

    def fields(self) -> List[str]:
        """Translatable fields, resolving them on first call."""
        if self._fields is None:
            self._resolve()
        return list(self._fields)

    def shadow_fields(self) -> List[str]:
        """Every non-key translation column, including ones the primary table lacks."""
        if self._shadow_fields is None:
            self._resolve()
        return list(self._shadow_fields)

    def _resolve(self) -> None:
        translation_table = self._translation_table()
        shadow_columns = [c.name for c in self.inspector.columns(translation_table)]
        primary_columns = [c.name for c in self.inspector.columns(self.primary_table)]

        fields = resolve_fields(
            primary_columns,
            shadow_columns,
            self.explicit_fields,
            self.key_columns,
            translation_table,
        )
        self._shadow_fields = shadow_value_columns(shadow_columns, self.key_columns)
        self._fields = fields
        logger.debug(
            f"Resolved translatable fields of {self.primary_table}: {fields} "
            f"(translation columns: {self._shadow_fields})"
        )
