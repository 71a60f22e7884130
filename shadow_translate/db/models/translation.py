# File: shadow_translate/db/models/translation.py

"""
Shadow translation table helper.

A shadow table mirrors the translatable columns of its primary table and
adds a composite (foreign key, locale) primary key, so that there is at most
one translation row per record and locale.
"""

from typing import Optional, Sequence

from sqlalchemy import Column, ForeignKey, MetaData, String, Table

from shadow_translate.core.config import settings


def make_translation_table(
    main_table: Table,
    *columns: Column,
    name: Optional[str] = None,
    metadata: Optional[MetaData] = None,
    key_columns: Optional[Sequence[str]] = None,
    locale_length: int = 10,
) -> Table:
    """
    Declare the shadow table for a primary table.

    Args:
        main_table: The primary table being translated
        *columns: Translated columns (e.g. Column("title", String(255)))
        name: SQL name; defaults to "<main table>_translations"
        metadata: MetaData to declare in; defaults to the main table's
        key_columns: (foreign key, locale) column names
        locale_length: Length of the locale column

    Returns:
        The declared Table

    Example:
        articles_translations = make_translation_table(
            articles,
            Column("title", String(255)),
            Column("body", Text),
        )
    """
    fk_name, locale_name = key_columns or settings.TRANSLATION_KEY_COLUMNS
    main_pk = list(main_table.primary_key.columns)[0]

    return Table(
        name or f"{main_table.name}_translations",
        metadata if metadata is not None else main_table.metadata,
        Column(
            fk_name,
            main_pk.type,
            ForeignKey(main_pk, ondelete="CASCADE"),
            primary_key=True,
            comment="Identity of the translated record",
        ),
        Column(
            locale_name,
            String(locale_length),
            primary_key=True,
            comment="Locale of this translation (e.g. 'de_DE')",
        ),
        *columns,
        comment=f"Per-locale translations of {main_table.name}",
    )
