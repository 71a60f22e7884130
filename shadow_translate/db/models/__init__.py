"""
Table helpers.

Main tables are plain SQLAlchemy Tables declared by the host application;
this package only provides the helper declaring their shadow tables.
"""

from shadow_translate.db.models.translation import make_translation_table

__all__ = ["make_translation_table"]
