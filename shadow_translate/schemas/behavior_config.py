# File: shadow_translate/schemas/behavior_config.py

"""
Pydantic schemas for translation behavior configuration.

TranslateOptions validates what a caller passes to add_behavior(); both
snake_case and camelCase option names are accepted. BehaviorConfig is the
immutable snapshot the behavior works from once aliases are derived.
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from shadow_translate.core.config import settings


class TranslateOptions(BaseModel):
    """
    Options accepted when attaching the translation behavior.

    Every alias option is optional; missing ones are derived from the main
    table's alias and canonical name.
    """

    model_config = ConfigDict(
        extra="forbid",
        populate_by_name=True,
        alias_generator=to_camel,
    )

    fields: Optional[List[str]] = Field(
        None, description="Translated fields; derived from the schemas when empty"
    )
    translation_table: Optional[str] = Field(
        None, description="Alias or SQL name of the translation table"
    )
    translation_table_alias: Optional[str] = None
    has_one_alias: Optional[str] = None
    has_many_alias: Optional[str] = None
    reference_name: Optional[str] = Field(
        None, description="Name the main table is known by (default: canonical name)"
    )
    allow_empty_translations: bool = Field(
        default_factory=lambda: settings.ALLOW_EMPTY_TRANSLATIONS,
        description="Honor translations that exist but are blank",
    )
    default_locale: str = Field(
        default_factory=lambda: settings.DEFAULT_LOCALE,
        min_length=1,
        description="Locale stored in the main table itself",
    )
    foreign_key: str = Field(
        default_factory=lambda: settings.TRANSLATION_KEY_COLUMNS[0], min_length=1
    )
    locale_field: str = Field(
        default_factory=lambda: settings.TRANSLATION_KEY_COLUMNS[1], min_length=1
    )

    @field_validator("fields")
    @classmethod
    def validate_fields(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        """Field names must be non-empty and unique."""
        if not v:
            return None
        if any(not name or not name.strip() for name in v):
            raise ValueError("Field names cannot be empty")
        if len(set(v)) != len(v):
            raise ValueError("Field names must be unique")
        return v

    @field_validator(
        "translation_table",
        "translation_table_alias",
        "has_one_alias",
        "has_many_alias",
        "reference_name",
    )
    @classmethod
    def validate_names(cls, v: Optional[str]) -> Optional[str]:
        """Treat blank names as not given."""
        if v is None:
            return None
        v = v.strip()
        return v or None

    def overrides(self) -> dict:
        """Explicitly given alias options."""
        return {
            "translation_table": self.translation_table,
            "translation_table_alias": self.translation_table_alias,
            "has_one_alias": self.has_one_alias,
            "has_many_alias": self.has_many_alias,
        }


class BehaviorConfig(BaseModel):
    """
    Immutable configuration of an attached translation behavior.

    ``fields`` holds the explicit field list, or None when fields are derived;
    ShadowTranslateBehavior.get_config() fills it in once resolved.
    """

    model_config = ConfigDict(frozen=True)

    translation_table: str
    translation_table_alias: str
    main_table_alias: str
    has_one_alias: str
    has_many_alias: str
    reference_name: str
    fields: Optional[List[str]] = None
    default_locale: str
    allow_empty_translations: bool = True
    foreign_key: str = "id"
    locale_field: str = "locale"
    strategy: str = "ShadowTranslate"
