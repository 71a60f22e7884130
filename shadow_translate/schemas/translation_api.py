# File: shadow_translate/schemas/translation_api.py

"""
API-specific schemas for translation endpoints.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator


class TranslationValuesRequest(BaseModel):
    """Request schema for storing one locale's translation of an entity."""

    values: Dict[str, Optional[str]] = Field(
        ...,
        description="Field name to translated value mapping",
        examples=[{"title": "Erster Artikel", "body": "Inhalt"}],
    )

    @field_validator("values")
    @classmethod
    def validate_values(cls, v: Dict[str, Optional[str]]) -> Dict[str, Optional[str]]:
        """At least one field, none with a blank name."""
        if not v:
            raise ValueError("At least one translated field is required")
        if any(not name.strip() for name in v):
            raise ValueError("Field names cannot be empty")
        return v


class LocalizedEntityResponse(BaseModel):
    """Response schema for an entity read in one locale."""

    entity_type: str = Field(..., description="Entity type", examples=["articles"])
    entity_id: int = Field(..., description="Entity ID", examples=[1])
    locale: str = Field(..., description="Locale the values are in", examples=["de_DE"])
    translated: bool = Field(..., description="Whether a translation row supplied the values")
    data: Dict[str, Any] = Field(..., description="Entity fields")


class EntityTranslationsResponse(BaseModel):
    """Response schema for all translations of an entity."""

    entity_type: str = Field(..., description="Entity type", examples=["articles"])
    entity_id: int = Field(..., description="Entity ID", examples=[1])
    translations: Dict[str, Dict[str, Any]] = Field(
        ...,
        description="Locale to field values mapping",
        examples=[{"de_DE": {"title": "Erster Artikel"}}],
    )
    available_locales: List[str] = Field(..., description="Locales with a translation row")


class TranslationValidationResponse(BaseModel):
    """Response schema for translation coverage of an entity."""

    entity_type: str
    entity_id: int
    strategy: str
    translation_table: str
    translatable_fields: List[str]
    available_locales: List[str]
    supported_locales: List[str]
    completeness_percentage: float
    recommendations: List[str]
