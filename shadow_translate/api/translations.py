# File: shadow_translate/api/translations.py

"""
Translation API Endpoints

Read entities in a locale, list and store their shadow-table translations,
and report translation coverage. Mount the router under a prefix of the
host application's choosing.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Path, Query, status

from shadow_translate.api import deps
from shadow_translate.core.exceptions import (
    DatabaseException,
    EntityNotFoundException,
    ValidationException,
)
from shadow_translate.schemas.translation_api import (
    EntityTranslationsResponse,
    LocalizedEntityResponse,
    TranslationValidationResponse,
    TranslationValuesRequest,
)
from shadow_translate.services.localization_service import LocalizationService

logger = logging.getLogger(__name__)
router = APIRouter()


# System Configuration Endpoints
@router.get("/locales", response_model=List[str])
def get_supported_locales(
        localization_service: LocalizationService = Depends(deps.get_localization_service)
):
    """
    Get list of supported locales, default locale first.
    """
    return localization_service.get_supported_locales()


@router.get("/entity-types", response_model=List[str])
def get_supported_entity_types(
        localization_service: LocalizationService = Depends(deps.get_localization_service)
):
    """
    Get list of entity types configured for translation.
    """
    return localization_service.get_supported_entity_types()


@router.get("/entity-types/{entity_type}/fields", response_model=List[str])
def get_translatable_fields(
        entity_type: str = Path(..., description="Entity type (e.g., 'articles')"),
        localization_service: LocalizationService = Depends(deps.get_localization_service)
):
    """
    Get the translated fields of an entity type.
    """
    try:
        return localization_service.get_translatable_fields(entity_type)
    except ValidationException as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


# Entity Endpoints
@router.get("/{entity_type}/{entity_id}", response_model=LocalizedEntityResponse)
def get_localized_entity(
        entity_type: str = Path(..., description="Entity type"),
        entity_id: int = Path(..., description="Entity ID", gt=0),
        locale: Optional[str] = Query(None, description="Locale code; default locale if omitted"),
        localization_service: LocalizationService = Depends(deps.get_localization_service)
):
    """
    Get an entity with its translated fields in the requested locale.

    Fields without a translation fall back to the entity's own values.
    """
    try:
        entity = localization_service.translate_entity(entity_type, entity_id, locale)
        data = entity.to_dict()
        resolved_locale = data.pop("_locale", None)
        return LocalizedEntityResponse(
            entity_type=entity_type,
            entity_id=entity_id,
            locale=locale or localization_service.default_locale,
            translated=resolved_locale is not None,
            data=data,
        )
    except ValidationException as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except EntityNotFoundException as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except DatabaseException as e:
        logger.error(f"Error reading {entity_type}#{entity_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to retrieve entity"
        )


@router.get("/{entity_type}/{entity_id}/translations", response_model=EntityTranslationsResponse)
def get_entity_translations(
        entity_type: str = Path(..., description="Entity type"),
        entity_id: int = Path(..., description="Entity ID", gt=0),
        locales: Optional[List[str]] = Query(None, description="Only these locales"),
        localization_service: LocalizationService = Depends(deps.get_localization_service)
):
    """
    Get all stored translations of an entity, keyed by locale.
    """
    try:
        translations = localization_service.get_translations(entity_type, entity_id, locales)
        return EntityTranslationsResponse(
            entity_type=entity_type,
            entity_id=entity_id,
            translations=translations,
            available_locales=sorted(translations),
        )
    except ValidationException as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except DatabaseException as e:
        logger.error(f"Error getting translations for {entity_type}#{entity_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to retrieve translations"
        )


@router.put("/{entity_type}/{entity_id}/translations/{locale}")
def set_entity_translation(
        entity_type: str = Path(..., description="Entity type"),
        entity_id: int = Path(..., description="Entity ID", gt=0),
        locale: str = Path(..., description="Locale code"),
        request: TranslationValuesRequest = Body(...),
        localization_service: LocalizationService = Depends(deps.get_localization_service)
):
    """
    Create or update the translation of an entity in one locale.
    """
    try:
        return localization_service.set_translation(entity_type, entity_id, locale, request.values)
    except ValidationException as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except EntityNotFoundException as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except DatabaseException as e:
        logger.error(f"Error storing translation for {entity_type}#{entity_id} [{locale}]: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to store translation"
        )


@router.get("/{entity_type}/{entity_id}/validation", response_model=TranslationValidationResponse)
def validate_entity_translations(
        entity_type: str = Path(..., description="Entity type"),
        entity_id: int = Path(..., description="Entity ID", gt=0),
        localization_service: LocalizationService = Depends(deps.get_localization_service)
):
    """
    Report which locales and fields of an entity are translated.
    """
    try:
        return localization_service.validate_entity_translation_setup(entity_type, entity_id)
    except ValidationException as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
