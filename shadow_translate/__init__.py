"""
shadow-translate: per-locale translated fields through shadow tables.

A shadow table holds one row per (record, locale) with the translated
columns of its main table. Attach the behavior to a repository, pick a
locale, and queries transparently read translated values.
"""

from shadow_translate.behaviors.shadow_translate import ShadowTranslateBehavior
from shadow_translate.core.exceptions import (
    BehaviorConflictException,
    ConfigurationException,
    DatabaseException,
    EntityNotFoundException,
    QueryException,
    ShadowTranslateException,
    ValidationException,
)
from shadow_translate.db.entity import Entity
from shadow_translate.db.models import make_translation_table
from shadow_translate.repositories.repository_factory import RepositoryFactory
from shadow_translate.repositories.translatable_repository import TranslatableRepository
from shadow_translate.services.localization_service import LocalizationService

__version__ = "0.1.0"

__all__ = [
    "BehaviorConflictException",
    "ConfigurationException",
    "DatabaseException",
    "Entity",
    "EntityNotFoundException",
    "LocalizationService",
    "QueryException",
    "RepositoryFactory",
    "ShadowTranslateBehavior",
    "ShadowTranslateException",
    "TranslatableRepository",
    "ValidationException",
    "make_translation_table",
]
