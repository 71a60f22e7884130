# File: shadow_translate/services/localization_service.py

"""
Request-scoped localization.

The service holds the translatable repositories of one request or unit of
work, applies a single validated locale to all of them, and offers
entity-level translation helpers on top of the repositories' shadow tables.
"""

import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterable, Iterator, List, Optional

from shadow_translate.core.config import settings
from shadow_translate.core.exceptions import ValidationException
from shadow_translate.db.entity import Entity
from shadow_translate.repositories.translatable_repository import TranslatableRepository

logger = logging.getLogger(__name__)


class LocalizationService:
    """
    Service applying one locale across many translatable repositories.

    Entity types are registered explicitly, so every caller works with the
    repositories it created for its own session.
    """

    def __init__(
        self,
        repositories: Optional[Dict[str, TranslatableRepository]] = None,
        default_locale: Optional[str] = None,
        supported_locales: Optional[List[str]] = None,
    ):
        """
        Initialize the LocalizationService.

        Args:
            repositories: Entity type -> repository
            default_locale: Locale stored in the main tables (default: DEFAULT_LOCALE)
            supported_locales: Accepted locales; empty accepts any (default: SUPPORTED_LOCALES)
        """
        self.default_locale = default_locale or settings.DEFAULT_LOCALE
        self.supported_locales = list(
            settings.SUPPORTED_LOCALES if supported_locales is None else supported_locales
        )
        self._repositories: Dict[str, TranslatableRepository] = {}
        self._locale: Optional[str] = None
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")
        for entity_type, repository in (repositories or {}).items():
            self.register(entity_type, repository)

    def register(self, entity_type: str, repository: TranslatableRepository) -> None:
        """
        Make an entity type's repository follow the service's locale.

        Raises:
            ValidationException: If the repository has no translation behavior
        """
        if repository.translation_strategy() is None:
            raise ValidationException(
                f"Repository for '{entity_type}' is not translatable",
                {"entity_type": ["no translation behavior attached"]},
            )
        self._repositories[entity_type] = repository
        if self._locale is not None:
            repository.set_locale(self._locale)

    def get_supported_locales(self) -> List[str]:
        """
        Get list of supported locales, default locale first.

        Returns:
            List of supported locale codes; only the default when unrestricted
        """
        return list(dict.fromkeys([self.default_locale] + self.supported_locales))

    def get_supported_entity_types(self) -> List[str]:
        return list(self._repositories)

    def get_translatable_fields(self, entity_type: str) -> List[str]:
        return self._repository(entity_type).translated_fields()

    def validate_locale(self, locale: str) -> str:
        """
        Check a locale against the supported ones.

        Raises:
            ValidationException: If the locale is empty or not supported
        """
        if not locale or not locale.strip():
            raise ValidationException("Locale cannot be empty", {"locale": ["required"]})
        locale = locale.strip()
        if self.supported_locales and locale not in self.get_supported_locales():
            raise ValidationException(
                f"Unsupported locale: {locale}",
                {"locale": [f"must be one of {self.get_supported_locales()}"]},
            )
        return locale

    def set_locale(self, locale: Optional[str]) -> None:
        """Set the locale of every registered repository; None restores the default."""
        if locale is not None:
            locale = self.validate_locale(locale)
        self._locale = locale
        for repository in self._repositories.values():
            repository.set_locale(locale)
        self.logger.debug(f"Locale set to {self.current_locale()}")

    def current_locale(self) -> str:
        return self._locale or self.default_locale

    @contextmanager
    def use_locale(self, locale: str) -> Iterator["LocalizationService"]:
        """Temporarily switch every registered repository to another locale."""
        previous = self._locale
        self.set_locale(locale)
        try:
            yield self
        finally:
            self.set_locale(previous)

    def translate_entity(self, entity_type: str, entity_id: Any, locale: Optional[str] = None) -> Entity:
        """
        Get an entity with its fields in a locale (default: the current one).

        Raises:
            ValidationException: If the entity type or locale is not supported
            EntityNotFoundException: If the entity does not exist
        """
        repository = self._repository(entity_type)
        if locale is None:
            return repository.get(entity_id)
        with self.use_locale(locale):
            return repository.get(entity_id)

    def get_translations(
        self, entity_type: str, entity_id: Any, locales: Optional[Iterable[str]] = None
    ) -> Dict[str, Dict[str, Any]]:
        """
        Get every stored translation of an entity, keyed by locale.

        Args:
            entity_type: Registered entity type
            entity_id: ID of the entity
            locales: Only these locales, if given

        Returns:
            Dictionary mapping locale to translated field values
        """
        behavior = self._repository(entity_type).translation_behavior()
        fields = behavior.shadow_fields()
        rows = behavior.translations().find_translations_for_entity(entity_id, locales)
        return {locale: {f: row.get(f) for f in fields} for locale, row in rows.items()}

    def set_translation(
        self, entity_type: str, entity_id: Any, locale: str, values: Dict[str, Any]
    ) -> Dict[str, Any]:
        """
        Create or update the translation of an entity in one locale.

        Raises:
            ValidationException: If the locale is the default one, unsupported,
                or a field is not translatable
        """
        locale = self.validate_locale(locale)
        if locale == self.default_locale:
            raise ValidationException(
                "Default-locale values live in the main table; save the entity instead",
                {"locale": ["default locale"]},
            )
        repository = self._repository(entity_type)
        repository.get(entity_id)
        behavior = repository.translation_behavior()
        unknown = [name for name in values if name not in behavior.shadow_fields()]
        if unknown:
            raise ValidationException(
                f"Fields not translatable for '{entity_type}': {unknown}",
                {name: ["not translatable"] for name in unknown},
            )
        return behavior.translations().upsert_translation(entity_id, locale, values)

    def validate_entity_translation_setup(self, entity_type: str, entity_id: Any) -> Dict[str, Any]:
        """
        Report translation coverage of one entity.

        Returns:
            Dictionary containing coverage figures and recommendations
        """
        behavior = self._repository(entity_type).translation_behavior()
        fields = behavior.fields()
        rows = behavior.translations().find_translations_for_entity(entity_id)

        supported = [l for l in self.get_supported_locales() if l != self.default_locale]
        available = sorted(rows)
        filled = sum(
            1 for row in rows.values() for name in fields if row.get(name) not in (None, "")
        )
        total_possible = len(supported) * len(fields)
        completeness = (filled / total_possible * 100) if total_possible > 0 else 0

        recommendations = []
        missing_locales = set(supported) - set(available)
        if missing_locales:
            recommendations.append(f"Add translations for locales: {', '.join(sorted(missing_locales))}")
        if total_possible and completeness < 100:
            recommendations.append(
                f"Translation coverage is {completeness:.1f}% - consider completing all translations"
            )

        return {
            "entity_type": entity_type,
            "entity_id": entity_id,
            "strategy": behavior.name,
            "translation_table": behavior.translation_table().name,
            "translatable_fields": fields,
            "available_locales": available,
            "supported_locales": supported,
            "completeness_percentage": round(completeness, 1),
            "recommendations": recommendations,
        }

    def _repository(self, entity_type: str) -> TranslatableRepository:
        try:
            return self._repositories[entity_type]
        except KeyError:
            raise ValidationException(
                f"Unsupported entity type: {entity_type}",
                {"entity_type": [f"must be one of {self.get_supported_entity_types()}"]},
            )
