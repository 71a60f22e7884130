# File: shadow_translate/repositories/translatable_repository.py

"""
Repository with a translation capability.

TranslatableRepository is the explicit interface callers use for translated
tables: attach a strategy, choose the locale, then find in the current
locale or load all translations.
"""

from typing import Any, Iterable, List, Optional

from shadow_translate.behaviors.base import Behavior
from shadow_translate.core.exceptions import ConfigurationException
from shadow_translate.query.plan import QueryPlan
from shadow_translate.repositories.base_repository import BaseRepository
from shadow_translate.schemas.behavior_config import BehaviorConfig

TRANSLATE_ROLE = "translate"


class TranslatableRepository(BaseRepository):
    """
    Repository whose records can be read and written per locale.

    Example:
        repo = TranslatableRepository(session, articles, translate={"fields": ["title", "body"]})
        repo.set_locale("de_DE")
        repo.find().where({"title like": "%Haus%"}).all()
    """

    def __init__(self, session, table, alias: Optional[str] = None, inspector=None, translate=None):
        super().__init__(session, table, alias=alias, inspector=inspector)
        if translate is not None:
            self.attach_translations(**(translate if isinstance(translate, dict) else {}))

    def attach_translations(self, strategy: str = "Translate", **options: Any) -> Behavior:
        """Attach a translation behavior ("Translate" resolves to ShadowTranslate)."""
        return self.add_behavior(strategy, **options)

    def translation_behavior(self) -> Behavior:
        """
        The attached translation behavior.

        Raises:
            ConfigurationException: If none is attached
        """
        name = self._behaviors.role(TRANSLATE_ROLE)
        if name is None:
            raise ConfigurationException(f"{self.alias} has no translation behavior attached")
        return self._behaviors.get(name)

    def translation_strategy(self) -> Optional[str]:
        """Name of the active translation strategy, or None."""
        return self._behaviors.role(TRANSLATE_ROLE)

    def set_locale(self, locale: Optional[str]) -> "TranslatableRepository":
        self.translation_behavior().set_locale(locale)
        return self

    def locale(self) -> str:
        return self.translation_behavior().locale()

    def find_translations(self, locales: Optional[Iterable[str]] = None) -> QueryPlan:
        """Query returning each record with all its translations under "_translations"."""
        return self.find("translations", locales=locales)

    def get_config(self) -> BehaviorConfig:
        return self.translation_behavior().get_config()

    def translated_fields(self) -> List[str]:
        return self.translation_behavior().fields()

    def translation_field(self, field_name: str) -> str:
        return self.translation_behavior().translation_field(field_name)
