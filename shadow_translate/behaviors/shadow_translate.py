# File: shadow_translate/behaviors/shadow_translate.py

"""
Shadow table translation behavior.

Translated values live in a parallel table with one row per record and
locale, mirroring the translatable columns of the main table. Queries in a
non-default locale join that table once and overlay its values; the
"translations" finder loads every locale of each record instead.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional

from pydantic import ValidationError
from sqlalchemy import Table

from shadow_translate.behaviors.aliases import derive_aliases
from shadow_translate.behaviors.analyzer import needs_join
from shadow_translate.behaviors.base import Behavior, register_behavior
from shadow_translate.behaviors.fields import FieldResolver
from shadow_translate.behaviors.rewriter import (
    attach_translation_join,
    attach_translations_collection,
)
from shadow_translate.core.config import settings
from shadow_translate.core.exceptions import ConfigurationException
from shadow_translate.core.utils import split_reference, underscore
from shadow_translate.db.associations import Association, AssociationType
from shadow_translate.db.entity import Entity
from shadow_translate.query.plan import QueryPlan
from shadow_translate.schemas.behavior_config import BehaviorConfig, TranslateOptions

logger = logging.getLogger(__name__)


@register_behavior
class ShadowTranslateBehavior(Behavior):
    """
    Translate a repository's records through a shadow table.

    Options (snake_case or camelCase):
        fields: Translated fields; default is every column the main and
            translation tables share, apart from the key columns
        translation_table: Name of the translation table
        translation_table_alias: Alias of the translation table
        has_one_alias / has_many_alias: Association aliases
        reference_name: Name the main table is known by
        allow_empty_translations: Honor blank translations (default True)
        default_locale: Locale stored in the main table
    """

    name = "ShadowTranslate"
    role = "translate"
    aliases = ("Translate",)
    finders = {"translations": "find_translations"}

    def __init__(self, repository, **options: Any):
        super().__init__(repository, **options)
        try:
            parsed = TranslateOptions(**options)
        except ValidationError as e:
            errors = [
                f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
            ]
            raise ConfigurationException(
                f"Invalid options for {self.name} on {repository.alias}",
                details={"errors": errors},
            )

        aliases = derive_aliases(
            repository.alias,
            parsed.reference_name,
            repository.table.name,
            parsed.overrides(),
        )
        self._config = BehaviorConfig(
            **aliases,
            fields=parsed.fields,
            default_locale=parsed.default_locale,
            allow_empty_translations=parsed.allow_empty_translations,
            foreign_key=parsed.foreign_key,
            locale_field=parsed.locale_field,
            strategy=self.name,
        )
        self._resolver = FieldResolver(
            repository.inspector,
            repository.table.name,
            lambda: self.translation_table().name,
            parsed.fields,
            (parsed.foreign_key, parsed.locale_field),
        )
        self._locale: Optional[str] = None
        self._table: Optional[Table] = None
        self._translations = None
        self._pending: Dict[int, Dict[str, Any]] = {}

    def initialize(self) -> None:
        """Register the current-locale and all-locales associations."""
        config = self._config
        associations = self.repository.associations()
        pk = self.repository.primary_key
        associations.add(
            Association(
                config.has_one_alias,
                AssociationType.HAS_ONE,
                self.translation_table,
                foreign_key=config.foreign_key,
                binding_key=pk,
                property_name="translation",
            ),
            replace=True,
        )
        associations.add(
            Association(
                config.has_many_alias,
                AssociationType.HAS_MANY,
                self.translation_table,
                foreign_key=config.foreign_key,
                binding_key=pk,
                property_name="_translations",
                index_by=config.locale_field,
            ),
            replace=True,
        )
        logger.debug(
            f"{config.main_table_alias}: translations via {config.translation_table} "
            f"as {config.has_one_alias}/{config.has_many_alias}"
        )

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    def config(self, key: Optional[str] = None) -> Any:
        config = self.get_config()
        if key is None:
            return config
        return getattr(config, key)

    def get_config(self) -> BehaviorConfig:
        """Configuration, with the field list filled in once it is resolved."""
        if self._resolver.resolved:
            return self._config.model_copy(update={"fields": self._resolver.fields()})
        return self._config

    def fields(self) -> List[str]:
        """Translated fields, introspecting the schemas on first call."""
        return self._resolver.fields()

    def shadow_fields(self) -> List[str]:
        return self._resolver.shadow_fields()

    def overlay_fields(self) -> List[str]:
        """
        Fields the current-locale join provides.

        An explicit field list is used as is; derived fields also bring in the
        translation-only columns.
        """
        if self._config.fields:
            return self.fields()
        return list(dict.fromkeys(self.fields() + self.shadow_fields()))

    def translation_table(self) -> Table:
        """
        The translation Table, looked up on first use.

        The configured name is tried as given and as a table name
        ("ArticlesTranslations" -> "articles_translations").

        Raises:
            ConfigurationException: If no such table exists
        """
        if self._table is None:
            inspector = self.repository.inspector
            name = self._config.translation_table
            for candidate in dict.fromkeys([name, underscore(name)]):
                if inspector.has_table(candidate):
                    self._table = inspector.reflect(candidate)
                    break
            else:
                raise ConfigurationException(
                    f"Translation table '{name}' for {self._config.main_table_alias} not found",
                    option="translation_table",
                    details={"tried": [name, underscore(name)]},
                )
        return self._table

    def translations(self):
        """Repository over the translation table."""
        if self._translations is None:
            from shadow_translate.repositories.shadow_translation_repository import (
                ShadowTranslationRepository,
            )

            self._translations = ShadowTranslationRepository(
                self.repository.session,
                self.translation_table(),
                alias=self._config.translation_table_alias,
                inspector=self.repository.inspector,
                foreign_key=self._config.foreign_key,
                locale_field=self._config.locale_field,
            )
        return self._translations

    # ------------------------------------------------------------------
    # Locale
    # ------------------------------------------------------------------

    def set_locale(self, locale: Optional[str]) -> None:
        """Set the locale for subsequent queries and saves; None resets it."""
        self._locale = locale

    def locale(self) -> str:
        return self._locale or self._config.default_locale

    def is_default_locale(self, locale: Optional[str] = None) -> bool:
        return (locale or self.locale()) == self._config.default_locale

    def translation_field(self, field_name: str) -> str:
        """
        Reference to use for a translated field in custom conditions.

        The main-table reference is returned in every locale: outside the
        default locale it triggers the translation join and compiles to the
        same fallback expression the results show.
        """
        return f"{self._config.main_table_alias}.{field_name}"

    # ------------------------------------------------------------------
    # Hooks
    # ------------------------------------------------------------------

    def before_find(self, plan: QueryPlan) -> None:
        locale = self.locale()
        if self.is_default_locale(locale):
            logger.debug(f"{plan.repository.alias}: default locale {locale}, no translation join")
            return

        if self._references_translation_alias(plan) or needs_join(
            plan, plan.repository.alias, self.overlay_fields
        ):
            attach_translation_join(plan, self, locale)
        else:
            logger.debug(f"{plan.repository.alias}: no translated field referenced")

    def find_translations(self, plan: QueryPlan, locales: Optional[Iterable[str]] = None) -> QueryPlan:
        """Finder loading every translation of each record into "_translations"."""
        return attach_translations_collection(plan, self, locales)

    def before_save(self, entity: Entity) -> None:
        pending: Dict[str, Any] = {}

        if not self.is_default_locale():
            fields = self.fields()
            values = {name: entity.get(name) for name in fields if entity.is_dirty(name)}
            if values:
                pending["values"] = values
                pending["locale"] = self.locale()
                if not entity.is_new():
                    # Existing records keep their default-locale values
                    for name in values:
                        entity.set_dirty(name, False)
                    pending["cleaned"] = list(values)

        bundle = entity.get("_translations")
        if bundle and (entity.is_dirty("_translations") or _has_dirty_records(bundle)):
            pending["bundle"] = bundle

        if pending:
            self._pending[id(entity)] = pending

    def after_save(self, entity: Entity) -> None:
        pending = self._pending.get(id(entity))
        if not pending:
            return

        entity_id = entity.get(self.repository.primary_key)
        repository = self.translations()
        shadow = set(self.shadow_fields())

        if "values" in pending:
            values = {k: v for k, v in pending["values"].items() if k in shadow}
            repository.upsert_translation(entity_id, pending["locale"], values)

        for locale, record in pending.get("bundle", {}).items():
            if self.is_default_locale(locale):
                continue
            source = record.to_dict() if isinstance(record, Entity) else dict(record)
            values = {k: v for k, v in source.items() if k in shadow}
            repository.upsert_translation(entity_id, locale, values)

        del self._pending[id(entity)]
        for record in pending.get("bundle", {}).values():
            if isinstance(record, Entity):
                record.clean()
        if settings.LOG_TRANSLATION_OPERATIONS:
            logger.info(f"Saved translations of {self._config.reference_name} #{entity_id}")

    def save_failed(self, entity: Entity) -> None:
        """Drop the stashed translations of a failed save and restore its changes."""
        pending = self._pending.pop(id(entity), None)
        if not pending:
            return
        for name in pending.get("cleaned", []):
            entity.set_dirty(name, True)
        logger.debug(f"Discarded pending translations of {self._config.reference_name}")

    def before_delete(self, entity: Entity) -> None:
        entity_id = entity.get(self.repository.primary_key)
        deleted = self.translations().delete_translations_for_entity(entity_id)
        if settings.LOG_TRANSLATION_OPERATIONS:
            logger.info(
                f"Deleting {self._config.reference_name} #{entity_id} "
                f"with {deleted} translation(s)"
            )

    # ------------------------------------------------------------------

    def _references_translation_alias(self, plan: QueryPlan) -> bool:
        references = plan.selected_fields() + plan.condition_fields() + plan.order_fields()
        alias = self._config.has_one_alias
        return any(split_reference(ref)[0] == alias for ref in references)

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} {self._config.main_table_alias} locale={self.locale()}>"


def _has_dirty_records(bundle: Any) -> bool:
    if not isinstance(bundle, dict):
        return False
    return any(isinstance(r, Entity) and r.is_dirty() for r in bundle.values())
