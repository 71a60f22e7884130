# File: shadow_translate/behaviors/rewriter.py
"""
Query rewriting for shadow translations.

The current-locale view joins the translation table once, as an outer join
restricted to the active locale, and overlays translated values on each row.
The all-locales view loads every translation row of each record as a
collection keyed by locale.
"""

import logging
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Optional

from sqlalchemy import and_, func

from shadow_translate.behaviors.analyzer import references_field
from shadow_translate.behaviors.policy import apply_translation
from shadow_translate.query.conditions import Condition
from shadow_translate.query.plan import ColumnBuilder, JoinSpec, QueryPlan

if TYPE_CHECKING:
    from shadow_translate.behaviors.shadow_translate import ShadowTranslateBehavior

logger = logging.getLogger(__name__)


class TranslationOverlay:
    """
    Row formatter replacing main-table values with translated ones.

    Reads the helper columns "<alias>__<field>" and "<alias>__<locale>",
    removes them, and writes the resolved value under the plain field name.
    """

    def __init__(
        self,
        prefix: str,
        locale_field: str,
        fields: List[str],
        shadow_fields: Iterable[str],
        allow_empty_translations: bool,
    ):
        self.prefix = prefix
        self.locale_field = locale_field
        self.fields = fields
        self.shadow_fields = set(shadow_fields)
        self.allow_empty_translations = allow_empty_translations

    def __call__(self, row: Dict[str, Any]) -> Dict[str, Any]:
        marker = row.pop(f"{self.prefix}__{self.locale_field}", None)
        translated = {name: row.pop(f"{self.prefix}__{name}", None) for name in self.fields}
        apply_translation(
            row,
            translated,
            marker is not None,
            self.fields,
            self.shadow_fields,
            self.allow_empty_translations,
        )
        if marker is not None:
            row["_locale"] = marker
        return row


def translated_expression(
    alias: str, field_name: str, in_main_table: bool, allow_empty_translations: bool
) -> ColumnBuilder:
    """
    Expression giving the same value the overlay would show, for use in
    filters and ordering.
    """

    def build(resolver):
        translated = resolver.alias(alias).c[field_name]
        if not in_main_table:
            return translated
        if not allow_empty_translations:
            translated = func.nullif(translated, "")
        return func.coalesce(translated, resolver.main.c[field_name])

    return build


def _column(alias: str, name: str) -> ColumnBuilder:
    return lambda resolver: resolver.alias(alias).c[name]


def overlay_fields(plan: QueryPlan, candidates: List[str], primary_alias: str) -> List[str]:
    """Fields whose values the overlay must provide for this plan."""
    selected = plan.selected_fields()
    if not selected:
        return list(candidates)
    return [
        name
        for name in candidates
        if any(references_field(ref, primary_alias, name) for ref in selected)
    ]


def attach_translation_join(
    plan: QueryPlan, behavior: "ShadowTranslateBehavior", locale: str
) -> QueryPlan:
    """
    Join the translation table for one locale and overlay its values.

    An existing join under the same alias is replaced, so calling this twice
    still yields a single join.

    Args:
        plan: Plan to rewrite
        behavior: The attached translation behavior
        locale: Active locale

    Returns:
        The same plan
    """
    config = behavior.config()
    repository = plan.repository
    association = repository.associations().get(config.has_one_alias)
    alias = config.has_one_alias
    locale_field = config.locale_field

    def on(source, target):
        return and_(association.join_condition(source, target), target.c[locale_field] == locale)

    plan.add_join(
        JoinSpec(alias, behavior.translation_table(), on, outer=True, association=alias)
    )

    shadow = behavior.shadow_fields()
    candidates = behavior.overlay_fields()
    main_columns = set(repository.table.c.keys())
    for name in candidates:
        plan.set_field_expression(
            name,
            translated_expression(alias, name, name in main_columns, config.allow_empty_translations),
        )

    fields = overlay_fields(plan, candidates, repository.alias)
    if not fields:
        logger.debug(f"{repository.alias}: translation join used for filtering only")
        return plan

    for name in fields:
        if name in shadow:
            plan.add_column(f"{alias}__{name}", _column(alias, name))
    plan.add_column(f"{alias}__{locale_field}", _column(alias, locale_field))
    plan.add_formatter(
        TranslationOverlay(alias, locale_field, fields, shadow, config.allow_empty_translations)
    )

    logger.debug(f"{repository.alias}: joined {alias} for locale {locale}, overlaying {fields}")
    return plan


def attach_translations_collection(
    plan: QueryPlan,
    behavior: "ShadowTranslateBehavior",
    locales: Optional[Iterable[str]] = None,
) -> QueryPlan:
    """
    Load all translations of each record under "_translations".

    Args:
        plan: Plan to rewrite
        behavior: The attached translation behavior
        locales: Restrict to these locales; all locales when None

    Returns:
        The same plan
    """
    config = behavior.config()
    filters = [Condition(config.locale_field, "in", list(locales))] if locales else []
    plan.contain(**{config.has_many_alias: filters})
    return plan
