# File: shadow_translate/behaviors/analyzer.py
"""
Decide whether a query needs the translation join.

A join is needed when the query selects all fields, or when its
projection, filters or ordering reference a translated field of the main
table. References qualified with another table's alias never count.
"""

import logging
from typing import Callable, Iterable, List, Set, Union

from shadow_translate.core.utils import split_reference
from shadow_translate.query.plan import QueryPlan

logger = logging.getLogger(__name__)

FieldSource = Union[Iterable[str], Callable[[], Iterable[str]]]


def references_field(reference: str, primary_alias: str, field_name: str) -> bool:
    """True for "field" and "<primary_alias>.field", False for "<other>.field"."""
    alias, name = split_reference(reference)
    return name == field_name and (alias is None or alias == primary_alias)


def primary_references(references: Iterable[str], primary_alias: str) -> List[str]:
    """Field names of the references that point at the main table."""
    result = []
    for reference in references:
        alias, name = split_reference(reference)
        if alias is None or alias == primary_alias:
            result.append(name)
    return result


def referenced_fields(plan: QueryPlan, primary_alias: str) -> Set[str]:
    """Main-table fields referenced anywhere in the plan's select, where or order."""
    references = plan.selected_fields() + plan.condition_fields() + plan.order_fields()
    return set(primary_references(references, primary_alias))


def needs_join(plan: QueryPlan, primary_alias: str, fields: FieldSource) -> bool:
    """
    Whether the plan needs translated values.

    Args:
        plan: The query plan
        primary_alias: Current alias of the main table
        fields: Translated field names, or a callable producing them; the
            callable is only invoked if the plan references a main-table field

    Returns:
        True if the translation join must be attached
    """
    if not plan.selected_fields():
        logger.debug(f"{primary_alias}: select all, translation join needed")
        return True

    referenced = referenced_fields(plan, primary_alias)
    if not referenced:
        return False

    translated = set(fields() if callable(fields) else fields)
    hits = referenced & translated
    if hits:
        logger.debug(f"{primary_alias}: translated fields referenced: {sorted(hits)}")
    return bool(hits)
