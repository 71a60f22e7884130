# File: shadow_translate/query/compiler.py
"""
Compile QueryPlans to SQLAlchemy Select statements.

Every field reference is resolved to a column of an aliased table, so the
generated SQL is always alias-qualified and never ambiguous, whatever
other tables are joined in.
"""

import logging
from typing import Dict, Optional

from sqlalchemy import and_, literal_column, not_, or_, select
from sqlalchemy.sql.expression import ColumnElement, FromClause

from shadow_translate.core.exceptions import QueryException, UnknownFieldException
from shadow_translate.core.utils import split_reference
from shadow_translate.db.associations import AssociationType
from shadow_translate.query.conditions import And, Clause, Condition, Not, Or
from shadow_translate.query.plan import QueryPlan

logger = logging.getLogger(__name__)


class ReferenceResolver:
    """
    Maps "field" / "Alias.field" references to aliased columns.

    Attributes:
        primary_alias: Alias of the main table
        main: Aliased main table
        froms: Alias -> aliased selectable, for the main table and every join
    """

    def __init__(self, primary_alias: str, main: FromClause, plan: Optional[QueryPlan] = None):
        self.primary_alias = primary_alias
        self.main = main
        self.froms: Dict[str, FromClause] = {primary_alias: main}
        self.plan = plan
        if plan is not None:
            for join in plan.joins:
                self.froms[join.alias] = join.table.alias(join.alias)

    def alias(self, name: str) -> FromClause:
        try:
            return self.froms[name]
        except KeyError:
            raise QueryException(f"Alias '{name}' is not part of this query", {"alias": name})

    def _is_primary(self, alias: Optional[str]) -> bool:
        return alias is None or alias == self.primary_alias

    def column(self, reference: str) -> ColumnElement:
        """Raw column for a reference, as stored in its own table."""
        alias, name = split_reference(reference)
        if self._is_primary(alias):
            if name in self.main.c:
                return self.main.c[name]
            # Virtual field: only the joined translation provides it
            builder = self.plan.field_expression(name) if self.plan is not None else None
            if builder is not None:
                return builder(self)
            raise UnknownFieldException(self.primary_alias, name)
        if alias in self.froms:
            target = self.froms[alias]
            if name not in target.c:
                raise UnknownFieldException(alias, name)
            return target.c[name]
        # Alias unknown to this query; left to the database to resolve
        return literal_column(reference)

    def filter_column(self, reference: str) -> ColumnElement:
        """Expression used for a reference in filters and ordering."""
        alias, name = split_reference(reference)
        if self._is_primary(alias) and self.plan is not None:
            builder = self.plan.field_expression(name)
            if builder is not None:
                return builder(self)
        return self.column(reference)

    def label_for(self, reference: str) -> str:
        alias, name = split_reference(reference)
        if self._is_primary(alias):
            return name
        return f"{alias}__{name}"


def compile_clause(clause: Clause, resolver: ReferenceResolver) -> ColumnElement:
    """Compile a predicate tree against the resolver's tables."""
    if isinstance(clause, And):
        return and_(*[compile_clause(c, resolver) for c in clause.clauses])
    if isinstance(clause, Or):
        return or_(*[compile_clause(c, resolver) for c in clause.clauses])
    if isinstance(clause, Not):
        return not_(compile_clause(clause.clause, resolver))
    if not isinstance(clause, Condition):
        raise QueryException(f"Unsupported clause type {type(clause).__name__}")

    column = resolver.filter_column(clause.field)
    op, value = clause.op, clause.value
    if op == "=":
        return column.is_(None) if value is None else column == value
    if op == "!=":
        return column.is_not(None) if value is None else column != value
    if op == "<":
        return column < value
    if op == "<=":
        return column <= value
    if op == ">":
        return column > value
    if op == ">=":
        return column >= value
    if op == "in":
        return column.in_(value)
    if op == "not in":
        return column.not_in(value)
    if op == "like":
        return column.like(value)
    if op == "not like":
        return column.not_like(value)
    if op == "is":
        return column.is_(value)
    return column.is_not(value)


def compile_plan(plan: QueryPlan, for_count: bool = False):
    """
    Build the Select for a prepared plan.

    Args:
        plan: The plan; behaviors must already have run
        for_count: Skip ordering, paging and association columns

    Returns:
        SQLAlchemy Select
    """
    repository = plan.repository
    main = repository.table.alias(repository.alias)
    resolver = ReferenceResolver(repository.alias, main, plan)

    columns = []
    selected = plan.selected_fields()
    if selected:
        seen = set()
        for ref in selected:
            label = resolver.label_for(ref)
            if label in seen:
                continue
            seen.add(label)
            columns.append(resolver.column(ref).label(label))
        if any(spec for spec in plan.contained() if _is_collection(repository, spec.name)):
            pk = repository.primary_key
            if pk not in seen:
                columns.append(main.c[pk].label(pk))
    else:
        columns = [c.label(c.name) for c in main.c]
        if not for_count:
            for spec in plan.contained():
                association = repository.associations().get(spec.name)
                if association is None or association.is_collection:
                    continue
                target = resolver.alias(spec.name)
                columns.extend(c.label(f"{spec.name}__{c.name}") for c in target.c)

    if not for_count:
        for label, builder in plan.extra_columns():
            columns.append(builder(resolver).label(label))

    from_clause = main
    for join in plan.joins:
        target = resolver.froms[join.alias]
        from_clause = from_clause.join(target, join.on(main, target), isouter=join.outer)

    stmt = select(*columns).select_from(from_clause)
    for clause in plan.clauses():
        stmt = stmt.where(compile_clause(clause, resolver))

    if not for_count:
        for ref, direction in plan.ordering():
            column = resolver.filter_column(ref)
            stmt = stmt.order_by(column.desc() if direction == "desc" else column.asc())
        if plan.get_limit() is not None:
            stmt = stmt.limit(plan.get_limit())
        if plan.get_offset() is not None:
            stmt = stmt.offset(plan.get_offset())

    logger.debug(f"Compiled plan for {repository.alias} with joins {[j.alias for j in plan.joins]}")
    return stmt


def _is_collection(repository, name: str) -> bool:
    association = repository.associations().get(name)
    return association is not None and association.kind == AssociationType.HAS_MANY
