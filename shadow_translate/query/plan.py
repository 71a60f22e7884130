# File: shadow_translate/query/plan.py
"""
Query plans.

A QueryPlan collects the projection, filters, ordering and associations of
a find() against one repository. Behaviors get a chance to rewrite the plan
(``before_find``) right before it is compiled to a SQLAlchemy Select, which
happens at most once per plan.
"""

import logging
from dataclasses import dataclass, field
from typing import (
    TYPE_CHECKING,
    Any,
    Callable,
    Dict,
    Iterator,
    List,
    Mapping,
    Optional,
    Tuple,
    Union,
)

from sqlalchemy import Table, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.sql.expression import ColumnElement, FromClause

from shadow_translate.core.exceptions import DatabaseException, EntityNotFoundException
from shadow_translate.core.utils import split_reference
from shadow_translate.query.conditions import Clause, condition_fields, parse_conditions

if TYPE_CHECKING:
    from shadow_translate.query.compiler import ReferenceResolver
    from shadow_translate.repositories.base_repository import BaseRepository

logger = logging.getLogger(__name__)

ColumnBuilder = Callable[["ReferenceResolver"], ColumnElement]
RowFormatter = Callable[[Dict[str, Any]], Dict[str, Any]]


@dataclass
class JoinSpec:
    """
    A table joined into the main query.

    Attributes:
        alias: Alias of the joined table inside the query
        table: The joined Table
        on: Builds the ON clause from (aliased source, aliased target)
        outer: LEFT OUTER join when True, INNER otherwise
        association: Name of the association this join came from, if any
    """

    alias: str
    table: Table
    on: Callable[[FromClause, FromClause], ColumnElement]
    outer: bool = True
    association: Optional[str] = None

    @property
    def join_type(self) -> str:
        return "LEFT" if self.outer else "INNER"


@dataclass
class ContainSpec:
    """An association requested with contain(), with optional filters on it."""

    name: str
    clauses: List[Clause] = field(default_factory=list)


class QueryPlan:
    """
    Fluent, mutable description of a query against one repository.

    Example:
        plan = repo.find().select("id", "title").where({"title": "First"}).order_by("-id")
        rows = plan.all()
    """

    def __init__(self, repository: "BaseRepository", finder: str = "all", **options):
        self.repository = repository
        self.finder = finder
        self.options = options
        self._fields: List[str] = []
        self._clauses: List[Clause] = []
        self._order: List[Tuple[str, str]] = []
        self._contain: Dict[str, ContainSpec] = {}
        self._joins: Dict[str, JoinSpec] = {}
        self._extra_columns: List[Tuple[str, ColumnBuilder]] = []
        self._field_expressions: Dict[str, ColumnBuilder] = {}
        self._formatters: List[RowFormatter] = []
        self._hydrate = True
        self._limit: Optional[int] = None
        self._offset: Optional[int] = None
        self._prepared = False

    # ------------------------------------------------------------------
    # Building
    # ------------------------------------------------------------------

    def select(self, *fields: str) -> "QueryPlan":
        """Add field references to the projection. No fields means all fields."""
        for ref in fields:
            if isinstance(ref, (list, tuple)):
                self._fields.extend(ref)
            else:
                self._fields.append(ref)
        return self

    def where(self, *conditions: Union[Clause, Mapping[str, Any]], **equals: Any) -> "QueryPlan":
        """
        Add filter conditions; all of them must hold.

        Accepts Clause objects, mappings of "field [op]" to value, and
        keyword equality filters.
        """
        for condition in conditions:
            self._clauses.extend(parse_conditions(condition))
        if equals:
            self._clauses.extend(parse_conditions(equals))
        return self

    def order_by(self, *fields: Union[str, Mapping[str, str]]) -> "QueryPlan":
        """
        Add ordering. "title" sorts ascending, "-title" descending; a mapping
        of field to "asc"/"desc" is accepted too.
        """
        for entry in fields:
            if isinstance(entry, Mapping):
                for ref, direction in entry.items():
                    self._order.append((ref, direction.lower()))
            elif entry.startswith("-"):
                self._order.append((entry[1:], "desc"))
            else:
                self._order.append((entry, "asc"))
        return self

    def contain(self, *associations: str, **filters: List[Clause]) -> "QueryPlan":
        """
        Load associated data alongside the results.

        Keyword arguments name an association and give extra filters for it.
        """
        for name in list(associations) + list(filters):
            spec = self._contain.setdefault(name, ContainSpec(name))
            if name in filters:
                spec.clauses.extend(filters[name])
        return self

    def hydrate(self, enabled: bool = True) -> "QueryPlan":
        """Return Entity objects (default) or plain dictionaries."""
        self._hydrate = enabled
        return self

    def limit(self, limit: Optional[int]) -> "QueryPlan":
        self._limit = limit
        return self

    def offset(self, offset: Optional[int]) -> "QueryPlan":
        self._offset = offset
        return self

    # ------------------------------------------------------------------
    # Hooks used by behaviors
    # ------------------------------------------------------------------

    def add_join(self, join: JoinSpec, replace: bool = True) -> JoinSpec:
        """Attach a join, reusing an existing join with the same alias."""
        if join.alias in self._joins and not replace:
            return self._joins[join.alias]
        self._joins[join.alias] = join
        return join

    def add_column(self, label: str, builder: ColumnBuilder) -> None:
        """Select an extra expression under the given label."""
        self._extra_columns = [c for c in self._extra_columns if c[0] != label]
        self._extra_columns.append((label, builder))

    def set_field_expression(self, field_name: str, builder: ColumnBuilder) -> None:
        """Compile references to a primary field in filters/ordering with this expression."""
        self._field_expressions[field_name] = builder

    def add_formatter(self, formatter: RowFormatter) -> None:
        """Post-process each raw result row before hydration."""
        self._formatters.append(formatter)

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def selected_fields(self) -> List[str]:
        return list(self._fields)

    def clauses(self) -> List[Clause]:
        return list(self._clauses)

    def condition_fields(self) -> List[str]:
        return condition_fields(self._clauses)

    def ordering(self) -> List[Tuple[str, str]]:
        return list(self._order)

    def order_fields(self) -> List[str]:
        return [ref for ref, _ in self._order]

    def contained(self) -> List[ContainSpec]:
        return list(self._contain.values())

    @property
    def joins(self) -> List[JoinSpec]:
        return list(self._joins.values())

    def get_join(self, alias: str) -> Optional[JoinSpec]:
        return self._joins.get(alias)

    def has_join(self, alias: str) -> bool:
        """Whether a join with this alias is part of the prepared plan."""
        self.prepare()
        return alias in self._joins

    def joined_tables(self) -> List[str]:
        """SQL names of every joined table, one entry per join."""
        self.prepare()
        return [join.table.name for join in self._joins.values()]

    def extra_columns(self) -> List[Tuple[str, ColumnBuilder]]:
        return list(self._extra_columns)

    def field_expression(self, field_name: str) -> Optional[ColumnBuilder]:
        return self._field_expressions.get(field_name)

    def formatters(self) -> List[RowFormatter]:
        return list(self._formatters)

    def is_hydrated(self) -> bool:
        return self._hydrate

    def get_limit(self) -> Optional[int]:
        return self._limit

    def get_offset(self) -> Optional[int]:
        return self._offset

    def is_prepared(self) -> bool:
        return self._prepared

    # ------------------------------------------------------------------
    # Compilation and execution
    # ------------------------------------------------------------------

    def prepare(self) -> "QueryPlan":
        """
        Give the repository and its behaviors their one chance to rewrite
        the plan. Safe to call repeatedly.
        """
        if not self._prepared:
            self._prepared = True
            self.repository.prepare_plan(self)
        return self

    def to_select(self, for_count: bool = False):
        """Compile the plan to a SQLAlchemy Select."""
        from shadow_translate.query.compiler import compile_plan

        self.prepare()
        return compile_plan(self, for_count=for_count)

    def sql(self) -> str:
        """SQL text of the compiled plan, for diagnostics."""
        stmt = self.to_select()
        bind = self.repository.session.get_bind()
        return str(stmt.compile(dialect=bind.dialect))

    def all(self) -> List[Any]:
        """Execute and return every result (Entity objects or dicts)."""
        stmt = self.to_select()
        session = self.repository.session
        try:
            rows = [dict(row._mapping) for row in session.execute(stmt)]
        except SQLAlchemyError as e:
            logger.error(f"Database error executing find on {self.repository.alias}: {e}", exc_info=True)
            raise DatabaseException(
                f"Failed to execute query: {str(e)}",
                query=str(stmt),
                entity_type=self.repository.alias,
            )

        for formatter in self._formatters:
            rows = [formatter(row) for row in rows]
        rows = [self.repository.nest_associations(row, self) for row in rows]
        self.repository.load_collections(rows, self)

        if not self._hydrate:
            return rows
        return [self.repository.hydrate_row(row) for row in rows]

    def __iter__(self) -> Iterator[Any]:
        return iter(self.all())

    def first(self) -> Optional[Any]:
        """Execute with LIMIT 1 and return the first result or None."""
        self._limit = 1
        results = self.all()
        return results[0] if results else None

    def first_or_fail(self) -> Any:
        """
        Like first(), but a missing record is an error.

        Raises:
            EntityNotFoundException: If nothing matches
        """
        result = self.first()
        if result is None:
            raise EntityNotFoundException(self.repository.alias)
        return result

    def count(self) -> int:
        """Number of records matching the filters."""
        inner = self.to_select(for_count=True).subquery()
        stmt = select(func.count()).select_from(inner)
        try:
            return self.repository.session.execute(stmt).scalar_one()
        except SQLAlchemyError as e:
            logger.error(f"Database error counting {self.repository.alias}: {e}", exc_info=True)
            raise DatabaseException(f"Failed to count records: {str(e)}", query=str(stmt))

    def combine(self, key_field: str, value_field: str, group_field: Optional[str] = None) -> Dict[Any, Any]:
        """
        Index results by one field, mapping to another; optionally grouped.

        combine("title", "subtitle", "id") -> {1: {"Title #1": "SubTitle #1"}, ...}
        """
        result: Dict[Any, Any] = {}
        for row in self.all():
            key = _read(row, key_field)
            value = _read(row, value_field)
            if group_field is None:
                result[key] = value
            else:
                result.setdefault(_read(row, group_field), {})[key] = value
        return result

    def __repr__(self) -> str:
        return (
            f"<QueryPlan {self.repository.alias} finder={self.finder} "
            f"select={self._fields} joins={list(self._joins)}>"
        )


def _read(row: Any, reference: str) -> Any:
    _, name = split_reference(reference)
    return row.get(name)
