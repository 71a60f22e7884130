# File: shadow_translate/db/associations.py
"""
Named associations between repositories.

An association describes how a target table relates to a source table:
the join condition, the property its data is exposed under, and how it is
loaded (joined into the main query or fetched with a second select).
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Iterator, List, Optional, Union

from sqlalchemy import Table, and_
from sqlalchemy.sql.expression import ColumnElement, FromClause

from shadow_translate.core.exceptions import ConfigurationException
from shadow_translate.core.utils import singularize, underscore

logger = logging.getLogger(__name__)


class AssociationType(str, Enum):
    """Kinds of association."""

    BELONGS_TO = "belongs_to"
    HAS_ONE = "has_one"
    HAS_MANY = "has_many"


TableSource = Union[Table, Callable[[], Table]]


@dataclass
class Association:
    """
    Definition of a single association.

    Attributes:
        name: Alias of the target table inside queries
        kind: One of AssociationType
        target: Target Table, or a callable returning it (resolved lazily)
        foreign_key: Column holding the reference (on the target for
            has_one/has_many, on the source for belongs_to)
        binding_key: Referenced column on the other side
        property_name: Key the associated data is exposed under
        conditions: Extra equality conditions on target columns
        index_by: For has_many, group loaded rows into a dict keyed by this column
    """

    name: str
    kind: AssociationType
    target: TableSource
    foreign_key: str
    binding_key: str = "id"
    property_name: Optional[str] = None
    conditions: Dict[str, Any] = field(default_factory=dict)
    index_by: Optional[str] = None

    def __post_init__(self):
        self.kind = AssociationType(self.kind)
        if self.property_name is None:
            base = underscore(self.name)
            self.property_name = (
                base if self.kind == AssociationType.HAS_MANY else singularize(base)
            )

    @property
    def target_table(self) -> Table:
        if isinstance(self.target, Table):
            return self.target
        return self.target()

    @property
    def is_collection(self) -> bool:
        return self.kind == AssociationType.HAS_MANY

    def join_condition(self, source: FromClause, target: FromClause) -> ColumnElement:
        """
        Build the ON clause between aliased source and target selectables.

        Args:
            source: The aliased source table
            target: The aliased target table

        Returns:
            SQL expression for the join
        """
        if self.kind == AssociationType.BELONGS_TO:
            clauses = [source.c[self.foreign_key] == target.c[self.binding_key]]
        else:
            clauses = [target.c[self.foreign_key] == source.c[self.binding_key]]
        for column, value in self.conditions.items():
            clauses.append(target.c[column] == value)
        return and_(*clauses)

    def source_key(self) -> str:
        """Column of the source table whose values identify related rows."""
        if self.kind == AssociationType.BELONGS_TO:
            return self.foreign_key
        return self.binding_key

    def target_key(self) -> str:
        if self.kind == AssociationType.BELONGS_TO:
            return self.binding_key
        return self.foreign_key


class AssociationRegistry:
    """Ordered collection of associations declared on a repository."""

    def __init__(self):
        self._items: Dict[str, Association] = {}

    def add(self, association: Association, replace: bool = False) -> Association:
        """
        Register an association.

        Raises:
            ConfigurationException: If the name is taken and replace is False
        """
        if association.name in self._items and not replace:
            raise ConfigurationException(
                f"Association '{association.name}' is already defined",
                details={"association": association.name},
            )
        self._items[association.name] = association
        logger.debug(f"Registered {association.kind.value} association '{association.name}'")
        return association

    def get(self, name: str) -> Optional[Association]:
        return self._items.get(name)

    def has(self, name: str) -> bool:
        return name in self._items

    def remove(self, name: str) -> None:
        self._items.pop(name, None)

    def keys(self) -> List[str]:
        return list(self._items)

    def __iter__(self) -> Iterator[Association]:
        return iter(list(self._items.values()))

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, name: object) -> bool:
        return name in self._items
