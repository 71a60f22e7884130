# File: shadow_translate/query/conditions.py
"""
Filter predicate trees.

Conditions reference fields by name ("title") or by alias and name
("Articles.title"); they are compiled to SQL only when the query runs, so
behaviors can inspect and rewrite them first.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Mapping, Union

from shadow_translate.core.exceptions import QueryException

OPERATORS = frozenset(
    {"=", "!=", "<", "<=", ">", ">=", "in", "not in", "like", "not like", "is", "is not"}
)


class Clause:
    """Node of a predicate tree."""

    def leaves(self) -> Iterator["Condition"]:
        raise NotImplementedError

    def fields(self) -> Iterator[str]:
        """Every field reference in this subtree."""
        for leaf in self.leaves():
            yield leaf.field


@dataclass
class Condition(Clause):
    """Comparison of a single field against a value."""

    field: str
    op: str = "="
    value: Any = None

    def __post_init__(self):
        self.op = self.op.strip().lower()
        if self.op not in OPERATORS:
            raise QueryException(f"Unsupported operator '{self.op}'", {"field": self.field})

    def leaves(self) -> Iterator["Condition"]:
        yield self


@dataclass
class And(Clause):
    clauses: List[Clause] = field(default_factory=list)

    def leaves(self) -> Iterator[Condition]:
        for clause in self.clauses:
            yield from clause.leaves()


@dataclass
class Or(Clause):
    clauses: List[Clause] = field(default_factory=list)

    def leaves(self) -> Iterator[Condition]:
        for clause in self.clauses:
            yield from clause.leaves()


@dataclass
class Not(Clause):
    clause: Clause

    def leaves(self) -> Iterator[Condition]:
        yield from self.clause.leaves()


def and_(*clauses: Clause) -> And:
    return And(list(clauses))


def or_(*clauses: Clause) -> Or:
    return Or(list(clauses))


def not_(clause: Clause) -> Not:
    return Not(clause)


def parse_conditions(conditions: Union[Clause, Mapping[str, Any]]) -> List[Clause]:
    """
    Normalise a where() argument to a list of clauses.

    Mapping keys are a field reference optionally followed by an operator:
    {"title": "First", "Articles.id >": 2, "id in": [1, 2]}
    """
    if isinstance(conditions, Clause):
        return [conditions]

    parsed = []
    for key, value in conditions.items():
        parts = key.strip().split(None, 1)
        op = parts[1] if len(parts) > 1 else "="
        if isinstance(value, (list, tuple, set)) and op == "=":
            op = "in"
        parsed.append(Condition(parts[0], op, list(value) if isinstance(value, (tuple, set)) else value))
    return parsed


def condition_fields(clauses: List[Clause]) -> List[str]:
    """Field references of every leaf in the given clauses, in order."""
    result = []
    for clause in clauses:
        result.extend(clause.fields())
    return result


def describe(clause: Clause) -> Dict[str, Any]:
    """Structural representation of a clause, for logging and assertions."""
    if isinstance(clause, Condition):
        return {"field": clause.field, "op": clause.op, "value": clause.value}
    if isinstance(clause, Not):
        return {"not": describe(clause.clause)}
    key = "and" if isinstance(clause, And) else "or"
    return {key: [describe(c) for c in clause.clauses]}
