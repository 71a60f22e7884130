# File: shadow_translate/repositories/base_repository.py

import logging
from typing import Any, Dict, List, Optional, Union

from sqlalchemy import Table, delete, insert, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from shadow_translate.behaviors.base import Behavior, BehaviorRegistry
from shadow_translate.core.config import settings
from shadow_translate.core.exceptions import (
    ConfigurationException,
    DatabaseException,
    EntityNotFoundException,
    QueryException,
)
from shadow_translate.core.utils import camelize, singularize, underscore
from shadow_translate.db.associations import Association, AssociationRegistry, AssociationType
from shadow_translate.db.entity import Entity
from shadow_translate.db.schema import SchemaInspector, bind_of
from shadow_translate.db.session import transaction_scope
from shadow_translate.query.compiler import ReferenceResolver, compile_clause
from shadow_translate.query.plan import JoinSpec, QueryPlan

logger = logging.getLogger(__name__)


class BaseRepository:
    """
    Repository over one table, with named associations and behaviors.

    Attributes:
        session (Session): The SQLAlchemy session for database operations
        table (Table): The table this repository manages
        alias (str): Alias of the table inside queries (default: CamelCase name)
        inspector (SchemaInspector): Column introspection for this and related tables
    """

    def __init__(
        self,
        session: Session,
        table: Any,
        alias: Optional[str] = None,
        inspector: Optional[SchemaInspector] = None,
    ):
        """
        Initialize the repository.

        Args:
            session (Session): SQLAlchemy database session
            table: A Table, or a mapped class exposing ``__table__``
            alias (Optional[str]): Query alias; defaults to the canonical name
            inspector (Optional[SchemaInspector]): Shared schema inspector
        """
        if not isinstance(table, Table):
            table = getattr(table, "__table__", None)
            if not isinstance(table, Table):
                raise TypeError(f"{self.__class__.__name__} needs a Table or a mapped class")
        self.session = session
        self.table = table
        self.alias = alias or self.canonical_name
        self.inspector = inspector or SchemaInspector(bind_of(session), table.metadata)
        self._associations = AssociationRegistry()
        self._behaviors = BehaviorRegistry(self)
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    @property
    def canonical_name(self) -> str:
        """CamelCase name of the table, independent of the current alias."""
        return camelize(self.table.name)

    @property
    def primary_key(self) -> str:
        columns = list(self.table.primary_key.columns)
        if not columns:
            raise ConfigurationException(f"Table '{self.table.name}' has no primary key")
        return columns[0].name

    def set_alias(self, alias: str) -> None:
        """
        Change the query alias.

        Must happen before behaviors are attached, as they derive names from it.
        """
        if self._behaviors.names():
            raise ConfigurationException(
                f"Cannot re-alias {self.alias}: behaviors already attached",
                details={"behaviors": self._behaviors.names()},
            )
        self.alias = alias

    # ------------------------------------------------------------------
    # Associations
    # ------------------------------------------------------------------

    def associations(self) -> AssociationRegistry:
        return self._associations

    def belongs_to(self, name: str, target: Any, foreign_key: Optional[str] = None, **kwargs) -> Association:
        """
        Declare that each record references one record of another table.

        ``foreign_key`` defaults to "<singular name>_id" ("Authors" -> "author_id").
        """
        return self._associations.add(
            Association(
                name,
                AssociationType.BELONGS_TO,
                _table_of(target),
                foreign_key or f"{singularize(underscore(name))}_id",
                **kwargs,
            )
        )

    def has_one(self, name: str, target: Any, foreign_key: Optional[str] = None, **kwargs) -> Association:
        return self._associations.add(
            Association(
                name,
                AssociationType.HAS_ONE,
                _table_of(target),
                foreign_key or self._default_foreign_key(),
                binding_key=kwargs.pop("binding_key", self.primary_key),
                **kwargs,
            )
        )

    def has_many(self, name: str, target: Any, foreign_key: Optional[str] = None, **kwargs) -> Association:
        return self._associations.add(
            Association(
                name,
                AssociationType.HAS_MANY,
                _table_of(target),
                foreign_key or self._default_foreign_key(),
                binding_key=kwargs.pop("binding_key", self.primary_key),
                **kwargs,
            )
        )

    def _default_foreign_key(self) -> str:
        return f"{singularize(self.table.name)}_id"

    # ------------------------------------------------------------------
    # Behaviors
    # ------------------------------------------------------------------

    def behaviors(self) -> BehaviorRegistry:
        return self._behaviors

    def add_behavior(self, behavior: Union[str, type], **options: Any) -> Behavior:
        """
        Attach a behavior by name or class.

        Raises:
            BehaviorConflictException: If the behavior's role is already taken
            ConfigurationException: If the behavior is unknown or misconfigured
        """
        return self._behaviors.load(behavior, **options)

    def remove_behavior(self, name: str) -> None:
        self._behaviors.unload(name)

    def has_behavior(self, name: str) -> bool:
        return self._behaviors.has(name)

    # ------------------------------------------------------------------
    # Finding
    # ------------------------------------------------------------------

    def find(self, finder: str = "all", **options: Any) -> QueryPlan:
        """
        Start a query.

        Args:
            finder: "all", or a finder provided by a behavior
            **options: Passed to the finder

        Returns:
            QueryPlan

        Raises:
            QueryException: If no behavior provides the finder
        """
        plan = QueryPlan(self, finder, **options)
        if finder == "all":
            return plan
        method = self._behaviors.finder(finder)
        if method is None:
            raise QueryException(f"Unknown finder '{finder}' on {self.alias}", {"finder": finder})
        return method(plan, **options)

    def prepare_plan(self, plan: QueryPlan) -> None:
        """Join contained single-row associations, then run behaviors' before_find."""
        for spec in plan.contained():
            association = self._associations.get(spec.name)
            if association is None:
                raise QueryException(
                    f"{self.alias} has no association '{spec.name}'", {"association": spec.name}
                )
            if association.is_collection:
                continue
            if spec.clauses:
                raise QueryException(
                    f"Filters on '{spec.name}' belong in where(); only collections take contain filters",
                    {"association": spec.name},
                )
            plan.add_join(
                JoinSpec(
                    spec.name,
                    association.target_table,
                    association.join_condition,
                    outer=True,
                    association=spec.name,
                ),
                replace=False,
            )
        self._behaviors.dispatch("before_find", plan)

    def get(self, entity_id: Any, contain: Optional[List[str]] = None) -> Entity:
        """
        Retrieve one record by primary key.

        Raises:
            EntityNotFoundException: If there is no such record
        """
        plan = self.find().where({f"{self.alias}.{self.primary_key}": entity_id})
        if contain:
            plan.contain(*contain)
        result = plan.first()
        if result is None:
            raise EntityNotFoundException(self.alias, entity_id)
        return result

    def list(self, skip: int = 0, limit: Optional[int] = None, **filters) -> List[Entity]:
        """
        Retrieve a page of records.

        Args:
            skip (int): Number of records to skip (for pagination)
            limit (Optional[int]): Maximum number of records; DB_DEFAULT_QUERY_LIMIT by default
            **filters: Equality filters (field=value pairs)
        """
        plan = self.find().where(filters) if filters else self.find()
        return plan.offset(skip).limit(limit or settings.DB_DEFAULT_QUERY_LIMIT).all()

    def count(self, **filters) -> int:
        plan = self.find().where(filters) if filters else self.find()
        return plan.count()

    # ------------------------------------------------------------------
    # Result shaping
    # ------------------------------------------------------------------

    def nest_associations(self, row: Dict[str, Any], plan: QueryPlan) -> Dict[str, Any]:
        """Move "<Association>__<column>" values of contained associations under their property."""
        for spec in plan.contained():
            association = self._associations.get(spec.name)
            if association is None or association.is_collection:
                continue
            prefix = f"{spec.name}__"
            values = {
                key[len(prefix):]: row.pop(key) for key in list(row) if key.startswith(prefix)
            }
            if not values:
                continue
            has_data = any(value is not None for value in values.values())
            row[association.property_name] = values if has_data else None
        return row

    def load_collections(self, rows: List[Dict[str, Any]], plan: QueryPlan) -> None:
        """
        Load contained has_many associations with one extra select each.

        Rows are grouped under the association's property as a list, or as a
        dict when the association is indexed.
        """
        for spec in plan.contained():
            association = self._associations.get(spec.name)
            if association is None or not association.is_collection:
                continue

            source_key = association.source_key()
            keys = list(dict.fromkeys(row[source_key] for row in rows if row.get(source_key) is not None))
            grouped: Dict[Any, List[Dict[str, Any]]] = {key: [] for key in keys}

            if keys:
                target = association.target_table.alias(spec.name)
                target_key = target.c[association.target_key()]
                stmt = select(target).where(target_key.in_(keys))
                for column, value in association.conditions.items():
                    stmt = stmt.where(target.c[column] == value)
                resolver = ReferenceResolver(spec.name, target)
                for clause in spec.clauses:
                    stmt = stmt.where(compile_clause(clause, resolver))
                stmt = stmt.order_by(*[c for c in target.primary_key] or [target_key])

                try:
                    for record in self.session.execute(stmt):
                        data = dict(record._mapping)
                        grouped[data[association.target_key()]].append(data)
                except SQLAlchemyError as e:
                    self.logger.error(f"Database error loading {spec.name}: {e}", exc_info=True)
                    raise DatabaseException(
                        f"Failed to load {spec.name}: {str(e)}", query=str(stmt), entity_type=self.alias
                    )

            for row in rows:
                related = grouped.get(row.get(source_key), [])
                if association.index_by:
                    row[association.property_name] = {r[association.index_by]: r for r in related}
                else:
                    row[association.property_name] = related

    def hydrate_row(self, row: Dict[str, Any]) -> Entity:
        """Materialise a result row, nested association data included."""
        properties = {key: _hydrate_value(key, value) for key, value in row.items()}
        return Entity(properties, source=self.alias, new=False)

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def new_entity(self, data: Optional[Dict[str, Any]] = None) -> Entity:
        return Entity(data, source=self.alias, new=True)

    def save(self, entity: Entity) -> Entity:
        """
        Insert or update a record, running the save hooks of attached behaviors.

        Only dirty properties that are columns of the table are written.

        Args:
            entity (Entity): Record to save

        Returns:
            Entity: The same record, with its primary key set and changes cleared

        Raises:
            DatabaseException: If the write fails; nothing is committed and
                the entity keeps its pending changes
        """
        pk = self.primary_key
        try:
            with transaction_scope(self.session):
                self._behaviors.dispatch("before_save", entity)
                data = {
                    name: entity.get(name)
                    for name in entity.dirty_fields()
                    if name in self.table.c
                }
                if entity.is_new():
                    result = self.session.execute(insert(self.table).values(**data))
                    if entity.get(pk) is None:
                        entity.set(pk, result.inserted_primary_key[0])
                    self.logger.info(f"Created {self.alias} #{entity.get(pk)}")
                else:
                    data.pop(pk, None)
                    if data:
                        self.session.execute(
                            update(self.table)
                            .where(self.table.c[pk] == entity.get(pk))
                            .values(**data)
                        )
                        self.logger.info(f"Updated {self.alias} #{entity.get(pk)}: {sorted(data)}")
                self._behaviors.dispatch("after_save", entity)
        except SQLAlchemyError as e:
            self._behaviors.dispatch("save_failed", entity)
            self.logger.error(f"Database error saving {self.alias}: {e}", exc_info=True)
            raise DatabaseException(
                f"Failed to save {self.alias}: {str(e)}", entity_type=self.alias
            )
        except Exception:
            self._behaviors.dispatch("save_failed", entity)
            raise

        entity.set_new(False)
        entity.clean()
        return entity

    def delete(self, entity: Union[Entity, Any]) -> bool:
        """
        Delete a record, running the delete hooks of attached behaviors.

        Hooks and the delete share one transaction: a failure anywhere
        leaves every row in place.

        Args:
            entity: Record or primary key value

        Returns:
            bool: True if a row was deleted

        Raises:
            DatabaseException: If the delete fails
        """
        pk = self.primary_key
        if not isinstance(entity, Entity):
            entity = Entity({pk: entity}, source=self.alias, new=False)

        try:
            with transaction_scope(self.session):
                self._behaviors.dispatch("before_delete", entity)
                result = self.session.execute(
                    delete(self.table).where(self.table.c[pk] == entity.get(pk))
                )
                self._behaviors.dispatch("after_delete", entity)
        except SQLAlchemyError as e:
            self.logger.error(f"Database error deleting {self.alias}: {e}", exc_info=True)
            raise DatabaseException(
                f"Failed to delete {self.alias} #{entity.get(pk)}: {str(e)}",
                entity_type=self.alias,
            )

        self.logger.info(f"Deleted {self.alias} #{entity.get(pk)}")
        return result.rowcount > 0

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} {self.alias} ({self.table.name})>"


def _table_of(target: Any):
    """Accept a Table, a mapped class, a repository, or a callable returning a Table."""
    if isinstance(target, Table) or callable(target) and not hasattr(target, "__table__"):
        return target
    if isinstance(target, BaseRepository):
        return target.table
    return target.__table__


def _hydrate_value(key: str, value: Any) -> Any:
    if isinstance(value, dict):
        if value and all(isinstance(v, dict) for v in value.values()):
            return {k: Entity(v, source=key, new=False) for k, v in value.items()}
        if key.startswith("_") and not value:
            return {}
        return Entity(value, source=key, new=False)
    if isinstance(value, list) and all(isinstance(v, dict) for v in value):
        return [Entity(v, source=key, new=False) for v in value]
    return value
