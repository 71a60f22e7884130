# File: shadow_translate/db/schema.py
"""
Schema introspection.

Column lists come from the MetaData when the table is declared there and
from the live database otherwise. Order always follows the table's
declaration order.
"""

import logging
from dataclasses import dataclass
from typing import Any, List, Optional

from sqlalchemy import MetaData, Table, inspect
from sqlalchemy.exc import NoSuchTableError, SQLAlchemyError, UnboundExecutionError

from shadow_translate.core.exceptions import ConfigurationException, DatabaseException

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ColumnInfo:
    """Name and type of a single column."""

    name: str
    type: Any = None
    nullable: bool = True
    primary_key: bool = False


class SchemaInspector:
    """
    Supplies column information for tables.

    Attributes:
        bind: Engine or connection used for reflection
        metadata: MetaData holding declared (and reflected) tables
    """

    def __init__(self, bind: Optional[Any] = None, metadata: Optional[MetaData] = None):
        self.bind = bind
        self.metadata = metadata if metadata is not None else MetaData()

    def has_table(self, table_name: str) -> bool:
        if table_name in self.metadata.tables:
            return True
        if self.bind is None:
            return False
        try:
            return inspect(self.bind).has_table(table_name)
        except SQLAlchemyError as e:
            logger.error(f"Error checking for table {table_name}: {e}", exc_info=True)
            raise DatabaseException(f"Failed to inspect table {table_name}: {str(e)}")

    def columns(self, table_name: str) -> List[ColumnInfo]:
        """
        List the columns of a table in declaration order.

        Args:
            table_name: SQL name of the table

        Returns:
            Ordered list of ColumnInfo

        Raises:
            ConfigurationException: If the table does not exist
        """
        logger.debug(f"Introspecting columns of {table_name}")
        if table_name in self.metadata.tables:
            return [
                ColumnInfo(c.name, c.type, bool(c.nullable), bool(c.primary_key))
                for c in self.metadata.tables[table_name].columns
            ]
        return [
            ColumnInfo(c.name, c.type, bool(c.nullable), bool(c.primary_key))
            for c in self.reflect(table_name).columns
        ]

    def reflect(self, table_name: str) -> Table:
        """
        Return the Table object, reflecting it from the database if needed.

        Raises:
            ConfigurationException: If the table does not exist
            DatabaseException: If reflection fails
        """
        if table_name in self.metadata.tables:
            return self.metadata.tables[table_name]
        if self.bind is None:
            raise ConfigurationException(
                f"Table '{table_name}' is not declared and no database is bound",
                details={"table": table_name},
            )
        try:
            logger.info(f"Reflecting table {table_name}")
            return Table(table_name, self.metadata, autoload_with=self.bind)
        except NoSuchTableError:
            raise ConfigurationException(
                f"Table '{table_name}' does not exist", details={"table": table_name}
            )
        except SQLAlchemyError as e:
            logger.error(f"Error reflecting table {table_name}: {e}", exc_info=True)
            raise DatabaseException(f"Failed to reflect table {table_name}: {str(e)}")


def bind_of(session) -> Optional[Any]:
    """Engine or connection a session is bound to, if any."""
    if session is None:
        return None
    try:
        return session.get_bind()
    except UnboundExecutionError:
        return None
