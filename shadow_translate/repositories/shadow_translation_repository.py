# File: shadow_translate/repositories/shadow_translation_repository.py

"""
Repository for shadow translation rows.

Each row holds every translated field of one record in one locale, keyed by
(foreign key, locale). Writes join the caller's transaction scope, so a
translation write or delete commits or rolls back together with the
primary-table operation that triggered it.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import and_, delete, insert, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from shadow_translate.core.exceptions import ConfigurationException, DatabaseException, ValidationException
from shadow_translate.db.session import transaction_scope
from shadow_translate.repositories.base_repository import BaseRepository

logger = logging.getLogger(__name__)


class ShadowTranslationRepository(BaseRepository):
    """
    Read and write translation rows of one translation table.

    Attributes:
        foreign_key (str): Column referencing the translated record
        locale_field (str): Column holding the locale
    """

    def __init__(
        self,
        session: Session,
        table,
        alias: Optional[str] = None,
        inspector=None,
        foreign_key: str = "id",
        locale_field: str = "locale",
    ):
        super().__init__(session, table, alias=alias, inspector=inspector)
        for column in (foreign_key, locale_field):
            if column not in self.table.c:
                raise ConfigurationException(
                    f"Translation table '{self.table.name}' has no column '{column}'",
                    details={"table": self.table.name, "column": column},
                )
        self.foreign_key = foreign_key
        self.locale_field = locale_field

    def _key(self, entity_id: Any, locale: str):
        return and_(
            self.table.c[self.foreign_key] == entity_id,
            self.table.c[self.locale_field] == locale,
        )

    def find_translation(self, entity_id: Any, locale: str) -> Optional[Dict[str, Any]]:
        """
        Find the translation row of a record in one locale.

        Args:
            entity_id: ID of the translated record
            locale: Locale code

        Returns:
            Row as a dictionary, or None
        """
        try:
            self.logger.debug(f"Finding translation: {self.table.name}#{entity_id} [{locale}]")
            row = self.session.execute(
                select(self.table).where(self._key(entity_id, locale))
            ).first()
            return dict(row._mapping) if row is not None else None
        except SQLAlchemyError as e:
            self.logger.error(f"Database error finding translation: {e}", exc_info=True)
            raise DatabaseException(f"Failed to find translation: {str(e)}")

    def find_translations_for_entity(
        self, entity_id: Any, locales: Optional[Iterable[str]] = None
    ) -> Dict[str, Dict[str, Any]]:
        """
        Get every translation of a record, keyed by locale.

        Args:
            entity_id: ID of the translated record
            locales: Only these locales, if given

        Returns:
            Dictionary mapping locale to translation row
        """
        try:
            stmt = select(self.table).where(self.table.c[self.foreign_key] == entity_id)
            if locales:
                stmt = stmt.where(self.table.c[self.locale_field].in_(list(locales)))
            stmt = stmt.order_by(self.table.c[self.locale_field])

            translations = {
                row._mapping[self.locale_field]: dict(row._mapping)
                for row in self.session.execute(stmt)
            }
            self.logger.debug(f"Found {len(translations)} translations for {self.table.name}#{entity_id}")
            return translations
        except SQLAlchemyError as e:
            self.logger.error(f"Database error finding entity translations: {e}", exc_info=True)
            raise DatabaseException(f"Failed to find entity translations: {str(e)}")

    def upsert_translation(self, entity_id: Any, locale: str, values: Dict[str, Any]) -> Dict[str, Any]:
        """
        Create or update the translation row of a record in one locale.

        Args:
            entity_id: ID of the translated record
            locale: Locale code
            values: Translated field values; keys must be columns of the table

        Returns:
            The stored row

        Raises:
            ValidationException: If the locale is empty or a field is unknown
            DatabaseException: If the write fails
        """
        if not locale or not str(locale).strip():
            raise ValidationException("Locale cannot be empty")
        unknown = [name for name in values if name not in self.table.c]
        if unknown:
            raise ValidationException(
                f"Unknown translation fields for {self.table.name}",
                {name: ["not a column of the translation table"] for name in unknown},
            )

        values = {
            k: v for k, v in values.items() if k not in (self.foreign_key, self.locale_field)
        }
        try:
            with transaction_scope(self.session):
                existing = self.find_translation(entity_id, locale)
                if existing is not None:
                    if values:
                        self.session.execute(
                            update(self.table).where(self._key(entity_id, locale)).values(**values)
                        )
                    self.logger.info(
                        f"Updated translation {self.table.name}#{entity_id} [{locale}]: {sorted(values)}"
                    )
                else:
                    self.session.execute(
                        insert(self.table).values(
                            **{self.foreign_key: entity_id, self.locale_field: locale}, **values
                        )
                    )
                    self.logger.info(f"Created translation {self.table.name}#{entity_id} [{locale}]")
                return self.find_translation(entity_id, locale)
        except SQLAlchemyError as e:
            self.logger.error(f"Database error in upsert_translation: {e}", exc_info=True)
            raise DatabaseException(f"Failed to upsert translation: {str(e)}")

    def delete_translations_for_entity(self, entity_id: Any) -> int:
        """
        Delete all translations of a record.

        Args:
            entity_id: ID of the translated record

        Returns:
            Number of translations deleted

        Raises:
            DatabaseException: If database operation fails
        """
        try:
            with transaction_scope(self.session):
                result = self.session.execute(
                    delete(self.table).where(self.table.c[self.foreign_key] == entity_id)
                )
            deleted_count = result.rowcount
            self.logger.info(f"Deleted {deleted_count} translations for {self.table.name}#{entity_id}")
            return deleted_count
        except SQLAlchemyError as e:
            self.logger.error(f"Database error deleting entity translations: {e}", exc_info=True)
            raise DatabaseException(f"Failed to delete entity translations: {str(e)}")

    def get_locales_for_entity(self, entity_id: Any) -> List[str]:
        """
        Get the locales a record has translations for.

        Args:
            entity_id: ID of the translated record

        Returns:
            Sorted list of locale codes
        """
        try:
            column = self.table.c[self.locale_field]
            stmt = (
                select(column)
                .where(self.table.c[self.foreign_key] == entity_id)
                .distinct()
                .order_by(column)
            )
            locales = list(self.session.execute(stmt).scalars())
            self.logger.debug(f"Found locales for {self.table.name}#{entity_id}: {locales}")
            return locales
        except SQLAlchemyError as e:
            self.logger.error(f"Database error getting locales: {e}", exc_info=True)
            raise DatabaseException(f"Failed to get locales: {str(e)}")
