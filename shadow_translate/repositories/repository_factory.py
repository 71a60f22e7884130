# File: shadow_translate/repositories/repository_factory.py

from typing import Any, Dict, Optional, Union

from sqlalchemy import MetaData, Table
from sqlalchemy.orm import Session

from shadow_translate.db.schema import SchemaInspector, bind_of
from shadow_translate.repositories.shadow_translation_repository import ShadowTranslationRepository
from shadow_translate.repositories.translatable_repository import TranslatableRepository


class RepositoryFactory:
    """
    Factory for creating repository instances.

    Repositories carry per-request state (the locale), so create them per
    session rather than sharing them between callers. Every repository
    created here shares one SchemaInspector.
    """

    def __init__(self, session: Session, metadata: Optional[MetaData] = None, inspector=None):
        """
        Initialize the factory.

        Args:
            session: SQLAlchemy database session
            metadata: MetaData holding the declared tables; reflected into when empty
            inspector: Existing SchemaInspector to share
        """
        self.session = session
        self.metadata = metadata if metadata is not None else MetaData()
        self.inspector = inspector or SchemaInspector(bind_of(session), self.metadata)

    def table(self, table: Union[str, Table]) -> Table:
        """Resolve a table name to its Table, reflecting it if needed."""
        if isinstance(table, Table):
            return table
        return self.inspector.reflect(table)

    def create_repository(
        self,
        table: Union[str, Table],
        alias: Optional[str] = None,
        translate: Optional[Dict[str, Any]] = None,
    ) -> TranslatableRepository:
        """
        Create a repository, optionally with translations attached.

        Args:
            table: Table or table name
            alias: Query alias (default: CamelCase table name)
            translate: Translation options; attaches the behavior when given
        """
        return TranslatableRepository(
            self.session,
            self.table(table),
            alias=alias,
            inspector=self.inspector,
            translate=translate,
        )

    def create_translation_repository(
        self,
        table: Union[str, Table],
        foreign_key: str = "id",
        locale_field: str = "locale",
    ) -> ShadowTranslationRepository:
        return ShadowTranslationRepository(
            self.session,
            self.table(table),
            inspector=self.inspector,
            foreign_key=foreign_key,
            locale_field=locale_field,
        )
