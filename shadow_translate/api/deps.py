# File: shadow_translate/api/deps.py
"""
FastAPI dependencies for the translation endpoints.

The host application describes its translatable tables on ``app.state``:

    app.state.metadata = metadata
    app.state.translatable_tables = {
        "articles": (articles, {"fields": ["title", "body"]}),
    }

Repositories and the service are built per request, so the locale chosen by
one request never leaks into another.
"""

import logging

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from shadow_translate.db.session import get_db
from shadow_translate.repositories.repository_factory import RepositoryFactory
from shadow_translate.services.localization_service import LocalizationService

logger = logging.getLogger(__name__)


def get_repository_factory(request: Request, db: Session = Depends(get_db)) -> RepositoryFactory:
    return RepositoryFactory(db, getattr(request.app.state, "metadata", None))


def get_localization_service(
    request: Request,
    factory: RepositoryFactory = Depends(get_repository_factory),
) -> LocalizationService:
    """Service with one repository per configured translatable table."""
    tables = getattr(request.app.state, "translatable_tables", {})
    repositories = {
        entity_type: factory.create_repository(table, translate=dict(options or {}))
        for entity_type, (table, options) in tables.items()
    }
    logger.debug(f"Localization service for entity types: {list(repositories)}")
    return LocalizationService(repositories)
