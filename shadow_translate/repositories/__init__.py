from shadow_translate.repositories.base_repository import BaseRepository
from shadow_translate.repositories.repository_factory import RepositoryFactory
from shadow_translate.repositories.shadow_translation_repository import ShadowTranslationRepository
from shadow_translate.repositories.translatable_repository import TranslatableRepository

__all__ = [
    "BaseRepository",
    "RepositoryFactory",
    "ShadowTranslationRepository",
    "TranslatableRepository",
]
