"""Repository layer for the URL shortener service.

This module provides the repository interface, its storage backends, and
`create_repository`, which picks the backend the settings ask for.
"""

from shorturl.core.config import Settings, StorageBackend
from shorturl.repositories.base import (
    BackingStoreError,
    DuplicateTokenError,
    DuplicateURLError,
    MappingConflictError,
    RepositoryError,
    URLRepository,
)
from shorturl.repositories.memory import FileURLRepository, InMemoryURLRepository
from shorturl.repositories.sql import SQLURLRepository


def create_repository(settings: Settings) -> URLRepository:
    """Build the repository for the configured storage backend."""
    backend = settings.storage_backend
    if backend == StorageBackend.DATABASE:
        return SQLURLRepository.from_dsn(settings.DATABASE_DSN, echo=settings.DB_ECHO)
    if backend == StorageBackend.FILE:
        return FileURLRepository(settings.FILE_STORAGE_PATH)
    return InMemoryURLRepository()


__all__ = [
    # Base classes and exceptions
    "URLRepository",
    "RepositoryError",
    "BackingStoreError",
    "MappingConflictError",
    "DuplicateTokenError",
    "DuplicateURLError",

    # Concrete repositories
    "InMemoryURLRepository",
    "FileURLRepository",
    "SQLURLRepository",
    "create_repository",
]
