"""Database-backed URL repository.

This module provides the SQLURLRepository class, which stores URL mappings
in a relational database through SQLModel and async SQLAlchemy. The unique
constraints on both columns of the `url_mappings` table are what keep the
mapping a bijection across processes.
"""

import logging
from typing import Optional

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession
from sqlmodel import SQLModel

from shorturl.db.base import get_engine, get_session_factory
from shorturl.models.url import URLMapping, URLMappingRecord
from shorturl.repositories.base import (
    BackingStoreError,
    DuplicateTokenError,
    DuplicateURLError,
    URLRepository,
)

logger = logging.getLogger(__name__)


class SQLURLRepository(URLRepository):
    """
    Repository for URL mappings stored in a SQL database.

    Each operation runs in its own short-lived session. No in-process lock
    is held while waiting on the database.
    """

    backend_name = "database"

    def __init__(self, engine: AsyncEngine):
        """
        Initialize the repository with an engine.

        Args:
            engine: Async SQLAlchemy engine the repository owns
        """
        self.engine = engine
        self._session_factory = get_session_factory(engine)

    @classmethod
    def from_dsn(cls, dsn: str, echo: bool = False) -> "SQLURLRepository":
        """Create a repository with its own engine for the given DSN."""
        return cls(get_engine(dsn, echo=echo))

    async def open(self) -> None:
        """Create the mapping table if it does not exist yet."""
        try:
            async with self.engine.begin() as conn:
                await conn.run_sync(SQLModel.metadata.create_all)
        except SQLAlchemyError as e:
            logger.error(f"Error creating tables: {e}")
            raise BackingStoreError(f"Database error creating tables: {e}") from e

    async def close(self) -> None:
        await self.engine.dispose()

    async def find_token(self, original_url: str) -> Optional[str]:
        try:
            async with self._session_factory() as session:
                query = select(URLMappingRecord.short_token).where(
                    URLMappingRecord.original_url == original_url
                )
                result = await session.execute(query)
                return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving token by URL: {e}")
            raise BackingStoreError(f"Database error retrieving token: {e}") from e

    async def find_original_url(self, short_token: str) -> Optional[str]:
        try:
            async with self._session_factory() as session:
                query = select(URLMappingRecord.original_url).where(
                    URLMappingRecord.short_token == short_token
                )
                result = await session.execute(query)
                return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving URL by token: {e}")
            raise BackingStoreError(f"Database error retrieving URL: {e}") from e

    async def store(self, original_url: str, short_token: str) -> URLMapping:
        try:
            async with self._session_factory() as session:
                existing = await self._check_conflicts(session, original_url, short_token)
                if existing is not None:
                    return existing

                record = URLMappingRecord(original_url=original_url, short_token=short_token)
                session.add(record)
                try:
                    await session.commit()
                except IntegrityError:
                    # Lost a race with a concurrent insert; report what won
                    await session.rollback()
                    existing = await self._check_conflicts(session, original_url, short_token)
                    if existing is not None:
                        return existing
                    raise
                logger.debug(f"Stored mapping #{record.id} for token {short_token}")
                return record.to_mapping()
        except SQLAlchemyError as e:
            logger.error(f"Error storing mapping: {e}")
            raise BackingStoreError(f"Database error storing mapping: {e}") from e

    async def next_id(self) -> int:
        """Mappings are never deleted, so the row count is the counter."""
        try:
            async with self._session_factory() as session:
                query = select(func.count()).select_from(URLMappingRecord)
                result = await session.execute(query)
                return result.scalar_one()
        except SQLAlchemyError as e:
            logger.error(f"Error counting mappings: {e}")
            raise BackingStoreError(f"Database error counting mappings: {e}") from e

    async def _check_conflicts(
        self,
        session: AsyncSession,
        original_url: str,
        short_token: str
    ) -> Optional[URLMapping]:
        """Return the identical existing mapping, raise on a conflicting one."""
        query = select(URLMappingRecord).where(
            or_(
                URLMappingRecord.original_url == original_url,
                URLMappingRecord.short_token == short_token,
            )
        )
        result = await session.execute(query)
        rows = result.scalars().all()

        for row in rows:
            if row.original_url == original_url:
                if row.short_token == short_token:
                    return row.to_mapping()
                raise DuplicateURLError(original_url, row.short_token)

        for row in rows:
            if row.short_token == short_token:
                raise DuplicateTokenError(short_token, row.original_url)
        return None
