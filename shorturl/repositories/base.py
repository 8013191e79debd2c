"""Base repository definitions for the URL shortener service.

This module provides the abstract URLRepository every storage backend
implements, together with the repository exception hierarchy. The service
layer only ever talks to this interface.
"""

import logging
from abc import ABC, abstractmethod
from typing import Optional

from shorturl.models.url import URLMapping

logger = logging.getLogger(__name__)


class RepositoryError(Exception):
    """Base exception for repository errors."""
    pass


class BackingStoreError(RepositoryError):
    """The persistence layer failed (connection, disk, corrupt data)."""
    pass


class MappingConflictError(RepositoryError):
    """Exception raised when a store would break the URL/token bijection."""

    def __init__(self, field_name: str, value: str, assigned_to: str):
        self.field_name = field_name
        self.value = value
        self.assigned_to = assigned_to
        super().__init__(f"{field_name}={value} is already assigned to {assigned_to}")


class DuplicateTokenError(MappingConflictError):
    """The token is already assigned to a different URL."""

    def __init__(self, short_token: str, original_url: str):
        super().__init__("short_token", short_token, original_url)


class DuplicateURLError(MappingConflictError):
    """The URL is already assigned a different token."""

    def __init__(self, original_url: str, short_token: str):
        super().__init__("original_url", original_url, short_token)


class URLRepository(ABC):
    """
    Storage contract for URL mappings.

    Implementations own the forward (URL -> token) and reverse
    (token -> URL) indices plus a sequence counter, and must keep both
    indices functions at all times, including under concurrent callers.

    `store` semantics:
        - URL already mapped to the same token: no-op, the existing mapping
          is returned and the counter does not move.
        - URL already mapped to another token: DuplicateURLError. This check
          runs first, so it is also what a caller sees when both sides
          conflict.
        - Token already mapped to another URL: DuplicateTokenError.
        - Otherwise the mapping is inserted and the counter incremented.
    """

    backend_name: str = "abstract"

    async def open(self) -> None:
        """Prepare the backing store (load files, create tables)."""

    async def close(self) -> None:
        """Release resources held by the backing store."""

    @abstractmethod
    async def find_token(self, original_url: str) -> Optional[str]:
        """
        Look up the token assigned to an original URL.

        Args:
            original_url: Exact URL to look up

        Returns:
            The token if the URL is stored, None otherwise

        Raises:
            BackingStoreError: If the backing store fails
        """

    @abstractmethod
    async def find_original_url(self, short_token: str) -> Optional[str]:
        """
        Look up the original URL behind a token.

        Args:
            short_token: Exact token to look up

        Returns:
            The original URL if the token is stored, None otherwise

        Raises:
            BackingStoreError: If the backing store fails
        """

    @abstractmethod
    async def store(self, original_url: str, short_token: str) -> URLMapping:
        """
        Insert a new mapping.

        Args:
            original_url: The original URL
            short_token: The token to assign to it

        Returns:
            The stored mapping (or the identical existing one)

        Raises:
            DuplicateURLError: If the URL already has a different token
            DuplicateTokenError: If the token already belongs to a different URL
            BackingStoreError: If the backing store fails
        """

    @abstractmethod
    async def next_id(self) -> int:
        """Return the current value of the sequence counter."""
