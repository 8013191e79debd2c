"""In-memory and file-backed URL repositories.

InMemoryURLRepository keeps both indices in dictionaries behind a single
asyncio lock. FileURLRepository layers an append-only JSON-lines file on top
so mappings survive restarts.
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Union

from shorturl.models.url import URLMapping
from shorturl.repositories.base import (
    BackingStoreError,
    DuplicateTokenError,
    DuplicateURLError,
    URLRepository,
)

logger = logging.getLogger(__name__)


class InMemoryURLRepository(URLRepository):
    """
    URL repository held entirely in process memory.

    One lock guards the forward index, the reverse index and the counter
    together, so the conflict check and the insert in `store` happen as a
    single step with respect to every other caller.
    """

    backend_name = "memory"

    def __init__(self):
        self._lock = asyncio.Lock()
        self._tokens_by_url: Dict[str, str] = {}
        self._mappings_by_token: Dict[str, URLMapping] = {}
        self._counter = 0

    async def find_token(self, original_url: str) -> Optional[str]:
        async with self._lock:
            return self._tokens_by_url.get(original_url)

    async def find_original_url(self, short_token: str) -> Optional[str]:
        async with self._lock:
            mapping = self._mappings_by_token.get(short_token)
        return mapping.original_url if mapping else None

    async def store(self, original_url: str, short_token: str) -> URLMapping:
        async with self._lock:
            existing = self._check_conflicts(original_url, short_token)
            if existing is not None:
                return existing

            mapping = URLMapping(
                id=self._counter + 1,
                original_url=original_url,
                short_token=short_token,
            )
            await self._commit(mapping)
            logger.debug(f"Stored mapping #{mapping.id} for token {short_token}")
            return mapping

    async def next_id(self) -> int:
        async with self._lock:
            return self._counter

    async def _persist(self, mapping: URLMapping) -> None:
        """Hook for subclasses that write mappings somewhere durable."""

    async def _commit(self, mapping: URLMapping) -> None:
        """Persist a mapping, then add it to the indices.

        Once the write has started it always runs to completion and the
        mapping is indexed, even if the caller is cancelled meanwhile; the
        cancellation is re-raised afterwards. A failed write leaves the
        indices untouched. Must be called with the lock held.
        """
        write = asyncio.ensure_future(self._persist_then_insert(mapping))
        cancelled = False
        while not write.done():
            try:
                await asyncio.shield(write)
            except asyncio.CancelledError:
                if write.done() and write.cancelled():
                    raise
                cancelled = True
        write.result()
        if cancelled:
            logger.debug(f"Store of token {mapping.short_token} completed after cancellation")
            raise asyncio.CancelledError()

    async def _persist_then_insert(self, mapping: URLMapping) -> None:
        await self._persist(mapping)
        self._insert(mapping)

    def _check_conflicts(self, original_url: str, short_token: str) -> Optional[URLMapping]:
        """Return the identical existing mapping, raise on a conflicting one.

        Must be called with the lock held.
        """
        current_token = self._tokens_by_url.get(original_url)
        if current_token is not None:
            if current_token == short_token:
                return self._mappings_by_token[short_token]
            raise DuplicateURLError(original_url, current_token)

        taken = self._mappings_by_token.get(short_token)
        if taken is not None:
            raise DuplicateTokenError(short_token, taken.original_url)
        return None

    def _insert(self, mapping: URLMapping) -> None:
        # Must be called with the lock held
        self._tokens_by_url[mapping.original_url] = mapping.short_token
        self._mappings_by_token[mapping.short_token] = mapping
        self._counter = max(self._counter, mapping.id)


class FileURLRepository(InMemoryURLRepository):
    """
    In-memory repository persisted to an append-only JSON-lines file.

    Every line holds one mapping::

        {"uuid": "1", "short_url": "Ab3dE9xZ", "original_url": "https://example.com"}

    The file is replayed on `open()`; each successful store appends one line
    while the repository lock is held, so the order on disk follows the
    counter.
    """

    backend_name = "file"

    def __init__(self, path: Union[str, Path]):
        super().__init__()
        self.path = Path(path)

    async def open(self) -> None:
        """
        Load every mapping recorded in the storage file.

        A missing file is treated as an empty store.

        Raises:
            BackingStoreError: If the file cannot be read or holds invalid or
                conflicting records
        """
        mappings = await asyncio.to_thread(self._read_mappings)
        async with self._lock:
            for mapping in mappings:
                try:
                    existing = self._check_conflicts(mapping.original_url, mapping.short_token)
                except (DuplicateTokenError, DuplicateURLError) as e:
                    logger.error(f"Conflicting record #{mapping.id} in {self.path}: {e}")
                    raise BackingStoreError(f"Conflicting record #{mapping.id} in {self.path}: {e}") from e
                if existing is None:
                    self._insert(mapping)
        logger.info(f"Loaded {len(mappings)} mappings from {self.path}")

    async def _persist(self, mapping: URLMapping) -> None:
        await asyncio.to_thread(self._append, mapping)

    def _read_mappings(self) -> List[URLMapping]:
        if not self.path.exists():
            return []
        try:
            with self.path.open("r", encoding="utf-8") as fh:
                return list(self._parse_lines(fh))
        except OSError as e:
            logger.error(f"Error reading storage file {self.path}: {e}")
            raise BackingStoreError(f"Error reading storage file {self.path}: {e}") from e

    def _parse_lines(self, lines: Iterable[str]) -> Iterable[URLMapping]:
        for line_no, line in enumerate(lines, start=1):
            if not line.strip():
                continue
            try:
                record = json.loads(line)
                yield URLMapping(
                    id=int(record["uuid"]),
                    original_url=record["original_url"],
                    short_token=record["short_url"],
                )
            except (ValueError, KeyError, TypeError) as e:
                raise BackingStoreError(
                    f"Invalid record on line {line_no} of {self.path}: {e}"
                ) from e

    def _append(self, mapping: URLMapping) -> None:
        record = {
            "uuid": str(mapping.id),
            "short_url": mapping.short_token,
            "original_url": mapping.original_url,
        }
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("a", encoding="utf-8") as fh:
                fh.write(json.dumps(record) + "\n")
        except OSError as e:
            logger.error(f"Error writing storage file {self.path}: {e}")
            raise BackingStoreError(f"Error writing storage file {self.path}: {e}") from e
