"""Test utilities for URL shortener tests."""

import asyncio
import random
import string
from typing import Iterable, List, Optional

from shorturl.repositories.memory import InMemoryURLRepository
from shorturl.services.encoder import TokenEncoder

BASE_URL = "http://localhost:8080"


def random_string(length: int = 10) -> str:
    """Generate a random alphanumeric string."""
    return ''.join(random.choice(string.ascii_letters + string.digits) for _ in range(length))


def random_url() -> str:
    """Generate a random URL for testing."""
    domain = f"{random_string(8)}.com"
    path = random_string(12)
    return f"https://{domain}/{path}"


class SequenceEncoder(TokenEncoder):
    """Encoder returning a fixed sequence of tokens, for deterministic tests."""

    def __init__(self, tokens: Iterable[str]):
        self._tokens = iter(tokens)
        self.calls = 0

    def generate_token(self) -> str:
        self.calls += 1
        return next(self._tokens)


class YieldingRepository(InMemoryURLRepository):
    """In-memory repository that yields to the event loop before every call.

    Forces concurrent tasks to interleave between the lookup and the store,
    which an uncontended asyncio lock would otherwise never do.
    """

    async def find_token(self, original_url: str) -> Optional[str]:
        await asyncio.sleep(0)
        return await super().find_token(original_url)

    async def store(self, original_url: str, short_token: str):
        await asyncio.sleep(0)
        return await super().store(original_url, short_token)


def distinct_urls(count: int) -> List[str]:
    """Generate `count` different URLs."""
    return [f"https://example.com/page/{i}/{random_string(6)}" for i in range(count)]
