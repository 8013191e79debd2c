"""Short token generation.

Tokens are drawn uniformly from the 62-character alphabet of digits,
uppercase and lowercase letters, using the operating system CSPRNG.
"""

import logging
import secrets
import string
from abc import ABC, abstractmethod

from shorturl.models.url import MAX_TOKEN_LENGTH

logger = logging.getLogger(__name__)

BASE62_ALPHABET = string.digits + string.ascii_uppercase + string.ascii_lowercase


class TokenEncoder(ABC):
    """Produces candidate short tokens, independent of any stored state."""

    @abstractmethod
    def generate_token(self) -> str:
        """Return a fresh token of at most MAX_TOKEN_LENGTH base62 characters."""


class Base62Encoder(TokenEncoder):
    """
    Random base62 token generator.

    Every call draws a new token; nothing is cached. A failing randomness
    source is retried here, so callers never see an error.
    """

    def __init__(self, length: int = MAX_TOKEN_LENGTH):
        """
        Initialize the encoder.

        Args:
            length: Number of characters per token, 1 to MAX_TOKEN_LENGTH
        """
        if not 1 <= length <= MAX_TOKEN_LENGTH:
            raise ValueError(f"Token length must be between 1 and {MAX_TOKEN_LENGTH}, got {length}")
        self.length = length

    def generate_token(self) -> str:
        while True:
            try:
                return "".join(secrets.choice(BASE62_ALPHABET) for _ in range(self.length))
            except OSError as e:
                logger.warning(f"Randomness source failed, drawing again: {e}")
