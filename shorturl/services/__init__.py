"""Service layer for the URL shortener service.

This package contains the token encoder and the ShortenerService, which
orchestrates the encoder and a repository.
"""

from shorturl.services.encoder import BASE62_ALPHABET, Base62Encoder, TokenEncoder
from shorturl.services.shortener import ShortenerService, ShortenResult, ShortenStatus

__all__ = [
    "BASE62_ALPHABET",
    "Base62Encoder",
    "TokenEncoder",
    "ShortenerService",
    "ShortenResult",
    "ShortenStatus",
]
