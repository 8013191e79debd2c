"""URL shortening service for the URL shortener application.

This module contains the ShortenerService class which implements the business
logic for shortening URLs and resolving tokens on top of a URLRepository.
"""

import logging
from dataclasses import dataclass
from enum import Enum

from shorturl.core.telemetry import get_meter, get_tracer
from shorturl.repositories.base import DuplicateTokenError, DuplicateURLError, URLRepository
from shorturl.services.encoder import TokenEncoder
from shorturl.services.exceptions import TokenSpaceExhaustedError, URLNotFoundError

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 10

tracer = get_tracer("shorturl.services.shortener")
meter = get_meter("shorturl.services.shortener")

tokens_created = meter.create_counter(
    name="shorturl.tokens.created",
    description="Number of new mappings stored",
    unit="1",
)
token_collisions = meter.create_counter(
    name="shorturl.tokens.collisions",
    description="Generated tokens that were already taken",
    unit="1",
)


class ShortenStatus(str, Enum):
    """Outcome of a successful shorten call."""
    CREATED = "created"
    ALREADY_EXISTS = "already_exists"


@dataclass(frozen=True)
class ShortenResult:
    """Short URL handed back by `ShortenerService.shorten`."""
    short_url: str
    short_token: str
    status: ShortenStatus

    @property
    def created(self) -> bool:
        return self.status is ShortenStatus.CREATED


class ShortenerService:
    """
    Service for URL shortening business logic.

    The service is stateless between calls: it holds the repository, the
    encoder and the base URL, none of which it mutates.
    """

    def __init__(
        self,
        repository: URLRepository,
        encoder: TokenEncoder,
        base_url: str,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS
    ):
        """
        Initialize the URL shortening service.

        Args:
            repository: Repository owning the URL/token mappings
            encoder: Source of candidate tokens
            base_url: Prefix of every short URL, e.g. "http://localhost:8080"
            max_attempts: How many tokens to try before giving up on a URL
        """
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.repository = repository
        self.encoder = encoder
        self._base_url = base_url.rstrip("/")
        self.max_attempts = max_attempts

    @property
    def base_url(self) -> str:
        return self._base_url

    def short_url_for(self, short_token: str) -> str:
        """Compose the externally visible short URL for a token."""
        return f"{self._base_url}/{short_token}"

    async def shorten(self, original_url: str) -> ShortenResult:
        """
        Return the short URL for an original URL, creating it if needed.

        Submitting a URL that is already stored is not an error: the existing
        short URL comes back with status ALREADY_EXISTS.

        Args:
            original_url: The URL to shorten; not validated here

        Returns:
            ShortenResult: The short URL and whether it was newly created

        Raises:
            TokenSpaceExhaustedError: If every attempted token was taken
            DuplicateURLError: If the URL was claimed concurrently and its
                token cannot be read back
            BackingStoreError: If the repository fails
        """
        with tracer.start_as_current_span("shortener.shorten") as span:
            existing_token = await self.repository.find_token(original_url)
            if existing_token is not None:
                span.set_attribute("shorturl.status", ShortenStatus.ALREADY_EXISTS.value)
                logger.debug(f"URL already shortened to token {existing_token}")
                return self._result(existing_token, ShortenStatus.ALREADY_EXISTS)

            for attempt in range(1, self.max_attempts + 1):
                candidate = self.encoder.generate_token()
                try:
                    mapping = await self.repository.store(original_url, candidate)
                except DuplicateTokenError:
                    token_collisions.add(1)
                    logger.warning(
                        f"Token {candidate} already taken, attempt {attempt}/{self.max_attempts}"
                    )
                    continue
                except DuplicateURLError:
                    # Another caller stored this URL between our lookup and our store
                    existing_token = await self.repository.find_token(original_url)
                    if existing_token is None:
                        raise
                    span.set_attribute("shorturl.status", ShortenStatus.ALREADY_EXISTS.value)
                    return self._result(existing_token, ShortenStatus.ALREADY_EXISTS)

                tokens_created.add(1)
                span.set_attribute("shorturl.status", ShortenStatus.CREATED.value)
                span.set_attribute("shorturl.attempts", attempt)
                logger.info(f"Created token {mapping.short_token} (mapping #{mapping.id})")
                return self._result(mapping.short_token, ShortenStatus.CREATED)

            logger.error(f"Gave up generating a token after {self.max_attempts} attempts")
            raise TokenSpaceExhaustedError(self.max_attempts)

    async def resolve(self, short_token: str) -> str:
        """
        Return the original URL behind a token.

        Args:
            short_token: The token to look up

        Returns:
            str: The original URL

        Raises:
            URLNotFoundError: If no URL is stored for this token
            BackingStoreError: If the repository fails
        """
        with tracer.start_as_current_span("shortener.resolve"):
            original_url = await self.repository.find_original_url(short_token)
            if original_url is None:
                raise URLNotFoundError(short_token)
            return original_url

    def _result(self, short_token: str, status: ShortenStatus) -> ShortenResult:
        return ShortenResult(
            short_url=self.short_url_for(short_token),
            short_token=short_token,
            status=status,
        )
