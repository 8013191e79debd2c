"""Exceptions for the URL shortener service layer.

Storage failures are not wrapped here: repository exceptions
(`shorturl.repositories.base`) reach callers unchanged.
"""


class ServiceError(Exception):
    """Base exception for all service-level errors."""
    pass


class URLError(ServiceError):
    """Base exception for URL-related errors."""
    pass


class URLCreationError(URLError):
    """Error occurred during URL creation."""
    pass


class TokenSpaceExhaustedError(URLCreationError):
    """Every generated token collided before the retry ceiling was reached."""

    def __init__(self, attempts: int):
        self.attempts = attempts
        super().__init__(
            f"Failed to generate a unique short token after {attempts} attempts"
        )


class URLNotFoundError(URLError):
    """No URL is stored for the requested token."""

    def __init__(self, short_token: str):
        self.short_token = short_token
        super().__init__(f"URL with token '{short_token}' not found")
