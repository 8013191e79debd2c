"""HTTP middleware for the URL shortener service."""

from shorturl.middleware.logging import REQUEST_ID_HEADER, RequestLoggingMiddleware

__all__ = ["REQUEST_ID_HEADER", "RequestLoggingMiddleware"]
