"""API dependencies for FastAPI.

The repository is shared by every request, so the service built around it
lives on the application state and is handed out from there.
"""

from fastapi import Request

from shorturl.repositories.base import URLRepository
from shorturl.services.shortener import ShortenerService


def get_shortener_service(request: Request) -> ShortenerService:
    """Get the application's URL shortening service."""
    return request.app.state.shortener_service


def get_repository(request: Request) -> URLRepository:
    """Get the application's URL repository."""
    return request.app.state.repository
