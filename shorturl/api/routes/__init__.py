"""Routes package initialization.

This module exports the route collection for the service.
"""

from fastapi import APIRouter

from shorturl.api.routes import health, redirect, shortener


def build_api_router(api_prefix: str = "/api") -> APIRouter:
    """Assemble the root router.

    The plain-text shorten endpoint and redirects live at the site root, the
    JSON API and health probes under `api_prefix`.
    """
    api_router = APIRouter()

    api_router.include_router(shortener.root_router)
    api_router.include_router(shortener.router, prefix=api_prefix)
    api_router.include_router(health.router, prefix=api_prefix)

    # Redirects go last: /{short_token} matches any single path segment
    api_router.include_router(redirect.router)
    return api_router


__all__ = ["build_api_router"]
