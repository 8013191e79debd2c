"""API package for the URL shortener service.

This package contains the HTTP layer: routes, request/response schemas and
dependency providers. It only talks to the service layer.
"""

from shorturl.api.routes import build_api_router

__all__ = ["build_api_router"]
