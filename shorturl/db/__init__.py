"""Database module for the URL shortener service."""
from shorturl.db.base import get_engine, get_session_factory, normalize_dsn

__all__ = [
    "get_engine",
    "get_session_factory",
    "normalize_dsn",
]
