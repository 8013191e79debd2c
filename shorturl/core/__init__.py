"""Core module for the URL shortener service."""

from shorturl.core.config import Settings, StorageBackend, settings

__all__ = ["Settings", "StorageBackend", "settings"]
