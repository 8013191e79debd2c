"""
Data models for the URL shortener service.
"""

from shorturl.models.url import MAX_TOKEN_LENGTH, URLMapping, URLMappingRecord

__all__ = [
    "MAX_TOKEN_LENGTH",
    "URLMapping",
    "URLMappingRecord",
]
