"""API request and response schemas.

This module contains Pydantic models for API request validation
and response serialization.
"""

from typing import Optional

from pydantic import BaseModel, Field, field_validator


class ShortenRequest(BaseModel):
    """Request schema for shortening a URL through the JSON API."""
    url: str = Field(..., min_length=1, description="The original URL to shorten")

    @field_validator("url")
    def strip_url(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("url must not be blank")
        return v


class ShortenResponse(BaseModel):
    """Response schema carrying the short URL."""
    result: str


class ReadinessResponse(BaseModel):
    """Response schema for the readiness probe."""
    ready: bool
    storage: str
    mappings: Optional[int] = None
    error: Optional[str] = None


class ErrorResponse(BaseModel):
    """Response schema for errors."""
    detail: str
    error_id: Optional[str] = None
