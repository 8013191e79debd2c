"""URL mapping data models.

This module defines the URLMapping value object handed out by repositories and
the URLMappingRecord table used by the database-backed repository.
"""
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Column, DateTime
from sqlmodel import Field, SQLModel

# Longest token the encoder produces and the table accepts
MAX_TOKEN_LENGTH = 8


@dataclass(frozen=True)
class URLMapping:
    """
    Association between one original URL and one short token.

    Mappings are never mutated once created. `id` is the repository's
    sequence number at the time of the store and is not exposed to clients.
    """

    id: int
    original_url: str
    short_token: str


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class URLMappingRecord(SQLModel, table=True):
    """
    Table row for a URL mapping.

    Both columns carry a unique constraint so the database itself refuses
    any row that would map a token to a second URL or a URL to a second token.
    """

    __tablename__ = "url_mappings"

    id: Optional[int] = Field(default=None, primary_key=True)
    original_url: str = Field(
        unique=True,
        nullable=False,
        description="The original (long) URL"
    )
    short_token: str = Field(
        unique=True,
        nullable=False,
        max_length=MAX_TOKEN_LENGTH,
        description="Short token substituted for the original URL"
    )
    created_at: datetime = Field(
        default_factory=_utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )

    def to_mapping(self) -> URLMapping:
        """Convert the row to the repository value object."""
        return URLMapping(
            id=self.id,
            original_url=self.original_url,
            short_token=self.short_token,
        )
