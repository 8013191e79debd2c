"""URL shortener: short token generation, storage and resolution."""

__version__ = "0.1.0"
