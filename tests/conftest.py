"""Test fixtures for the URL shortener service."""

from typing import Generator

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from shorturl.core.config import CLI_FLAGS, Settings
from shorturl.main import create_app
from shorturl.repositories.memory import FileURLRepository, InMemoryURLRepository
from shorturl.repositories.sql import SQLURLRepository
from shorturl.services.encoder import Base62Encoder
from shorturl.services.shortener import ShortenerService
from tests.utils import BASE_URL

# Test database URL - using SQLite in-memory
TEST_SQLALCHEMY_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Keep the caller's environment from leaking into settings."""
    for field in CLI_FLAGS.values():
        monkeypatch.delenv(field, raising=False)
    monkeypatch.setenv("ENVIRONMENT", "testing")
    monkeypatch.setenv("OTEL_ENABLED", "false")
    monkeypatch.setenv("LOG_DIR", "")


@pytest.fixture
def memory_repository() -> InMemoryURLRepository:
    """Return an empty in-memory repository."""
    return InMemoryURLRepository()


@pytest_asyncio.fixture
async def file_repository(tmp_path):
    """Return an opened file repository in a temporary directory."""
    repository = FileURLRepository(tmp_path / "storage" / "urls.json")
    await repository.open()
    yield repository
    await repository.close()


@pytest_asyncio.fixture
async def sql_repository():
    """Return a database repository on a fresh in-memory SQLite database."""
    engine = create_async_engine(
        TEST_SQLALCHEMY_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False
    )
    repository = SQLURLRepository(engine)
    await repository.open()
    yield repository
    await repository.close()


@pytest.fixture
def shortener_service(memory_repository) -> ShortenerService:
    """Return a service over an in-memory repository."""
    return ShortenerService(
        repository=memory_repository,
        encoder=Base62Encoder(),
        base_url=BASE_URL,
    )


@pytest.fixture
def test_settings() -> Settings:
    """Settings for an in-memory application."""
    return Settings(
        BASE_URL=BASE_URL,
        SERVER_ADDRESS="localhost:8080",
        REQUEST_LOGGING_ENABLED=True,
        LOG_LEVEL="WARNING",
    )


@pytest.fixture
def client(test_settings) -> Generator[TestClient, None, None]:
    """Return FastAPI TestClient instance with the lifespan running."""
    app = create_app(test_settings)
    with TestClient(app, follow_redirects=False) as test_client:
        yield test_client
