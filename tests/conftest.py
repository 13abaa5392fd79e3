"""
Pytest configuration and fixtures for the spx builder backend tests.

Every test runs against an in-memory SQLite database and an in-memory blob
store, so no MySQL server or bucket is needed.
"""
import io
import logging

import pytest
from fastapi.testclient import TestClient
from PIL import Image
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from core.blob import MemoryBlobStore
from core.config import Settings
from core.controller import Controller
from main import create_app
from models import asset, project  # noqa: F401
from models.base import Base

logger = logging.getLogger(__name__)

CDN_PREFIX = "https://cdn.example.com"


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        DRIVER="sqlite",
        DSN="sqlite://",
        BLOB_US="mem://",
        CDN_PREFIX=CDN_PREFIX,
        AUTO_CREATE_TABLES=False,
        LOG_LEVEL="DEBUG",
    )


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    """Raw session for arranging rows directly."""
    session = sessionmaker(bind=engine, autoflush=False, future=True)()
    yield session
    session.close()


@pytest.fixture
def blob() -> MemoryBlobStore:
    return MemoryBlobStore(CDN_PREFIX)


@pytest.fixture
def controller(settings, engine, blob) -> Controller:
    return Controller(settings, engine=engine, blob=blob)


@pytest.fixture
def client(settings, controller):
    app = create_app(settings, controller)
    with TestClient(app) as c:
        yield c


@pytest.fixture
def png_factory():
    """Build small PNG frames: ``png_factory((255, 0, 0), size=(8, 8))``."""

    def _make(color=(255, 0, 0), size=(8, 8)) -> bytes:
        buf = io.BytesIO()
        Image.new("RGB", size, color).save(buf, format="PNG")
        return buf.getvalue()

    return _make
