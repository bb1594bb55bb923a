"""Pytest configuration and fixtures for WatchTogether tests.

Test isolation strategy:
- Every test gets its own in-memory SQLite database (create_db_engine
  shares one connection for "sqlite://") with the schema created from the
  ORM models
- API tests use a TestClient whose get_db dependency is bound to that
  database and whose catalog client is a TMDBClient over a plain
  httpx.Client, mocked per test with respx
- Auth uses MockJwtVerifier; mint tokens with tests.helpers.auth_headers
"""

import os

os.environ["APP_ENV"] = "test"
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ["AUTH_JWKS_URL"] = "https://auth.example.test/.well-known/jwks.json"
os.environ["AUTH_ISSUER"] = "test-issuer"
os.environ["AUTH_AUDIENCES"] = "test-audience"
os.environ["INTERNAL_SECRET"] = "test-internal-secret"

from collections.abc import Generator  # noqa: E402

import httpx  # noqa: E402
import pytest  # noqa: E402
from fastapi import FastAPI  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import Engine  # noqa: E402
from sqlalchemy.orm import Session, sessionmaker  # noqa: E402

from tests.helpers import INTERNAL_SECRET  # noqa: E402
from tests.support.mock_verifier import MockJwtVerifier  # noqa: E402
from watchtogether.api.deps import get_catalog_client, get_db  # noqa: E402
from watchtogether.app import add_request_id_middleware, create_app  # noqa: E402
from watchtogether.auth.middleware import AuthMiddleware  # noqa: E402
from watchtogether.config import clear_settings_cache  # noqa: E402
from watchtogether.db.engine import create_db_engine  # noqa: E402
from watchtogether.db.session import create_session_factory, init_db  # noqa: E402
from watchtogether.services.tmdb import TMDBClient  # noqa: E402

TMDB_BASE_URL = "https://api.themoviedb.org/3"


@pytest.fixture
def engine() -> Generator[Engine, None, None]:
    engine = create_db_engine("sqlite://")
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine: Engine) -> sessionmaker[Session]:
    return create_session_factory(engine)


@pytest.fixture
def db_session(session_factory: sessionmaker[Session]) -> Generator[Session, None, None]:
    """A session on the per-test database."""
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def catalog_client() -> Generator[TMDBClient, None, None]:
    """A catalog client; mock its HTTP calls with respx."""
    with httpx.Client() as http_client:
        yield TMDBClient(http_client, api_key="test-key", base_url=TMDB_BASE_URL, timeout_s=2.0)


@pytest.fixture
def app(session_factory: sessionmaker[Session], catalog_client: TMDBClient) -> FastAPI:
    """The application with the test verifier and the per-test database."""
    app = create_app(skip_auth_middleware=True)
    app.add_middleware(
        AuthMiddleware,
        verifier=MockJwtVerifier(),
        internal_secret=INTERNAL_SECRET,
    )
    add_request_id_middleware(app)

    def override_get_db() -> Generator[Session, None, None]:
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_catalog_client] = lambda: catalog_client
    return app


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    """Client for the authenticated app.

    The lifespan is not entered; the catalog client comes from the
    dependency override.
    """
    return TestClient(app)


@pytest.fixture(autouse=True)
def reset_settings_cache():
    """Reset the settings cache before each test."""
    clear_settings_cache()
    yield
    clear_settings_cache()
