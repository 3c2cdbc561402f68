"""Pytest fixtures for the account service backend."""

from collections.abc import AsyncIterator
from datetime import timedelta
from pathlib import Path

import pytest
import pytest_asyncio
from alembic import command
from alembic.config import Config
from fastapi import Depends, FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from api.deps import get_blob_store, get_credential_store, get_db
from app import create_app
from core import PasswordHasher, TokenConfig, TokenIssuer, UploadFailed
from services.auth import AuthService, CredentialStore

# Minimum bcrypt cost keeps the suite fast; production cost comes from settings.
FAST_HASHER = PasswordHasher(rounds=4)
TEST_TOKEN_CONFIG = TokenConfig(
    access_secret="test-access-secret-for-the-suite-0001",
    access_ttl=timedelta(minutes=15),
    refresh_secret="test-refresh-secret-for-the-suite-0001",
    refresh_ttl=timedelta(days=10),
)


class FakeBlobStore:
    """Records uploads in memory and returns deterministic URLs."""

    def __init__(self) -> None:
        self.uploads: list[tuple[str, bytes]] = []
        self.fail_prefixes: set[str] = set()

    async def upload(self, local_path: Path, *, prefix: str) -> str:
        if prefix in self.fail_prefixes:
            raise UploadFailed()
        self.uploads.append((prefix, local_path.read_bytes()))
        return f"https://cdn.test/{prefix}/{len(self.uploads)}{local_path.suffix}"


def _alembic_config() -> Config:
    backend_dir = Path(__file__).resolve().parents[1]
    alembic_cfg = Config(str(backend_dir / "alembic.ini"))
    alembic_cfg.set_main_option("script_location", str(backend_dir / "alembic"))
    alembic_cfg.attributes["configure_logger"] = False
    return alembic_cfg


def _run_alembic_migrations(connection: Connection, alembic_cfg: Config) -> None:
    """Apply Alembic migrations over an already-open connection."""
    alembic_cfg.attributes["connection"] = connection
    command.upgrade(alembic_cfg, "head")


@pytest_asyncio.fixture()
async def test_engine(tmp_path: Path) -> AsyncIterator[AsyncEngine]:
    """Create an async engine bound to a freshly migrated SQLite database."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'backend-test.db'}",
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as connection:
        await connection.run_sync(_run_alembic_migrations, _alembic_config())
    yield engine
    await engine.dispose()


@pytest.fixture()
def session_maker(test_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Return a session factory bound to the test engine."""
    return async_sessionmaker(test_engine, expire_on_commit=False)


@pytest_asyncio.fixture()
async def db_session(session_maker) -> AsyncIterator[AsyncSession]:
    """Provide a raw database session to tests."""
    async with session_maker() as session:
        yield session


@pytest.fixture()
def blob_store() -> FakeBlobStore:
    return FakeBlobStore()


@pytest.fixture()
def token_issuer() -> TokenIssuer:
    return TokenIssuer(TEST_TOKEN_CONFIG)


@pytest.fixture()
def make_auth_service(session_maker, blob_store, token_issuer):
    """Build an AuthService over its own session, as each request would."""

    def _make(session: AsyncSession) -> AuthService:
        return AuthService(
            CredentialStore(session, FAST_HASHER),
            token_issuer,
            blob_store=blob_store,
        )

    return _make


@pytest.fixture()
def auth_service(db_session: AsyncSession, make_auth_service) -> AuthService:
    return make_auth_service(db_session)


@pytest.fixture()
def app(session_maker, blob_store: FakeBlobStore) -> FastAPI:
    """Create the FastAPI app with test database and storage overrides."""
    application = create_app()

    async def override_get_db() -> AsyncIterator[AsyncSession]:
        async with session_maker() as session:
            yield session

    def override_get_credential_store(
        session: AsyncSession = Depends(get_db),
    ) -> CredentialStore:
        return CredentialStore(session, FAST_HASHER)

    application.dependency_overrides[get_db] = override_get_db
    application.dependency_overrides[get_credential_store] = override_get_credential_store
    application.dependency_overrides[get_blob_store] = lambda: blob_store
    return application


@pytest_asyncio.fixture()
async def async_client(app: FastAPI) -> AsyncIterator[AsyncClient]:
    """Return an HTTPX async client bound to the FastAPI app."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client
