from collections.abc import Generator

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from src.adapters.dev_email import DevEmailAdapter
from src.adapters.sqlite.migrator import SQLiteMigrator
from src.adapters.sqlite.repos import SQLiteSubscriptionStore
from src.api.deps import get_email_adapter
from src.api.main import create_app
from src.configuration.models import (
    ApplicationSettings,
    DatabaseSettings,
    NewsletterSettings,
    Settings,
)


@pytest.fixture
def db_path(tmp_path) -> str:
    return str(tmp_path / "subscriptions.db")


@pytest.fixture
def migrated_db_path(db_path: str) -> str:
    """Database with all migrations applied."""
    SQLiteMigrator(db_path).run_migrations()
    return db_path


@pytest.fixture
def sqlite_store(migrated_db_path: str) -> SQLiteSubscriptionStore:
    return SQLiteSubscriptionStore(migrated_db_path, busy_timeout_seconds=5.0)


@pytest.fixture
def test_settings(db_path: str) -> Settings:
    return Settings(
        application=ApplicationSettings(base_url="http://test.local"),
        database=DatabaseSettings(path=db_path),
        newsletter=NewsletterSettings(site_name="Test Site"),
    )


@pytest.fixture
def test_email_adapter() -> DevEmailAdapter:
    return DevEmailAdapter()


@pytest.fixture
def app(test_settings: Settings, test_email_adapter: DevEmailAdapter) -> FastAPI:
    app = create_app(test_settings)
    app.dependency_overrides[get_email_adapter] = lambda: test_email_adapter
    return app


@pytest.fixture
def client(app: FastAPI) -> Generator[TestClient, None, None]:
    """Test client; entering it runs startup, which applies migrations."""
    with TestClient(app) as client:
        yield client
