# backend/tests/conftest.py
"""
Shared fixtures.

Every test runs against its own SQLite file selected through DATABASE_URL,
with the process-wide engine and credential caches reset around it. AWS and
MySQL settings from the developer's shell are cleared so they cannot leak in.
"""

import pytest
from fastapi.testclient import TestClient

from student_records.credentials import clear_credentials_cache
from student_records.database import create_tables, dispose_engine, get_session_factory

DB_ENV_VARS = (
    "DATABASE_URL", "DB_HOST", "DB_PORT", "DB_USER", "DB_PASSWORD", "DB_NAME",
    "DB_POOL_TIMEOUT", "USE_SECRETS_MANAGER", "DB_SECRET_ARN", "AWS_SECRET_NAME",
    "AWS_REGION",
)


@pytest.fixture(autouse=True)
def isolated_database(tmp_path, monkeypatch):
    for var in DB_ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path / 'students.db'}")
    dispose_engine()
    clear_credentials_cache()
    yield
    dispose_engine()
    clear_credentials_cache()


@pytest.fixture
def db():
    create_tables()
    session = get_session_factory()()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    from student_records.main import app

    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def ada_payload():
    return {
        "firstName": "Ada",
        "lastName": "Lovelace",
        "email": "ada@example.com",
        "major": "Mathematics",
        "enrollmentDate": "2024-09-01",
        "status": "active",
    }
