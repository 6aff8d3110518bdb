"""Shared test configuration: test settings and an in-memory database."""

import os

os.environ["ENV"] = "test"
os.environ["ENCRYPTION_KEY"] = "test-encryption-key"
os.environ["GITLAB_BASE_URL"] = "https://gitlab.example.com"
os.environ["SITE_URL"] = "https://chat.example.com"
os.environ["GITLAB_ORG"] = ""
os.environ.pop("SLASH_COMMAND_TOKEN", None)
os.environ.pop("INTERNAL_API_TOKEN", None)

import pytest  # noqa: E402

from app.db import Base, SessionLocal, engine  # noqa: E402
import app.models  # noqa: E402,F401

pytest_plugins = [
    "tests.fixtures.identity_fixtures",
    "tests.fixtures.gitlab_fixtures",
    "tests.fixtures.host_fixtures",
]


@pytest.fixture(scope="function")
def db():
    """Fresh schema per test on the shared in-memory SQLite engine."""
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
