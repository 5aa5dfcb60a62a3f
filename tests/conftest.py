"""
Shared pytest fixtures.

Uses a file-backed SQLite database so no Postgres is required for tests.
The AI provider is replaced by FakeSummarizer; no network calls are made.
"""
import uuid
from typing import Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from monitorwatch.core.deps import get_summarizer
from monitorwatch.db.base import Base, get_db
from monitorwatch.main import app
from monitorwatch.services.repository import Repository

SQLITE_URL = "sqlite:///./test_monitorwatch.db"

engine = create_engine(SQLITE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class FakeSummarizer:
    """Records every call; answers with a Markdown document titled after the call number."""

    def __init__(self, title: str = "Focused Work Session"):
        self.title = title
        self.calls: list[dict] = []

    async def summarize(
        self,
        text: str,
        instructions: str,
        model: Optional[str] = None,
        max_tokens: int = 2048,
        temperature: float = 0.7,
        reason: Optional[str] = None,
    ) -> str:
        self.calls.append({
            "text": text,
            "instructions": instructions,
            "model": model,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "reason": reason,
        })
        return f"# {self.title}\n\nSummary #{len(self.calls)}"


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(scope="session", autouse=True)
def create_tables():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def user_id():
    """A fresh user per test keeps rows from leaking between tests."""
    return f"test-{uuid.uuid4().hex[:12]}"


@pytest.fixture()
def repo(db, user_id):
    return Repository(db, user_id)


@pytest.fixture()
def fake_summarizer():
    return FakeSummarizer()


@pytest.fixture()
def client(db, fake_summarizer):
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_summarizer] = lambda: fake_summarizer
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture()
def session_factory():
    return TestingSessionLocal
