import io
import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ.pop("GEMINI_API_KEY", None)

import pytest
from fastapi.testclient import TestClient
from PIL import Image
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import main
from database import Base
from scan_history import ScanHistory


class FakeAI:
    """Stands in for GeminiClient: returns queued replies or raises queued errors."""

    def __init__(self, *replies):
        self.replies = list(replies)
        self.calls = []

    async def generate(self, parts):
        self.calls.append(parts)
        reply = self.replies.pop(0) if self.replies else ""
        if isinstance(reply, BaseException):
            raise reply
        return reply


@pytest.fixture
def db_session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    yield TestingSession
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def fake_ai():
    return FakeAI()


@pytest.fixture
def history():
    return ScanHistory(capacity=3)


@pytest.fixture
def client(db_session_factory, fake_ai, history):
    def override_get_db():
        db = db_session_factory()
        try:
            yield db
        finally:
            db.close()

    main.app.dependency_overrides[main.get_db] = override_get_db
    main.app.dependency_overrides[main.get_ai_client] = lambda: fake_ai
    main.app.dependency_overrides[main.get_scan_history] = lambda: history
    with TestClient(main.app) as c:
        yield c
    main.app.dependency_overrides.clear()


@pytest.fixture
def image_bytes():
    buf = io.BytesIO()
    Image.new("RGB", (8, 8), color=(30, 160, 90)).save(buf, format="PNG")
    return buf.getvalue()
