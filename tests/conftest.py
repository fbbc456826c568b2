"""
Pytest Configuration and Fixtures

Unit tests run against an in-memory SQLite database (aiosqlite) with a
deterministic fake embedder; no Docker, network or API keys required.
"""

import os

from dotenv import load_dotenv

# ---------------------------------------------------------------------------
# Test environment - MUST be before any notetree imports.
#
# The storage and embedding settings are forced so a developer .env pointing
# at PostgreSQL or a real OpenAI key cannot leak into the unit suite.
# ---------------------------------------------------------------------------
load_dotenv()  # .env → os.environ (no-op if file is missing)

os.environ["DATABASE_URL_OVERRIDE"] = "sqlite+aiosqlite://"
os.environ["OPENAI_API_KEY"] = "mock"
os.environ["EMBEDDING_DIMENSION"] = "4"

_test_env = {
    "JWT_SECRET": "test-secret-key-for-the-unit-suite-0123456789",
    "REDIS_HOST": "localhost",
    "ANTHROPIC_API_KEY": "test-anthropic-key",
}
for _key, _value in _test_env.items():
    os.environ.setdefault(_key, _value)

# ---------------------------------------------------------------------------
# Imports (safe now that env vars are set)
# ---------------------------------------------------------------------------
import itertools  # noqa: E402
import json  # noqa: E402
import uuid  # noqa: E402
from collections.abc import AsyncGenerator, Generator  # noqa: E402
from datetime import UTC, datetime, timedelta  # noqa: E402
from unittest.mock import AsyncMock, patch  # noqa: E402

import jwt  # noqa: E402
import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker  # noqa: E402

from notetree.core.config import settings  # noqa: E402
from notetree.core.database import build_engine, get_db, init_models  # noqa: E402
from notetree.repositories.notes import NoteRepository  # noqa: E402
from notetree.schemas.notes import NoteTag, NoteWrite  # noqa: E402
from notetree.services.notes import NoteService, get_note_service  # noqa: E402

OWNER = "user-1"
OTHER = "user-2"


def doc(text: str) -> str:
    """Minimal editor document with one paragraph."""
    return json.dumps(
        {
            "root": {
                "type": "root",
                "children": [
                    {"type": "paragraph", "children": [{"type": "text", "text": text}]}
                ],
            }
        }
    )


def make_write(
    title: str = "Note",
    text: str = "",
    parent: uuid.UUID | None = None,
    note_id: uuid.UUID | None = None,
    tags: list[NoteTag] | None = None,
) -> NoteWrite:
    return NoteWrite(
        id=note_id or uuid.uuid4(),
        title=title,
        body=doc(text),
        parent=parent,
        tags=tags or [],
    )


def auth_header(user_id: str = OWNER) -> dict[str, str]:
    token = jwt.encode(
        {"user_id": user_id}, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM
    )
    return {"Authorization": f"Bearer {token}"}


class FakeEmbedder:
    """
    Keyword embedder over a 4-dimensional space.

    Text containing "alpha" maps to e1, "beta" to e2, "gamma" to e3, anything
    else to e4. Text containing any string in ``failing`` raises.
    """

    KEYWORDS = ("alpha", "beta", "gamma")

    def __init__(self) -> None:
        self.failing: set[str] = set()
        self.calls: list[str] = []

    async def __call__(self, text: str) -> list[float]:
        self.calls.append(text)
        for marker in self.failing:
            if marker in text:
                raise RuntimeError("provider down")
        vector = [0.0, 0.0, 0.0, 0.0]
        for index, keyword in enumerate(self.KEYWORDS):
            if keyword in text.lower():
                vector[index] = 1.0
                return vector
        vector[3] = 1.0
        return vector


@pytest.fixture
def fake_embedder() -> FakeEmbedder:
    return FakeEmbedder()


@pytest_asyncio.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    engine = build_engine("sqlite+aiosqlite://")
    await init_models(engine)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session(engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    factory = async_sessionmaker(engine, expire_on_commit=False)
    async with factory() as session:
        yield session


@pytest.fixture
def repo() -> NoteRepository:
    return NoteRepository(dimension=4)


@pytest.fixture
def service(repo: NoteRepository, fake_embedder: FakeEmbedder) -> NoteService:
    return NoteService(
        repository=repo,
        embedder=fake_embedder,
        dimension=4,
        distance_threshold=0.8,
    )


@pytest.fixture
def client(service: NoteService) -> Generator[TestClient, None, None]:
    """
    TestClient bound to a private in-memory database.

    The engine is handed to the lifespan so that schema creation and every
    request run on the TestClient's own event loop.
    """
    from notetree.main import app

    test_engine = build_engine("sqlite+aiosqlite://")
    factory = async_sessionmaker(test_engine, expire_on_commit=False)

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with factory() as db:
            yield db

    async def dispose_test_engine() -> None:
        await test_engine.dispose()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_note_service] = lambda: service

    with (
        patch("notetree.main.get_engine", return_value=test_engine),
        patch("notetree.main.dispose_engine", new=dispose_test_engine),
        patch("notetree.main.query_cache", new=AsyncMock()),
        TestClient(app) as test_client,
    ):
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def clock() -> Generator[None, None, None]:
    """Make repository timestamps strictly increasing, one second per write."""
    base = datetime(2026, 1, 1, tzinfo=UTC)
    ticks = itertools.count()

    def now() -> datetime:
        return base + timedelta(seconds=next(ticks))

    with patch("notetree.repositories.notes.utcnow", new=now):
        yield
