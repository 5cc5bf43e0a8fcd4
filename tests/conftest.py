import sys
from pathlib import Path as _Path
sys.path.insert(0, str(_Path(__file__).resolve().parents[1] / "src"))

from pathlib import Path

import fakeredis
import pytest
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import create_async_engine

from catan.app import create_app
from catan.auth.passwords import PasswordHasher
from catan.auth.session import SessionManager
from catan.infra.accounts_repo import AccountsRepo
from catan.infra.db import init_schema
from catan.infra.session_store import RedisSessionStore
from catan.services.account_service import AccountService
from catan.settings import Settings

SECRET = "test-session-secret"


class RecordingMailer:
    """Stands in for SMTP delivery; keeps every message it was asked to send."""

    def __init__(self):
        self.sent = []

    async def send_mail(self, to, subject, text=None, html=None):
        self.sent.append({"to": to, "subject": subject, "text": text, "html": html})


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def hasher() -> PasswordHasher:
    # Minimal argon2 cost so the suite stays fast.
    return PasswordHasher(time_cost=1, memory_cost=8, parallelism=1)


@pytest.fixture
def database_url(tmp_path: Path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'catan.db'}"


@pytest.fixture
def settings(database_url) -> Settings:
    return Settings(session_secret=SECRET, database_url=database_url, cors_origins=["http://localhost:5173"])


@pytest.fixture
def redis_server():
    return fakeredis.FakeServer()


@pytest.fixture
def redis_factory(redis_server):
    return lambda _settings: fakeredis.FakeAsyncRedis(server=redis_server, decode_responses=True)


@pytest.fixture
def mailer() -> RecordingMailer:
    return RecordingMailer()


@pytest.fixture
def app(settings, redis_factory, hasher, mailer):
    return create_app(settings, redis_factory=redis_factory, hasher=hasher, mailer=mailer)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture
async def engine(anyio_backend, database_url):
    eng = create_async_engine(database_url)
    await init_schema(eng)
    yield eng
    await eng.dispose()


@pytest.fixture
def repo(engine) -> AccountsRepo:
    return AccountsRepo(engine)


@pytest.fixture
def accounts(repo, hasher) -> AccountService:
    return AccountService(repo, hasher)


@pytest.fixture
async def redis(anyio_backend, redis_server):
    client = fakeredis.FakeAsyncRedis(server=redis_server, decode_responses=True)
    yield client
    await client.aclose()


@pytest.fixture
def session_store(redis) -> RedisSessionStore:
    return RedisSessionStore(redis, prefix="sess:", idle_seconds=60)


@pytest.fixture
def sessions(session_store) -> SessionManager:
    return SessionManager(session_store, SECRET)


def signup(client, username="donnis", email="donnis@donnis.net", password="password123"):
    return client.post("/auth/signup", json={"username": username, "email": email, "password": password})
