import asyncio
import os
import uuid

# Настройки читаются при импорте core.config, поэтому окружение задаём до импортов
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./unimatch-test.db")
os.environ.setdefault("JWT_SECRET", "test-secret")

import pytest
import socketio
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from core.database import get_db
from core.security import create_access_token
from models.base import Base
from models import interaction, match, message, user  # noqa: F401
from models.user import User
from services.delivery import DeliveryRouter
from services.match_engine import swipe
from services.presence import BroadcastGroups, PresenceRegistry


@pytest.fixture
def db_engine(tmp_path):
    # NullPool: каждый asyncio.run и loop TestClient получают свои соединения
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", poolclass=NullPool)

    async def _create():
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    asyncio.run(_create())
    yield engine
    asyncio.run(engine.dispose())


@pytest.fixture
def session_factory(db_engine):
    return async_sessionmaker(bind=db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def call(session_factory):
    """Выполнить сервисную функцию fn(db, *args) в отдельной сессии."""

    def _call(fn, *args, **kwargs):
        async def _go():
            async with session_factory() as db:
                return await fn(db, *args, **kwargs)

        return asyncio.run(_go())

    return _call


@pytest.fixture
def make_user(session_factory):
    def _make(first_name: str = "Ana", is_active: bool = True) -> int:
        async def _create():
            async with session_factory() as db:
                new_user = User(
                    email=f"{first_name.lower()}-{uuid.uuid4().hex[:8]}@uni.test",
                    first_name=first_name,
                    last_name="Test",
                    is_active=is_active,
                )
                db.add(new_user)
                await db.commit()
                return new_user.id

        return asyncio.run(_create())

    return _make


@pytest.fixture
def matched_pair(make_user, call):
    """Два пользователя с взаимным лайком: (a_id, b_id, match_id)."""
    a_id = make_user("Ana")
    b_id = make_user("Bruno")
    call(swipe, a_id, b_id, "like")
    result = call(swipe, b_id, a_id, "like")
    assert result.matched
    return a_id, b_id, result.match.id


class RecordingServer(socketio.AsyncServer):
    """Socket.IO-сервер без транспорта: emit только записывает отправленное."""

    def __init__(self):
        super().__init__(async_mode="asgi")
        self.sent = []
        self.fail_for = set()

    async def emit(self, event, data=None, to=None, **kwargs):
        if to in self.fail_for:
            raise RuntimeError(f"socket {to} is gone")
        self.sent.append((to, event, data))

    def sent_to(self, sid):
        return [(event, data) for to, event, data in self.sent if to == sid]


@pytest.fixture
def sio():
    return RecordingServer()


@pytest.fixture
def delivery(sio):
    return DeliveryRouter(PresenceRegistry(), BroadcastGroups(), sio)


@pytest.fixture
def auth_headers():
    def _headers(user_id: int) -> dict:
        return {"Authorization": f"Bearer {create_access_token(user_id)}"}

    return _headers


@pytest.fixture
def client(db_engine, session_factory, monkeypatch):
    import main

    monkeypatch.setattr(main, "engine", db_engine)
    monkeypatch.setattr(main, "AsyncSessionLocal", session_factory)

    async def override_get_db():
        async with session_factory() as session:
            yield session

    main.app.dependency_overrides[get_db] = override_get_db
    with TestClient(main.app) as test_client:
        yield test_client
    main.app.dependency_overrides.clear()
