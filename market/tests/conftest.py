"""
pytest 공통 설정
"""
import sys
import os
import asyncio
import tempfile
import uuid
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

# 앱 모듈 import 전에 테스트용 설정 주입 (SQLite 파일 DB + 인메모리 이미지 저장소)
_tmp_dir = tempfile.mkdtemp(prefix="market-test-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_tmp_dir}/test.db"
os.environ["USE_IN_MEMORY_IMAGE_STORE"] = "true"

import pytest
from starlette.testclient import TestClient
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import NullPool

from fastapi import FastAPI
from core.database import Base, get_db
from core.config import settings
from core.dependencies import get_image_store
from main import register
from service.image_store import InMemoryImageStore
import models.users  # noqa: F401
import models.offer  # noqa: F401

# ===== NullPool 엔진: 매 요청마다 새 커넥션 (테스트 전용) =====
test_engine = create_async_engine(settings.database_url, poolclass=NullPool)
test_session_factory = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)

async def override_get_db():
    async with test_session_factory() as session:
        try:
            yield session
        finally:
            await session.close()

# ===== 테스트 전용 앱 (미들웨어/lifespan 없이) =====
test_app = register(FastAPI())

# 핵심: get_db를 NullPool 버전으로 교체
test_app.dependency_overrides[get_db] = override_get_db


async def _reset_tables():
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)


def run_db(fn):
    """테스트 코드에서 DB 직접 조회: run_db(lambda s: s.get(User, id))"""
    async def _run():
        async with test_session_factory() as session:
            return await fn(session)
    return asyncio.run(_run())


JPEG = ("photo.jpg", b"\xff\xd8\xff\xe0fake-jpeg", "image/jpeg")
PNG = ("photo.png", b"\x89PNGfake-png", "image/png")
TEXT = ("notes.txt", b"not an image", "text/plain")


@pytest.fixture(autouse=True)
def clean_db():
    """테스트마다 빈 테이블로 시작"""
    asyncio.run(_reset_tables())
    yield


@pytest.fixture
def image_store():
    store = InMemoryImageStore()
    test_app.dependency_overrides[get_image_store] = lambda: store
    yield store
    test_app.dependency_overrides.pop(get_image_store, None)


@pytest.fixture
def client(image_store):
    """동기식 테스트 클라이언트"""
    with TestClient(test_app) as c:
        yield c


def signup(client, email=None, username=None, password="Secret123!", **extra):
    unique = uuid.uuid4().hex[:6]
    response = client.post("/user/signup", data={
        "username": username or f"user_{unique}",
        "email": email or f"user_{unique}@example.com",
        "password": password,
        **extra,
    })
    assert response.status_code == 201, response.text
    return response.json()


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_headers(client):
    """인증된 헤더: 회원가입 후 발급된 토큰"""
    return bearer(signup(client)["token"])


@pytest.fixture
def other_headers(client):
    """오퍼 소유자가 아닌 다른 사용자"""
    return bearer(signup(client)["token"])


def publish(client, headers, files=None, **fields):
    data = {"title": "Veste en jean", "description": "Très bon état", "price": "25", **fields}
    if files is None:
        files = [("picture", JPEG)]
    return client.post("/offer/publish", data=data, files=files, headers=headers)


@pytest.fixture
def offer(client, auth_headers):
    """이미지 2장짜리 오퍼"""
    response = publish(client, auth_headers, files=[("picture", JPEG), ("picture", PNG)])
    assert response.status_code == 201, response.text
    return response.json()
