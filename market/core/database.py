from collections.abc import AsyncGenerator
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.orm import DeclarativeBase
from core.config import settings

# 1. Async 엔진 생성
#    - pool_size / max_overflow: 커넥션 풀 설정 (SQLite는 풀 옵션을 받지 않음)
_pool_options = {} if settings.database_url.startswith("sqlite") else {
    "pool_size": 5,
    "max_overflow": 10,
}

engine = create_async_engine(
    settings.database_url,
    echo=settings.database_echo,
    **_pool_options,
)


# 2. 세션 팩토리
#    - expire_on_commit=False: commit 후에도 객체 속성에 접근 가능
async_session = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False
)


# 3. Base 클래스: 모든 모델이 상속받는 부모
class Base(DeclarativeBase):
    pass


async def create_tables() -> None:
    """앱 시작 시 테이블 생성 (이미 있으면 건너뜀)"""
    # 모델을 import해야 metadata에 테이블이 등록됨
    import models.users  # noqa: F401
    import models.offer  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


# 4. DB 세션 DI (Dependency Injection)
async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with async_session() as session:
        try:
            yield session
        finally:
            await session.close()
