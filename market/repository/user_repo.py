from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from models.users import User


async def find_by_email(db: AsyncSession, email: str) -> User | None:
    """정규화된 이메일로 유저 조회"""
    result = await db.execute(select(User).where(User.email == email))
    return result.scalars().first()


async def find_by_token(db: AsyncSession, token: str) -> User | None:
    """Bearer 토큰으로 유저 조회"""
    result = await db.execute(select(User).where(User.token == token))
    return result.scalars().first()


async def create(db: AsyncSession, user: User) -> User:
    """유저 저장 (email 유니크 위반 시 IntegrityError 전파)"""
    db.add(user)
    try:
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    await db.refresh(user)
    return user
