import base64
import hashlib
import hmac
import secrets
import string
from fastapi import Depends, HTTPException, status
from fastapi.security import APIKeyHeader
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from core.database import get_db
from core.logger import get_logger
from models.users import User
from repository import user_repo

logger = get_logger("auth")

# "Authorization" 헤더를 원문 그대로 받음
# (HTTPBearer는 "bearer" 소문자도 통과시키므로 스킴 검사는 직접 수행)
authorization_header = APIKeyHeader(name="Authorization", auto_error=False)

UNAUTHORIZED_MESSAGE = "이 작업을 수행할 권한이 없는 사용자입니다."
INTERNAL_ERROR_MESSAGE = "요청을 처리하는 중 서버 오류가 발생했습니다."

SALT_LENGTH = 16
TOKEN_LENGTH = 64
_ALPHABET = string.ascii_letters + string.digits


def _random_string(length: int) -> str:
    return "".join(secrets.choice(_ALPHABET) for _ in range(length))


def generate_salt() -> str:
    return _random_string(SALT_LENGTH)


def generate_token() -> str:
    return _random_string(TOKEN_LENGTH)


def hash_password(password: str, salt: str) -> str:
    """base64(SHA256(password + salt))"""
    digest = hashlib.sha256((password + salt).encode("utf-8")).digest()
    return base64.b64encode(digest).decode("ascii")


def verify_password(password: str, salt: str, expected_hash: str) -> bool:
    """저장된 해시와 비교 (타이밍 공격 방지를 위해 상수 시간 비교)"""
    return hmac.compare_digest(hash_password(password, salt), expected_hash)


def parse_bearer(authorization: str | None) -> str | None:
    """
    "Bearer <token>" 에서 토큰 추출

    스킴이 정확히 "Bearer" 가 아니거나 토큰이 비어 있으면 None
    """
    if not authorization:
        return None
    # "Bearer a b" 는 두 번째 조각 "a" 만 토큰으로 사용
    parts = authorization.split(" ")
    scheme = parts[0]
    token = parts[1] if len(parts) > 1 else ""
    if scheme != "Bearer" or not token:
        return None
    return token


async def get_current_user(
    authorization: str | None = Depends(authorization_header),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Bearer 토큰을 검증하고 DB에서 User 객체를 반환합니다. (요청당 1회 조회, 캐시 없음)"""
    token = parse_bearer(authorization)
    if token is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=UNAUTHORIZED_MESSAGE)

    try:
        user = await user_repo.find_by_token(db, token)
    except SQLAlchemyError:
        logger.exception("토큰 조회 실패")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=INTERNAL_ERROR_MESSAGE)

    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=UNAUTHORIZED_MESSAGE)

    return user
