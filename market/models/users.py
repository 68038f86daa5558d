import uuid
from typing import Optional
from sqlalchemy import String, Boolean, JSON
from sqlalchemy.orm import Mapped, mapped_column
from models.base import TimestampMixin
from core.database import Base


class User(TimestampMixin, Base):
    """
    사용자 모델

    - email: 소문자 + trim 정규화 후 저장, 유니크 (email/username 은 길이 제한 없음)
    - token: 가입 시 한 번 발급되는 Bearer 토큰 (회전 없음)
    - hash / salt: base64(SHA256(password + salt))
    - avatar: 이미지 참조 dict 또는 None
    """
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )

    email: Mapped[str] = mapped_column(
        String,
        unique=True,
        index=True,          # 로그인/중복 확인 시 조회
        nullable=False,
    )

    username: Mapped[str] = mapped_column(
        String,
        nullable=False,
    )

    avatar: Mapped[Optional[dict]] = mapped_column(
        JSON,
        nullable=True,
        default=None,
    )

    newsletter: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        server_default="false",
    )

    # 인증 게이트가 매 요청마다 조회 → 인덱스 필수
    token: Mapped[str] = mapped_column(
        String(64),
        unique=True,
        index=True,
        nullable=False,
    )

    hash: Mapped[str] = mapped_column(String(64), nullable=False)
    salt: Mapped[str] = mapped_column(String(16), nullable=False)

    @property
    def account(self) -> dict:
        """공개 계정 정보 (username + avatar)"""
        return {"username": self.username, "avatar": self.avatar}
