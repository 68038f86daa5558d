import uuid
from typing import Optional
from sqlalchemy import String, Float, ForeignKey, JSON
from sqlalchemy.orm import Mapped, mapped_column, relationship
from models.base import TimestampMixin
from models.users import User
from core.database import Base


class Offer(TimestampMixin, Base):
    """
    상품(오퍼) 모델
    User : Offer = 1 : N

    details / images / cover_image 는 문서형 JSON 컬럼.
    변경 시에는 항상 새 리스트/dict를 대입해야 ORM이 변경을 감지함.
    """
    __tablename__ = "offers"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )

    title: Mapped[str] = mapped_column(String(50), nullable=False)

    description: Mapped[str] = mapped_column(String(500), nullable=False, default="")

    price: Mapped[float] = mapped_column(Float, nullable=False, index=True)

    # [{"MARQUE": "Nike"}, {"TAILLE": "M"}, ...]
    details: Mapped[list] = mapped_column(JSON, nullable=False, default=list)

    # images[0] 과 같은 이미지 참조 (삭제 후 재지정 가능)
    cover_image: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True, default=None)

    images: Mapped[list] = mapped_column(JSON, nullable=False, default=list)

    owner_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id"),
        nullable=False,
        index=True,
    )

    # 응답 시 owner 공개 정보가 필요하므로 항상 함께 로딩
    owner: Mapped[User] = relationship(lazy="selectin")
