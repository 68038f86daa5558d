from datetime import datetime, timezone
from sqlalchemy import DateTime
from sqlalchemy.orm import Mapped, mapped_column


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TimestampMixin:
    """
    생성/수정 시간 공통 컬럼

    앱 서버 시간(UTC, 마이크로초 단위)으로 채움:
    - 검색의 기본 정렬(등록 순)이 같은 초에 생성된 문서끼리도 안정적
    - UPDATE 후에도 속성이 만료되지 않아 async 세션에서 바로 응답 직렬화 가능
    """

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
        index=True,
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        nullable=False,
    )
