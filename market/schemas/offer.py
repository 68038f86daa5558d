from datetime import datetime
from typing import Any, List, Optional, Union
from pydantic import BaseModel, Field, field_validator
from schemas.user import Account, ImageReference


class OfferFields(BaseModel):
    """
    오퍼 생성/수정 요청 (multipart/form-data, 수정은 JSON 본문도 가능)

    모든 필드는 원문 문자열 그대로 받고, 값 검증(길이 제한/가격 범위)은
    offer_service 에서 수행. None 은 "요청에 없음" 을 뜻함.
    """
    title: Optional[str] = None
    description: Optional[str] = None
    price: Optional[Union[str, float]] = None
    brand: Optional[str] = None
    size: Optional[str] = None
    condition: Optional[str] = None
    color: Optional[str] = None
    city: Optional[str] = None

    @field_validator("brand", "size", "condition", "color", "city", mode="before")
    @classmethod
    def number_to_text(cls, v):
        # JSON 본문의 {"size": 42} 같은 숫자 값도 문자열로 저장
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return v


class OfferUpdate(OfferFields):
    """수정 요청: deleteImages 는 목록 또는 JSON 배열 문자열 (항목 검사는 서비스에서)"""
    delete_images: Optional[Union[List[Any], str]] = Field(None, alias="deleteImages")

    model_config = {"populate_by_name": True}


class OfferQuery(BaseModel):
    """검색 쿼리: 숫자 변환은 서비스에서 (변환 실패 시 무시/기본값)"""
    title: Optional[str] = None
    price_min: Optional[str] = None
    price_max: Optional[str] = None
    sort: Optional[str] = None
    page: Optional[str] = None


class OwnerPublic(BaseModel):
    """오퍼 응답에 포함되는 소유자 최소 공개 정보"""
    id: str
    account: Account

    model_config = {"from_attributes": True}


class OfferResponse(BaseModel):
    id: str
    title: str
    description: str
    price: float
    details: List[dict]
    cover_image: Optional[ImageReference] = None
    images: List[ImageReference]
    owner: OwnerPublic
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class OfferList(BaseModel):
    """검색 결과: count 는 페이지와 무관한 전체 매칭 수"""
    count: int
    offers: List[OfferResponse]


class MessageResponse(BaseModel):
    message: str
