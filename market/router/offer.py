from typing import List, Optional
from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, Request, UploadFile, status
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from core.database import get_db
from core.dependencies import get_image_store
from core.security import get_current_user
from models.users import User
from schemas.offer import MessageResponse, OfferFields, OfferList, OfferQuery, OfferResponse, OfferUpdate
from service import offer_service
from service.image_store import ImageStore, collect_pictures

router = APIRouter()


@router.post("/offer/publish", response_model=OfferResponse, status_code=status.HTTP_201_CREATED)
async def publish_offer(
    title: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    price: Optional[str] = Form(None),
    brand: Optional[str] = Form(None),
    size: Optional[str] = Form(None),
    condition: Optional[str] = Form(None),
    color: Optional[str] = Form(None),
    city: Optional[str] = Form(None),
    picture: Optional[List[UploadFile]] = File(None),
    pictures: Optional[List[UploadFile]] = File(None),
    image: Optional[List[UploadFile]] = File(None),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    store: ImageStore = Depends(get_image_store),
):
    """오퍼 등록 (이미지 1장 이상, picture / pictures / image 필드 모두 허용)"""
    fields = OfferFields(
        title=title, description=description, price=price,
        brand=brand, size=size, condition=condition, color=color, city=city,
    )
    return await offer_service.create_offer(
        db, store, current_user, fields, collect_pictures(picture, pictures, image)
    )


def _is_json(request: Request) -> bool:
    return request.headers.get("content-type", "").split(";")[0].strip() == "application/json"


async def _json_changes(request: Request) -> OfferUpdate:
    """JSON 본문 → OfferUpdate (형식이 틀리면 400)"""
    try:
        payload = await request.json()
    except ValueError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="JSON 본문을 해석할 수 없습니다.")
    if not isinstance(payload, dict):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="JSON 본문은 객체여야 합니다.")
    try:
        return OfferUpdate.model_validate(payload)
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"잘못된 필드 값입니다: {e.errors()[0]['loc']}")


@router.put("/offer/{offer_id}", response_model=OfferResponse)
async def update_offer(
    offer_id: str,
    request: Request,
    title: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    price: Optional[str] = Form(None),
    brand: Optional[str] = Form(None),
    size: Optional[str] = Form(None),
    condition: Optional[str] = Form(None),
    color: Optional[str] = Form(None),
    city: Optional[str] = Form(None),
    delete_images: Optional[List[str]] = Form(None, alias="deleteImages"),
    picture: Optional[List[UploadFile]] = File(None),
    pictures: Optional[List[UploadFile]] = File(None),
    image: Optional[List[UploadFile]] = File(None),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    store: ImageStore = Depends(get_image_store),
):
    """
    오퍼 수정 (소유자만): 필드 변경, deleteImages 로 이미지 삭제, 새 이미지 추가

    파일이 없으면 JSON 본문도 받음 (폼 파라미터는 JSON 요청에서 모두 None)
    """
    if _is_json(request):
        changes = await _json_changes(request)
        new_pictures = []
    else:
        changes = OfferUpdate(
            title=title, description=description, price=price,
            brand=brand, size=size, condition=condition, color=color, city=city,
            # 값이 하나면 JSON 배열 문자열, 여러 개면 그대로 목록
            delete_images=delete_images[0] if delete_images and len(delete_images) == 1 else delete_images,
        )
        new_pictures = collect_pictures(picture, pictures, image)

    return await offer_service.update_offer(db, store, current_user, offer_id, changes, new_pictures)


@router.delete("/offer/{offer_id}", response_model=MessageResponse)
async def delete_offer(
    offer_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    store: ImageStore = Depends(get_image_store),
):
    """오퍼 삭제 (소유자만): 저장소 이미지 정리는 best-effort"""
    await offer_service.delete_offer(db, store, current_user, offer_id)
    return MessageResponse(message="오퍼가 삭제되었습니다.")


@router.get("/offers", response_model=OfferList)
async def search_offers(
    title: Optional[str] = Query(None),
    price_min: Optional[str] = Query(None, alias="priceMin"),
    price_max: Optional[str] = Query(None, alias="priceMax"),
    sort: Optional[str] = Query(None),
    page: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
):
    """오퍼 검색: 제목 부분일치, 가격 범위, 가격 정렬, 10개 단위 페이지"""
    query = OfferQuery(title=title, price_min=price_min, price_max=price_max, sort=sort, page=page)
    count, offers = await offer_service.search_offers(db, query)
    return {"count": count, "offers": offers}


@router.get("/offers/{offer_id}", response_model=OfferResponse)
async def get_offer(offer_id: str, db: AsyncSession = Depends(get_db)):
    """오퍼 상세 조회"""
    return await offer_service.get_offer(db, offer_id)
