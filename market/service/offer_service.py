import json
import math
import re
import uuid

import httpx
from fastapi import HTTPException, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import settings
from core.logger import get_logger
from models.offer import Offer
from models.users import User
from repository import offer_repo
from schemas.offer import OfferFields, OfferQuery, OfferUpdate
from service.image_store import ImageStore, ImageStoreError, upload_image

logger = get_logger("offer")

# 입력 필드 → details 라벨 (이 순서대로 저장)
DETAIL_LABELS = (
    ("brand", "MARQUE"),
    ("size", "TAILLE"),
    ("condition", "ÉTAT"),
    ("color", "COULEUR"),
    ("city", "EMPLACEMENT"),
)

SORT_OPTIONS = ("price-asc", "price-desc")

LEADING_INT = re.compile(r"\s*[+-]?\d+")

UNSUPPORTED_IMAGE = "지원하지 않는 이미지 형식입니다."
OFFER_NOT_FOUND = "오퍼를 찾을 수 없습니다."


# === 입력 검증 ===

def clamp_title(raw: str | None) -> str:
    """trim 후 최대 길이로 자름: 비어 있으면 400"""
    title = (raw or "").strip()[:settings.title_max_length]
    if not title:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"title 은 필수입니다. (1~{settings.title_max_length}자)",
        )
    return title


def clamp_description(raw: str | None) -> str:
    return (raw or "").strip()[:settings.description_max_length]


def parse_price(raw: str | float | None) -> float:
    """숫자로 변환: 유한하지 않거나 허용 범위 밖이면 400"""
    try:
        price = float(raw)
    except (TypeError, ValueError):
        price = math.nan

    if not math.isfinite(price) or not settings.price_min <= price <= settings.price_max:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"price 는 {settings.price_min:g} 이상 {settings.price_max:g} 이하의 숫자여야 합니다.",
        )
    return price


def build_details(fields: OfferFields) -> list[dict]:
    """값이 있는 상세 필드만 [{라벨: 값}, ...] 로 (없는 필드는 생략)"""
    details = []
    for field, label in DETAIL_LABELS:
        value = getattr(fields, field)
        if value:
            details.append({label: str(value)})
    return details


def parse_delete_images(value: list | str | None) -> list[str] | None:
    """
    deleteImages 해석
    - 없음 / 빈 문자열: None (삭제 요청 없음)
    - 목록: 그대로 사용 (JSON 본문의 배열, 반복된 폼 필드)
    - 문자열: JSON 배열 문자열이어야 함 ('["a", "b"]')
    """
    if value is None or value == "":
        return None

    if isinstance(value, str):
        try:
            value = json.loads(value)
        except ValueError:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="deleteImages 는 JSON 배열이어야 합니다.")

    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="deleteImages 는 문자열 배열이어야 합니다.")
    return list(value)


def ensure_offer_id(offer_id: str) -> str:
    try:
        uuid.UUID(offer_id)
    except ValueError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="잘못된 오퍼 id 입니다.")
    return offer_id


async def _get_offer(db: AsyncSession, offer_id: str) -> Offer:
    """id 형식 400 → 존재 여부 404"""
    offer = await offer_repo.find_by_id(db, ensure_offer_id(offer_id))
    if not offer:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=OFFER_NOT_FOUND)
    return offer


async def _get_owned_offer(db: AsyncSession, offer_id: str, user: User) -> Offer:
    offer = await _get_offer(db, offer_id)
    if offer.owner_id != user.id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="본인의 오퍼만 수정/삭제할 수 있습니다.")
    return offer


async def _upload_all(store: ImageStore, pictures: list[UploadFile], folder: str) -> list[dict]:
    """
    입력 순서대로 하나씩 업로드

    중간에 실패하면 그 전까지 업로드된 이미지는 저장소에 남음 (보상 삭제 없음)
    """
    uploaded = []
    for picture in pictures:
        uploaded.append(await upload_image(store, picture, folder, unsupported_detail=UNSUPPORTED_IMAGE))
    return uploaded


# === 오퍼 생성/수정/삭제 ===

async def create_offer(
    db: AsyncSession,
    store: ImageStore,
    owner: User,
    fields: OfferFields,
    pictures: list[UploadFile],
) -> Offer:
    """오퍼 등록: 이미지 폴더가 오퍼 id 기준이라 DB 저장이 업로드보다 먼저"""

    # 1. 필드 검증
    title = clamp_title(fields.title)
    description = clamp_description(fields.description)
    price = parse_price(fields.price)
    details = build_details(fields)

    # 2. 이미지는 최소 1장
    if not pictures:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="오퍼를 등록하려면 이미지가 최소 1장 필요합니다.",
        )

    # 3. 이미지 없이 먼저 저장해서 id 발급
    offer = await offer_repo.create(db, Offer(
        title=title,
        description=description,
        price=price,
        details=details,
        cover_image=None,
        images=[],
        owner=owner,
    ))

    # 4. offers/<id> 폴더에 순서대로 업로드 (415 시 레코드는 이미지 없이 남음)
    uploaded = await _upload_all(store, pictures, settings.offer_folder(offer.id))

    # 5. 첫 이미지를 대표 이미지로
    offer.cover_image = uploaded[0]
    offer.images = uploaded
    offer = await offer_repo.save(db, offer)

    logger.info("오퍼 등록", extra={"extra_data": {
        "offer_id": offer.id, "owner_id": owner.id, "images": len(uploaded),
    }})
    return offer


async def update_offer(
    db: AsyncSession,
    store: ImageStore,
    user: User,
    offer_id: str,
    changes: OfferUpdate,
    pictures: list[UploadFile],
) -> Offer:
    """오퍼 수정: 소유자만 가능"""
    offer = await _get_owned_offer(db, offer_id, user)

    # 1. 검증을 모두 끝낸 뒤에만 변경 (실패 시 아무것도 저장/삭제하지 않음)
    title = clamp_title(changes.title) if changes.title is not None else None
    description = clamp_description(changes.description) if changes.description is not None else None
    price = parse_price(changes.price) if changes.price is not None else None
    details = build_details(changes)
    delete_ids = parse_delete_images(changes.delete_images)

    if title is not None:
        offer.title = title
    if description is not None:
        offer.description = description
    if price is not None:
        offer.price = price

    # 2. 상세 필드가 하나라도 오면 이번 요청의 필드로 전체 재생성 (병합 아님)
    if details:
        offer.details = details

    # 3. 이미지 삭제: 저장소 호출 실패는 그대로 전파
    if delete_ids:
        await store.delete_images(delete_ids)

        removed = set(delete_ids)
        offer.images = [img for img in offer.images if img["external_id"] not in removed]
        if offer.cover_image and offer.cover_image["external_id"] in removed:
            offer.cover_image = offer.images[0] if offer.images else None

    # 4. 새 이미지 추가: 대표 이미지가 없으면 첫 새 이미지로
    if pictures:
        uploaded = await _upload_all(store, pictures, settings.offer_folder(offer.id))
        offer.images = [*offer.images, *uploaded]
        if not offer.cover_image:
            offer.cover_image = uploaded[0]

    offer = await offer_repo.save(db, offer)
    logger.info("오퍼 수정", extra={"extra_data": {"offer_id": offer.id}})
    return offer


async def delete_offer(db: AsyncSession, store: ImageStore, user: User, offer_id: str) -> None:
    """
    오퍼 삭제: 소유자만 가능

    이미지/폴더 정리는 best-effort: 실패해도 경고 로그만 남기고 레코드 삭제는 진행
    """
    offer = await _get_owned_offer(db, offer_id, user)
    folder = settings.offer_folder(offer.id)

    external_ids = []
    for image in [offer.cover_image, *offer.images]:
        if image and image["external_id"] not in external_ids:
            external_ids.append(image["external_id"])

    if external_ids:
        try:
            await store.delete_images(external_ids)
        except (ImageStoreError, httpx.HTTPError) as e:
            logger.warning("이미지 정리 실패", extra={"extra_data": {
                "offer_id": offer.id, "error": str(e),
            }})

    try:
        await store.delete_folder(folder)
    except (ImageStoreError, httpx.HTTPError) as e:
        # 폴더가 비어 있지 않은 경우 등: 진단용으로 남김
        logger.warning("이미지 폴더 삭제 실패", extra={"extra_data": {
            "offer_id": offer.id, "folder": folder, "error": str(e),
        }})

    await offer_repo.delete(db, offer)
    logger.info("오퍼 삭제", extra={"extra_data": {"offer_id": offer_id}})


# === 조회 ===

def parse_bound(raw: str | None) -> float | None:
    """가격 범위 값: 숫자가 아니면 필터에서 제외"""
    if raw is None:
        return None
    try:
        value = float(raw)
    except ValueError:
        return None
    return value if math.isfinite(value) else None


def parse_page(raw: str | None) -> int:
    """1부터 시작: 앞쪽 정수 부분만 사용 ("2.5" → 2), 없거나 1 미만이면 1"""
    match = LEADING_INT.match(raw or "")
    if not match:
        return 1
    return max(int(match.group(0)), 1)


async def search_offers(db: AsyncSession, query: OfferQuery) -> tuple[int, list[Offer]]:
    page_size = settings.offers_page_size
    page = parse_page(query.page)
    sort = query.sort if query.sort in SORT_OPTIONS else None

    return await offer_repo.search(
        db,
        title=query.title or None,
        price_min=parse_bound(query.price_min),
        price_max=parse_bound(query.price_max),
        sort=sort,
        offset=(page - 1) * page_size,
        limit=page_size,
    )


async def get_offer(db: AsyncSession, offer_id: str) -> Offer:
    return await _get_offer(db, offer_id)
