from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from models.offer import Offer


async def create(db: AsyncSession, offer: Offer) -> Offer:
    """오퍼 저장: id 발급 (이미지 폴더 이름에 필요)"""
    db.add(offer)
    await db.commit()
    await db.refresh(offer)
    return offer


async def save(db: AsyncSession, offer: Offer) -> Offer:
    """변경 사항 커밋"""
    await db.commit()
    await db.refresh(offer)
    return offer


async def find_by_id(db: AsyncSession, offer_id: str) -> Offer | None:
    result = await db.execute(select(Offer).where(Offer.id == offer_id))
    return result.scalar_one_or_none()


async def delete(db: AsyncSession, offer: Offer) -> None:
    await db.delete(offer)
    await db.commit()


async def search(
    db: AsyncSession,
    title: str | None,
    price_min: float | None,
    price_max: float | None,
    sort: str | None,
    offset: int,
    limit: int,
) -> tuple[int, list[Offer]]:
    """
    필터/정렬/페이지네이션 검색

    Returns:
        (페이지와 무관한 전체 매칭 수, 해당 페이지의 오퍼 목록)
    """
    conditions = []
    if title:
        # 대소문자 무시 부분 문자열 매칭 (%, _ 는 리터럴로 취급)
        conditions.append(Offer.title.icontains(title, autoescape=True))
    if price_min is not None:
        conditions.append(Offer.price >= price_min)
    if price_max is not None:
        conditions.append(Offer.price <= price_max)

    count = await db.scalar(select(func.count()).select_from(Offer).where(*conditions))

    stmt = select(Offer).where(*conditions)
    if sort == "price-asc":
        stmt = stmt.order_by(Offer.price.asc(), Offer.created_at, Offer.id)
    elif sort == "price-desc":
        stmt = stmt.order_by(Offer.price.desc(), Offer.created_at, Offer.id)
    else:
        # 정렬 옵션이 없으면 등록 순
        stmt = stmt.order_by(Offer.created_at, Offer.id)

    result = await db.execute(stmt.offset(offset).limit(limit))
    return count or 0, list(result.scalars().all())
