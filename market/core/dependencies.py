from fastapi import FastAPI, Request
from core.config import Settings
from core.logger import get_logger
from service.image_store import CloudinaryImageStore, ImageStore, InMemoryImageStore

logger = get_logger("dependencies")


def build_image_store(settings: Settings) -> ImageStore:
    """설정에 맞는 이미지 저장소 생성: 자격 증명이 없으면 인메모리"""
    has_credentials = all([
        settings.cloudinary_cloud_name,
        settings.cloudinary_api_key,
        settings.cloudinary_api_secret,
    ])
    if settings.use_in_memory_image_store or not has_credentials:
        logger.warning("Cloudinary 자격 증명이 없어 인메모리 이미지 저장소를 사용합니다")
        return InMemoryImageStore()

    return CloudinaryImageStore(
        cloud_name=settings.cloudinary_cloud_name,
        api_key=settings.cloudinary_api_key,
        api_secret=settings.cloudinary_api_secret,
        base_url=settings.cloudinary_base_url,
    )


# === FastAPI Depends()용 함수 ===

def get_image_store(request: Request) -> ImageStore:
    store = getattr(request.app.state, "image_store", None)
    if store is None:
        raise RuntimeError("이미지 저장소가 초기화되지 않았습니다. 서버 시작을 확인하세요.")
    return store


# === 수명주기 관리 (main.py의 lifespan에서 호출) ===

async def init_connections(app: FastAPI, settings: Settings) -> None:
    app.state.image_store = build_image_store(settings)
    logger.info("이미지 저장소 준비 완료", extra={"extra_data": {
        "store": type(app.state.image_store).__name__,
    }})


async def close_connections(app: FastAPI) -> None:
    store = getattr(app.state, "image_store", None)
    if store is not None:
        await store.close()
        app.state.image_store = None
    logger.info("모든 연결 종료")
