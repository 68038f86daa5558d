from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
import httpx
from sqlalchemy.exc import SQLAlchemyError

from core.config import settings
from core.database import engine, create_tables
from core.dependencies import init_connections, close_connections
from core.logger import get_logger
from core.metrics import RequestMetricsMiddleware, metrics_store
from core.security import INTERNAL_ERROR_MESSAGE
from router import user, offer
from service.image_store import ImageStoreError

logger = get_logger("app")


@asynccontextmanager
async def lifespan(app: FastAPI):
    try:
        await create_tables()
        await init_connections(app, settings)
        yield
    finally:
        await close_connections(app)
        # DB 연결 풀 정리
        await engine.dispose()


async def store_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """DB/이미지 저장소의 예상치 못한 장애 → 500"""
    logger.error(
        f"{request.method} {request.url.path} 처리 중 저장소 오류",
        exc_info=exc,
        extra={"extra_data": {"error_type": type(exc).__name__}},
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": INTERNAL_ERROR_MESSAGE},
    )


def register(app: FastAPI) -> FastAPI:
    """라우터/예외 핸들러 등록 (테스트 앱도 같은 구성을 사용)"""
    app.include_router(user.router, prefix="/user", tags=["User"])
    app.include_router(offer.router, tags=["Offer"])

    app.add_exception_handler(SQLAlchemyError, store_error_handler)
    app.add_exception_handler(ImageStoreError, store_error_handler)
    app.add_exception_handler(httpx.HTTPError, store_error_handler)

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    return app


app = FastAPI(
    title="Marketplace API",
    description="오퍼(상품) 등록/수정/삭제/검색 마켓플레이스 백엔드",
    version="0.1.0",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)
# 미들웨어 등록 (모든 요청을 자동 계측)
app.add_middleware(RequestMetricsMiddleware)

register(app)


@app.get("/metrics", tags=["Monitoring"])
async def get_metrics():
    """실시간 메트릭 조회: 총 요청 수, 응답 시간, 상태코드별 분포 등"""
    return metrics_store.summary()
