import logging
import json
import uuid
from datetime import datetime, timezone
from contextvars import ContextVar

# 요청별 추적 ID (미들웨어가 설정, 같은 요청 안에서는 어디서든 조회 가능)
request_id_var: ContextVar[str] = ContextVar("request_id", default="-")


class JsonFormatter(logging.Formatter):
    """
    한 줄에 JSON 객체 하나씩 출력하는 포매터

    {"timestamp": "...", "level": "WARNING", "logger": "offer",
     "message": "이미지 정리 실패", "request_id": "1a2b3c4d", "offer_id": "..."}
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "request_id": request_id_var.get(),
        }

        # logger.info(..., extra={"extra_data": {...}}) 로 넘긴 필드 병합
        extra_data = getattr(record, "extra_data", None)
        if extra_data:
            log_data.update(extra_data)

        # logger.exception() 의 스택 트레이스
        if record.exc_info:
            log_data["exc_info"] = self.formatException(record.exc_info)

        return json.dumps(log_data, ensure_ascii=False, default=str)


def get_logger(name: str) -> logging.Logger:
    """구조화된 JSON 로거 생성"""
    logger = logging.getLogger(name)

    # 중복 핸들러 방지
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(JsonFormatter())
        logger.addHandler(handler)
        logger.setLevel(logging.INFO)

    return logger


def generate_request_id() -> str:
    return uuid.uuid4().hex[:8]
