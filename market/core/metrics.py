import time
from collections import defaultdict
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response
from core.logger import get_logger, generate_request_id, request_id_var

logger = get_logger("http")

# 느린 요청 보관 개수
SLOWEST_KEEP = 5


class MetricsStore:
    """요청 메트릭 인메모리 집계 (프로세스 단위, 재시작 시 초기화)"""

    def __init__(self):
        self.reset()

    def reset(self):
        self.total_requests = 0
        self.error_count = 0                   # 5xx 응답 수
        self.by_status = defaultdict(int)      # {200: 42, 404: 3}
        self.by_route = defaultdict(int)       # {"GET /offers/{offer_id}": 12}
        self.total_duration_ms = 0.0
        self.slowest = []

    def record(self, method: str, route: str, status: int, duration_ms: float):
        self.total_requests += 1
        self.by_status[status] += 1
        self.by_route[f"{method} {route}"] += 1
        self.total_duration_ms += duration_ms
        if status >= 500:
            self.error_count += 1

        self.slowest.append({
            "duration_ms": round(duration_ms, 1),
            "method": method,
            "route": route,
            "status": status,
        })
        self.slowest.sort(key=lambda x: x["duration_ms"], reverse=True)
        del self.slowest[SLOWEST_KEEP:]

    def summary(self) -> dict:
        avg = round(self.total_duration_ms / self.total_requests, 1) if self.total_requests else 0
        return {
            "total_requests": self.total_requests,
            "error_count": self.error_count,
            "avg_response_time_ms": avg,
            "by_status": dict(self.by_status),
            "by_route": dict(self.by_route),
            "slowest_top5": list(self.slowest),
        }


metrics_store = MetricsStore()


def _route_template(request: Request) -> str:
    """/offers/3f2a... 대신 /offers/{offer_id} 로 집계 (경로별 카디널리티 제한)"""
    route = request.scope.get("route")
    return getattr(route, "path", request.url.path)


class RequestMetricsMiddleware(BaseHTTPMiddleware):
    """
    모든 HTTP 요청에 대해:
    1. request_id 부여 (ContextVar + X-Request-ID 헤더)
    2. 응답 시간 측정 및 메트릭 집계
    3. JSON 액세스 로그 출력
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        req_id = generate_request_id()
        token = request_id_var.set(req_id)
        start = time.perf_counter()

        try:
            response = await call_next(request)
            duration_ms = (time.perf_counter() - start) * 1000
            route = _route_template(request)

            metrics_store.record(request.method, route, response.status_code, duration_ms)
            logger.info(
                f"{request.method} {request.url.path} {response.status_code} {duration_ms:.0f}ms",
                extra={"extra_data": {
                    "method": request.method,
                    "path": request.url.path,
                    "route": route,
                    "status": response.status_code,
                    "duration_ms": round(duration_ms, 1),
                }}
            )
            response.headers["X-Request-ID"] = req_id
            return response
        finally:
            request_id_var.reset(token)
