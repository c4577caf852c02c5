import time

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from baseline_fund.lib.logger import configure_logger

logger = configure_logger(__name__)

# Polled by load balancers and uptime checks
QUIET_PATHS = frozenset({"/", "/baseline/health"})


def _elapsed_ms(start: float) -> float:
    return round((time.perf_counter() - start) * 1000, 2)


def _request_info(request: Request) -> dict:
    info = {"method": request.method, "path": request.url.path}
    if request.client:
        info["client"] = request.client.host
    if request.query_params:
        info["query_params"] = dict(request.query_params)
    return info


class LoggingMiddleware(BaseHTTPMiddleware):
    """Access log: one line per request, levelled by response status."""

    async def dispatch(self, request: Request, call_next):
        start = time.perf_counter()
        request_info = _request_info(request)

        try:
            response: Response = await call_next(request)
        except Exception:
            logger.error(
                f"{request.method} {request.url.path} raised",
                extra={
                    "request": request_info,
                    "response": {"process_time_ms": _elapsed_ms(start)},
                    "event_type": "http_error",
                },
                exc_info=True,
            )
            raise

        if response.status_code >= 500:
            log = logger.error
        elif response.status_code >= 400:
            log = logger.warning
        elif request.url.path in QUIET_PATHS:
            log = logger.debug
        else:
            log = logger.info

        log(
            f"{request.method} {request.url.path}",
            extra={
                "request": request_info,
                "response": {
                    "status_code": response.status_code,
                    "process_time_ms": _elapsed_ms(start),
                },
                "event_type": "http_request",
            },
        )
        return response
