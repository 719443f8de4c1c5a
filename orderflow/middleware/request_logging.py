import time
import logging
from uuid import uuid4

from fastapi import Request

logger = logging.getLogger("access")

REQUEST_ID_HEADER = "X-Request-ID"
SLOW_REQUEST_MS = 1000


async def request_logging_middleware(request: Request, call_next):
    request_id = request.headers.get(REQUEST_ID_HEADER) or uuid4().hex[:12]
    request.state.request_id = request_id
    start_time = time.perf_counter()

    response = await call_next(request)

    elapsed_ms = round((time.perf_counter() - start_time) * 1000, 2)
    response.headers[REQUEST_ID_HEADER] = request_id

    level = logging.WARNING if elapsed_ms >= SLOW_REQUEST_MS else logging.INFO
    logger.log(
        level,
        "request",
        extra={
            "request_id": request_id,
            "client_addr": request.client.host if request.client else "unknown",
            "method": request.method,
            "path": request.url.path,
            "status_code": response.status_code,
            "process_time_ms": elapsed_ms,
        },
    )

    return response
