from __future__ import annotations

import logging
import time
from typing import Callable, Optional
from uuid import uuid4

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

log = logging.getLogger("verhaal.api")


def _client_request_id(raw: Optional[str], max_len: int) -> Optional[str]:
    if raw and len(raw) <= max_len and raw.isprintable():
        return raw
    return None


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Request id propagation plus one structured log line per request.

    Header:
      - X-Request-ID (echoed, or generated when absent/unusable)

    Log record `api_request` carries request_id, method, path, status_code,
    duration_ms and the declared upload size. Server errors and requests
    slower than `slow_ms` are logged at WARNING.

    Security notes:
    - Client ids longer than `max_len` or containing control characters are
      replaced, so they cannot forge log lines.
    - Request bodies and uploaded document names are never logged.

    """

    def __init__(
        self,
        app,
        *,
        header_name: str = "X-Request-ID",
        max_len: int = 128,
        slow_ms: int = 2000,
    ):
        super().__init__(app)
        self._header_name = header_name
        self._max_len = max_len
        self._slow_ms = slow_ms

    async def dispatch(self, request: Request, call_next: Callable):
        rid = _client_request_id(request.headers.get(self._header_name), self._max_len) or uuid4().hex
        request.state.request_id = rid

        start = time.monotonic()
        status_code = 500
        try:
            response: Response = await call_next(request)
            status_code = response.status_code
            response.headers[self._header_name] = rid
            return response
        finally:
            dur_ms = int((time.monotonic() - start) * 1000)
            level = logging.WARNING if status_code >= 500 or dur_ms > self._slow_ms else logging.INFO
            log.log(
                level,
                "api_request",
                extra={
                    "request_id": rid,
                    "method": request.method,
                    "path": request.url.path,
                    "status_code": status_code,
                    "duration_ms": dur_ms,
                    "content_length": request.headers.get("content-length"),
                },
            )
