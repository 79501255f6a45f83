# 📄 File: app/api/middleware/logging.py
# 🧭 Purpose (Layman Explanation): 
# This file keeps a diary of every request made to the KrishiVedha API, recording what was asked for,
# how long it took to answer and what the outcome was.
# 🧪 Purpose (Technical Summary): 
# Request logging middleware: assigns or propagates X-Request-ID, binds it to the logging context
# for everything the request triggers, and logs method, path, status and duration.
# 🔗 Dependencies: 
# FastAPI, starlette, app.shared.utils.logging, uuid
# 🔄 Connected Modules / Calls From: 
# app.main.py (middleware registration), all API endpoints

import time
import uuid

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.types import ASGIApp

from app.shared.utils.logging import get_logger, log_context

from . import COMMON_HEADERS, should_exclude_path

logger = get_logger(__name__)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Request logging middleware for API monitoring

    Authorization headers and bodies are never logged.
    """

    def __init__(self, app: ASGIApp):
        super().__init__(app)
        self.request_id_header = COMMON_HEADERS["REQUEST_ID"]

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request.headers.get(self.request_id_header) or str(uuid.uuid4())
        request.state.request_id = request_id

        start_time = time.perf_counter()
        with log_context(request_id=request_id):
            try:
                response = await call_next(request)
            except Exception:
                logger.error(
                    f"{request.method} {request.url.path} failed",
                    method=request.method,
                    path=request.url.path,
                    duration_ms=round((time.perf_counter() - start_time) * 1000, 2),
                    exc_info=True,
                )
                raise

            duration_ms = round((time.perf_counter() - start_time) * 1000, 2)
            response.headers[self.request_id_header] = request_id
            response.headers[COMMON_HEADERS["RESPONSE_TIME"]] = f"{duration_ms / 1000:.3f}s"

            if not should_exclude_path("logging", request.url.path):
                log = logger.warning if response.status_code >= 500 else logger.info
                log(
                    f"{request.method} {request.url.path} {response.status_code}",
                    method=request.method,
                    path=request.url.path,
                    status_code=response.status_code,
                    duration_ms=duration_ms,
                    request_id=request_id,
                )

        return response
