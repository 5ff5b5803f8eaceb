# app/core/middleware.py
import logging
import time
import uuid

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from app.config.settings import settings

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
SLOW_REQUEST_SECONDS = 1.0


def setup_middleware(app: FastAPI):
    """CORS for the POS frontend plus per-request logging"""

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "Accept", "Origin", REQUEST_ID_HEADER],
        # CSV report downloads carry their filename here
        expose_headers=["Content-Disposition", REQUEST_ID_HEADER],
        max_age=3600
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex[:12]
        started = time.perf_counter()

        response = await call_next(request)

        elapsed = time.perf_counter() - started
        message = (
            f"[{request_id}] {request.method} {request.url.path} - "
            f"Status: {response.status_code} - Time: {elapsed:.4f}s"
        )
        if response.status_code >= 500 or elapsed > SLOW_REQUEST_SECONDS:
            logger.warning(message)
        else:
            logger.info(message)

        response.headers[REQUEST_ID_HEADER] = request_id
        return response
