import logging
import os
import sys
import time
import uuid
from pathlib import Path
from typing import Callable

from fastapi import FastAPI, Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from edubrain.config import settings

QUIET_LOGGERS = {
    "uvicorn": logging.WARNING,
    "sqlalchemy": logging.WARNING,
    "alembic": logging.WARNING,
    "apscheduler": logging.WARNING,
    "passlib": logging.ERROR,
}

# Polled by load balancers; logged below INFO
HEALTH_PATH = "/api/health"

REQUEST_ID_HEADER = "X-Request-ID"
MAX_REQUEST_ID_LENGTH = 64


def setup_logging():
    """Configure the root logger from LOG_LEVEL and the optional LOG_FILE."""
    log_level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)

    handlers = [logging.StreamHandler(sys.stdout)]
    if settings.LOG_FILE:
        os.makedirs(Path(settings.LOG_FILE).parent, exist_ok=True)
        handlers.append(logging.FileHandler(settings.LOG_FILE, encoding="utf-8"))

    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=handlers,
    )
    for name, level in QUIET_LOGGERS.items():
        logging.getLogger(name).setLevel(level)

    logger = logging.getLogger("edubrain")
    logger.setLevel(log_level)
    return logger


def request_id_for(request: Request) -> str:
    """Reuse the caller's X-Request-ID when it looks sane, otherwise mint one."""
    incoming = request.headers.get(REQUEST_ID_HEADER, "").strip()
    if incoming and len(incoming) <= MAX_REQUEST_ID_LENGTH and incoming.isprintable():
        return incoming
    return str(uuid.uuid4())


def describe_account(request: Request) -> str:
    # Set by get_current_user once the bearer token has been decoded
    user = getattr(request.state, "user", None)
    if user is None:
        return "anonymous"
    return f"{user.id}/{user.role.value}"


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Writes one access line per request: method, path, status, duration,
    the authenticated account (id/role) and the request id. The request id is
    echoed back in the X-Request-ID response header.
    """

    def __init__(self, app: ASGIApp):
        super().__init__(app)
        self.logger = logging.getLogger("edubrain.request")

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request_id_for(request)
        request.state.request_id = request_id
        start_time = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception as e:
            self.logger.error(
                f"{request.method} {request.url.path} failed "
                f"[account: {describe_account(request)}] [error: {str(e)}] "
                f"[request_id: {request_id}]",
                exc_info=True,
            )
            raise

        duration = time.perf_counter() - start_time
        level = logging.DEBUG if request.url.path == HEALTH_PATH else logging.INFO
        self.logger.log(
            level,
            f"{request.method} {request.url.path} {response.status_code} "
            f"[duration: {duration:.3f}s] [account: {describe_account(request)}] "
            f"[request_id: {request_id}]",
        )
        response.headers[REQUEST_ID_HEADER] = request_id
        return response


def add_logging_middleware(app: FastAPI):
    app.add_middleware(RequestLoggingMiddleware)
