import logging
import time
import uuid
from typing import Callable, Optional

from fastapi import Request

from anti_forgery.csrf import SESSION_KEY
from anti_forgery.settings import Settings, get_settings


def configure_logging(settings: Optional[Settings] = None) -> logging.Logger:
    settings = settings or get_settings()
    level = getattr(logging, settings.log_level, logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    return logging.getLogger("anti_forgery")


def request_logging_middleware(logger: logging.Logger, request_id_header: str) -> Callable:
    """Access log middleware; must run inside SessionMiddleware.

    Logs whether the caller arrived with an anti-forgery token already in its
    session or was issued one on this request. Token values are never logged.
    """

    async def middleware(request: Request, call_next):
        request_id = request.headers.get(request_id_header) or str(uuid.uuid4())
        request.state.request_id = request_id
        token_state = "existing" if request.session.get(SESSION_KEY) else "issued"
        started = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - started) * 1000
        response.headers[request_id_header] = request_id
        logger.info(
            "request_id=%s method=%s path=%s status=%s token=%s duration_ms=%.2f",
            request_id,
            request.method,
            request.url.path,
            response.status_code,
            token_state,
            duration_ms,
        )
        return response

    return middleware
