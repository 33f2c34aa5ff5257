"""
Request context middleware.

Assigns every request an id (taken from ``X-Request-Id`` when the client
sends one), exposes it to logging through context vars, and echoes it on the
response. It is also the last line of error handling: anything the exception
handlers did not claim is normalized here.
"""

import logging
import time
import uuid
from typing import Callable, Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from shared.context import clear_context, http_method_var, http_path_var, request_id_var

from ..error_normalizer import ErrorNormalizer

REQUEST_ID_HEADER = "X-Request-Id"
MAX_REQUEST_ID_LENGTH = 128


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Sets request-scoped context and normalizes unhandled exceptions."""

    def __init__(
        self,
        app: ASGIApp,
        normalizer: ErrorNormalizer,
        logger: Optional[logging.Logger] = None,
    ):
        super().__init__(app)
        self._normalizer = normalizer
        self._logger = logger or logging.getLogger(__name__)

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        incoming = (request.headers.get(REQUEST_ID_HEADER) or "").strip()
        request_id = incoming if 0 < len(incoming) <= MAX_REQUEST_ID_LENGTH else str(uuid.uuid4())

        request_id_var.set(request_id)
        http_method_var.set(request.method)
        http_path_var.set(request.url.path)
        request.state.request_id = request_id

        start = time.perf_counter()
        try:
            try:
                response = await call_next(request)
            except Exception as exc:
                response = self._normalizer.to_json_response(exc)

            response.headers[REQUEST_ID_HEADER] = request_id
            self._logger.info(
                "%s %s %s",
                request.method,
                request.url.path,
                response.status_code,
                extra={
                    "status_code": response.status_code,
                    "latency_ms": round((time.perf_counter() - start) * 1000, 2),
                },
            )
            return response
        finally:
            clear_context()
