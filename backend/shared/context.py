"""
Request-scoped context.

Context variables are isolated per asyncio task, so the request id set by
the HTTP middleware is visible to every log record emitted while that
request is being served, without passing it through every call.
"""

import asyncio
from contextlib import asynccontextmanager
from contextvars import ContextVar
from typing import AsyncIterator, Optional

from .exceptions import RequestTimeoutError


request_id_var: ContextVar[str] = ContextVar("request_id", default="")
http_method_var: ContextVar[str] = ContextVar("http_method", default="")
http_path_var: ContextVar[str] = ContextVar("http_path", default="")


def get_request_id() -> Optional[str]:
    """Current request id, or None outside a request."""
    return request_id_var.get() or None


def get_context_dict() -> dict[str, str]:
    """Non-empty context values, for log enrichment."""
    ctx = {}
    if val := request_id_var.get():
        ctx["request_id"] = val
    if val := http_method_var.get():
        ctx["method"] = val
    if val := http_path_var.get():
        ctx["path"] = val
    return ctx


def clear_context() -> None:
    """Reset all context vars (called at request end)."""
    request_id_var.set("")
    http_method_var.set("")
    http_path_var.set("")


@asynccontextmanager
async def deadline(seconds: Optional[float], operation: str) -> AsyncIterator[None]:
    """
    Bound the enclosed awaits by ``seconds``.

    In-flight repository and publisher calls are cancelled when the deadline
    passes and the block raises RequestTimeoutError. ``None`` disables the
    bound. Cancellation coming from the caller is left untouched.
    """
    if seconds is None:
        yield
        return
    try:
        async with asyncio.timeout(seconds):
            yield
    except TimeoutError as exc:
        raise RequestTimeoutError(
            f"Operation timed out: {operation}",
            details={"operation": operation, "timeout_seconds": seconds},
            cause=exc,
        ) from exc
