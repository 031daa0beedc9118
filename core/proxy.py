"""Response envelopes for the upstream proxy endpoints.

Every proxy call ends in one of four shapes:

- validation error   → 400 {"success": false, "error": ...}
- upstream 4xx       → upstream status and body, unchanged
- upstream 5xx/timeout/unreachable → 200 {"success": true, "data": <empty>,
  "degraded": true, "upstream_status": ...} plus a WARNING log line, so the
  UI keeps working while the outage stays visible in logs and payloads
- anything else      → 500 {"success": false, "error": "Internal server error"}
"""
import logging
import time
from typing import Any, Awaitable, Callable, Optional

from fastapi.responses import JSONResponse

from providers.base import SupplierNotConfiguredError, UpstreamError, UpstreamUnavailableError

logger = logging.getLogger(__name__)

INTERNAL_ERROR = "Internal server error"
UNAVAILABLE_ERROR = "Service temporarily unavailable"


def elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)


def ok(data: Any, started: Optional[float] = None, **extra) -> JSONResponse:
    content = {"success": True, "data": data, **extra}
    if started is not None:
        content["duration_ms"] = elapsed_ms(started)
    return JSONResponse(content=content)


def validation_error(message: str, details: Any = None) -> JSONResponse:
    content = {"success": False, "error": message}
    if details is not None:
        content["details"] = details
    return JSONResponse(status_code=400, content=content)


def not_found(message: str) -> JSONResponse:
    return JSONResponse(status_code=404, content={"success": False, "error": message})


def passthrough(exc: UpstreamError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.body)


def degraded(operation: str, empty: Any, exc: UpstreamUnavailableError, started: float) -> JSONResponse:
    logger.warning("%s degraded to empty result: %s", operation, exc)
    content = {"success": True, "data": empty, "degraded": True, "duration_ms": elapsed_ms(started)}
    if exc.status_code is not None:
        content["upstream_status"] = exc.status_code
    return JSONResponse(content=content)


def unavailable(operation: str, exc: UpstreamUnavailableError, started: float) -> JSONResponse:
    logger.warning("%s failed, upstream unavailable: %s", operation, exc)
    content = {"success": False, "error": UNAVAILABLE_ERROR, "duration_ms": elapsed_ms(started)}
    if exc.status_code is not None:
        content["upstream_status"] = exc.status_code
    return JSONResponse(status_code=503, content=content)


def internal_error(operation: str, exc: Exception) -> JSONResponse:
    logger.error("%s failed: %s", operation, exc, exc_info=exc)
    return JSONResponse(status_code=500, content={"success": False, "error": INTERNAL_ERROR})


async def proxy_call(
    operation: str,
    fetch: Callable[[], Awaitable[Any]],
    empty: Any = None,
    degrade: bool = True,
    started: Optional[float] = None,
) -> JSONResponse:
    """Run fetch() and map its outcome to an envelope.

    With degrade=False an unavailable upstream yields 503 instead of an empty
    success; order operations use this so a failed cancel never reads as done.
    """
    started = started if started is not None else time.monotonic()
    try:
        data = await fetch()
    except UpstreamError as exc:
        logger.info("%s upstream client error %d", operation, exc.status_code)
        return passthrough(exc)
    except UpstreamUnavailableError as exc:
        if degrade:
            return degraded(operation, empty, exc, started)
        return unavailable(operation, exc, started)
    except SupplierNotConfiguredError as exc:
        logger.error("%s: %s", operation, exc)
        return JSONResponse(status_code=500, content={"success": False, "error": str(exc)})
    except Exception as exc:
        return internal_error(operation, exc)

    if isinstance(data, JSONResponse):
        return data
    return ok(data, started)
