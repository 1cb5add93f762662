from __future__ import annotations

import logging
import traceback
from typing import Callable, Dict, Type

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse, Response

from packbuilder.core.errors import (
    BuilderError,
    BuildIOError,
    ConfigError,
    DaemonError,
    NotFoundError,
    RegistryError,
    ValidationError,
)

log = logging.getLogger("packbuilder.errors")

ERROR_STATUS: Dict[Type[BuilderError], int] = {
    ConfigError: 400,
    NotFoundError: 404,
    ValidationError: 422,
    DaemonError: 502,
    RegistryError: 502,
    BuildIOError: 500,
}


def status_for(exc: BuilderError) -> int:
    for cls in type(exc).__mro__:
        if cls in ERROR_STATUS:
            return ERROR_STATUS[cls]
    return 500


async def builder_error_handler(request: Request, exc: BuilderError) -> JSONResponse:
    status = status_for(exc)
    log.warning("%s on %s: %s", type(exc).__name__, request.url.path, exc)
    return JSONResponse(status_code=status, content={"detail": str(exc), "error": type(exc).__name__})


class SafeErrorMiddleware(BaseHTTPMiddleware):
    """
    - Never return stack traces to clients
    - Preserve x-request-id if the caller sent one
    - Log traceback server-side
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        try:
            return await call_next(request)
        except Exception as e:
            rid = request.headers.get("x-request-id")
            log.error(
                "Unhandled error: %s rid=%s path=%s\n%s",
                str(e),
                rid,
                request.url.path,
                traceback.format_exc(),
            )
            payload = {"detail": "Internal Server Error"}
            if rid:
                payload["request_id"] = rid
            return JSONResponse(status_code=500, content=payload)
