from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse

from ..exceptions import NotFound, StoreError, StoreUnavailable, ValidationError

logger = logging.getLogger(__name__)


def _error_body(exc: Exception, detail: str) -> dict[str, str]:
    return {"error": type(exc).__name__, "detail": detail}


class CatchAllExceptionMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request, call_next):
        try:
            return await call_next(request)
        except Exception as exc:
            logger.error(
                f"{type(exc).__name__} on {request.url.path} (500): {exc}",
                exc_info=True,
                extra={"http_method": request.method, "path": request.url.path, "status_code": 500},
            )
            return JSONResponse(status_code=500, content=_error_body(exc, str(exc)))


async def _validation_error(request: Request, exc: ValidationError) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=_error_body(exc, exc.message))


async def _not_found(request: Request, exc: NotFound) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content=_error_body(exc, exc.message))


async def _store_unavailable(request: Request, exc: StoreUnavailable) -> JSONResponse:
    logger.error(
        "Store unavailable on %s: %s",
        request.url.path,
        exc,
        extra={"http_method": request.method, "path": request.url.path, "status_code": 503},
    )
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content=_error_body(exc, "Store temporarily unavailable"),
        headers={"Retry-After": "1"},
    )


async def _store_error(request: Request, exc: StoreError) -> JSONResponse:
    logger.error(
        "Store error on %s: %s",
        request.url.path,
        exc,
        extra={"http_method": request.method, "path": request.url.path, "status_code": 500},
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_error_body(exc, exc.message),
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ValidationError, _validation_error)  # type: ignore[arg-type]
    app.add_exception_handler(NotFound, _not_found)  # type: ignore[arg-type]
    app.add_exception_handler(StoreUnavailable, _store_unavailable)  # type: ignore[arg-type]
    app.add_exception_handler(StoreError, _store_error)  # type: ignore[arg-type]
