# src/tokengate/main.py
"""Main entry point for the tokengate application."""

from __future__ import annotations

import logging
from datetime import UTC, datetime

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from tokengate.api.v1 import auth_router
from tokengate.core.errors import ApiError, StoreError
from tokengate.core.logging import configure_logging
from tokengate.core.settings import settings
from tokengate.schemas.common import ErrorBody, ErrorEnvelope

logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title="tokengate API",
    description="Session credential issuance, rotation and rate limiting",
    version=settings.app_version,
)

# Include API routers
app.include_router(auth_router, prefix="/api/v1")


def error_response(
    request: Request,
    status_code: int,
    code: str,
    message: str,
    *,
    retry_after: int | None = None,
) -> JSONResponse:
    """Render the JSON error envelope shared by every failure."""
    body = ErrorEnvelope(
        error=ErrorBody(
            message=message,
            code=code,
            request_id=request.headers.get("x-request-id"),
            timestamp=datetime.now(UTC).isoformat(),
            retry_after=retry_after,
        )
    )
    headers = {"Retry-After": str(retry_after)} if retry_after is not None else None
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(by_alias=True, exclude_none=True),
        headers=headers,
    )


@app.exception_handler(ApiError)
async def handle_api_error(request: Request, exc: ApiError) -> JSONResponse:
    return error_response(
        request, exc.status_code, exc.code, exc.message, retry_after=exc.retry_after
    )


@app.exception_handler(StoreError)
async def handle_store_error(request: Request, exc: StoreError) -> JSONResponse:
    logger.error("Store unavailable on %s: %s", request.url.path, exc, exc_info=exc)
    return error_response(
        request,
        status.HTTP_503_SERVICE_UNAVAILABLE,
        "STORE_UNAVAILABLE",
        "Service temporarily unavailable",
    )


@app.exception_handler(RequestValidationError)
async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    return error_response(
        request,
        422,
        "VALIDATION_ERROR",
        "Request body or parameters are invalid",
    )


@app.exception_handler(StarletteHTTPException)
async def handle_http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code == status.HTTP_404_NOT_FOUND:
        return error_response(request, exc.status_code, "NOT_FOUND", "Endpoint not found")
    return error_response(request, exc.status_code, "HTTP_ERROR", str(exc.detail))


@app.exception_handler(Exception)
async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s", request.url.path, exc_info=exc)
    message = str(exc) if settings.debug else "Internal server error"
    return error_response(
        request, status.HTTP_500_INTERNAL_SERVER_ERROR, "INTERNAL_ERROR", message
    )


@app.on_event("startup")
async def on_startup() -> None:
    configure_logging()
    logger.info("%s %s starting", settings.app_name, settings.app_version)


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint to verify the service is running."""
    return {"status": "ok"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("tokengate.main:app", host="0.0.0.0", port=8000, reload=settings.debug)
