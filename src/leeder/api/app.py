from __future__ import annotations

import logging
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from leeder.api.routes import router as api_router
from leeder.config import get_settings
from leeder.db.init import init_database
from leeder.errors import (
    AccessDeniedError,
    AuthError,
    ConflictError,
    LeederError,
    NotFoundError,
    StoreError,
    ValidationError,
)
from leeder.web.routes import router as web_router

logger = logging.getLogger(__name__)

# Most specific first: NotFoundError and AccessDeniedError are StoreErrors.
ERROR_STATUS: list[tuple[type[LeederError], int]] = [
    (ValidationError, 422),
    (ConflictError, 409),
    (NotFoundError, 404),
    (AccessDeniedError, 403),
    (AuthError, 401),
    (StoreError, 500),
]


def status_for(exc: LeederError) -> int:
    for error_type, status_code in ERROR_STATUS:
        if isinstance(exc, error_type):
            return status_code
    return 400


def create_app() -> FastAPI:
    settings = get_settings()
    static_dir = Path(__file__).resolve().parents[1] / "web" / "static"

    app = FastAPI(title=settings.app_name)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list or ["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.on_event("startup")
    def _startup() -> None:
        init_database()

    @app.exception_handler(LeederError)
    def _leeder_error(request: Request, exc: LeederError) -> JSONResponse:
        status_code = status_for(exc)
        if status_code >= 500:
            logger.error("Request failed path=%s: %s", request.url.path, exc.message)
        payload: dict = {"detail": exc.message}
        if isinstance(exc, ValidationError) and exc.missing_fields:
            payload["missing_fields"] = exc.missing_fields
        return JSONResponse(payload, status_code=status_code)

    @app.get("/health")
    def health() -> JSONResponse:
        return JSONResponse({"status": "ok"})

    app.include_router(api_router)
    if settings.web_ui_enabled:
        app.include_router(web_router)

    app.mount("/static", StaticFiles(directory=str(static_dir)), name="static")
    return app
