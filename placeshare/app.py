"""
FastAPI application entry point for the places backend.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from placeshare.config import Settings, get_settings
from placeshare.dependencies import Backends, build_backends
from placeshare.errors import HttpError, ValidationError
from placeshare.routes import places_router, users_router
from placeshare.storage import LOCAL_IMAGE_URL_PREFIX

logger = logging.getLogger(__name__)

UNKNOWN_ROUTE_MESSAGE = "Could not find this route."
UNKNOWN_ERROR_MESSAGE = "An unknown error occurred!"


@asynccontextmanager
async def lifespan(app: FastAPI):
    owns_backends = app.state.backends is None
    if owns_backends:
        app.state.backends = build_backends(app.state.settings)
    try:
        yield
    finally:
        if owns_backends:
            app.state.backends.close()
            app.state.backends = None


def _message(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"message": message})


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(HttpError)
    async def http_error_handler(request: Request, exc: HttpError):
        return _message(exc.status_code, exc.message)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        logger.info("Rejected request to %s: %s", request.url.path, exc.errors())
        return _message(422, ValidationError.default_message)

    @app.exception_handler(StarletteHTTPException)
    async def starlette_http_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404:
            return _message(404, UNKNOWN_ROUTE_MESSAGE)
        return _message(exc.status_code, str(exc.detail))

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return _message(500, UNKNOWN_ERROR_MESSAGE)


def create_app(
    settings: Settings | None = None, backends: Backends | None = None
) -> FastAPI:
    settings = settings or get_settings()
    logging.basicConfig(level=settings.log_level.upper())

    app = FastAPI(title="Places Backend (FastAPI)", version="0.1.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.backends = backends

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list,
        allow_methods=["GET", "POST", "PATCH", "DELETE"],
        allow_headers=[
            "Origin",
            "X-Requested-With",
            "Content-Type",
            "Accept",
            "Authorization",
        ],
    )
    register_error_handlers(app)

    app.include_router(places_router, prefix=settings.api_prefix)
    app.include_router(users_router, prefix=settings.api_prefix)

    if not settings.s3_bucket and not settings.use_in_memory_backends:
        app.mount(
            f"/{LOCAL_IMAGE_URL_PREFIX}",
            StaticFiles(directory=settings.upload_dir, check_dir=False),
            name="uploads",
        )
    return app


app = create_app()
