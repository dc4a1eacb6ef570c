"""
FastAPI application for the bot/server listing API.

Serves:
- Bot submission, edit, ownership transfer, delete and import
- Appeals, certification requests and reports
- Bot pack management
- Cached index, search and detail reads
"""

import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from services.context import AppContext
from services.errors import (
    APIError,
    AppealRejected,
    CheckBotCode,
    EditForbidden,
    ExperimentNotEnabled,
    GenericCode,
    ImportSourceCode,
    RateLimited,
)
from utils.errors import StoreError
from utils.logging import get_logger, setup_logging
from web.backend.core.dependencies import project_root
from web.backend.core.request_id import RequestIDMiddleware
from web.backend.core.schemas import APIResponse
from web.backend.routes import bots, health, listings, packs, servers

_PROJECT_ROOT = project_root()

# Use absolute path to avoid nested log directories when CWD is web/backend
_LOG_PATH = _PROJECT_ROOT / "logs" / "api.log"
setup_logging(log_file=str(_LOG_PATH))
logger = get_logger(__name__)

env_path = _PROJECT_ROOT / ".env"
logger.info("Loading backend environment", extra={"env_path": str(env_path)})
load_dotenv(env_path)

if not os.getenv("DISCORD_BOT_TOKEN"):
    logger.warning("DISCORD_BOT_TOKEN not found in environment")

# Codes that are not plain validation failures
_STATUS_OVERRIDES = {
    GenericCode.FORBIDDEN: 403,
    GenericCode.NOT_FOUND: 404,
    CheckBotCode.NOT_MAIN_OWNER: 403,
    ImportSourceCode.NOT_FOUND: 404,
}


def _envelope(status_code: int, body: APIResponse) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=body.model_dump())


async def api_error_handler(request: Request, exc: APIError) -> JSONResponse:
    status_code = _STATUS_OVERRIDES.get(exc.code, 400)
    logger.info(
        "Request rejected",
        extra={
            "endpoint": request.url.path,
            "method": request.method,
            "status_code": status_code,
            "error_code": exc.reason,
        },
    )
    return _envelope(status_code, APIResponse.err_small(exc.reason, exc.context))


async def edit_forbidden_handler(request: Request, exc: EditForbidden) -> JSONResponse:
    return _envelope(400, APIResponse.err_small(EditForbidden.message, GenericCode.FORBIDDEN.value))


async def rate_limited_handler(request: Request, exc: RateLimited) -> JSONResponse:
    return _envelope(
        400,
        APIResponse.err_small(
            f"Please wait {exc.seconds_remaining} seconds before retrying this {exc.action}!",
            "Ratelimit",
        ),
    )


async def experiment_handler(request: Request, exc: ExperimentNotEnabled) -> JSONResponse:
    return _envelope(451, APIResponse.err_small("ExpNotEnabled", exc.experiment))


async def appeal_rejected_handler(request: Request, exc: AppealRejected) -> JSONResponse:
    return _envelope(400, APIResponse.err_small(str(exc)))


async def store_error_handler(request: Request, exc: StoreError) -> JSONResponse:
    return _envelope(
        400, APIResponse.err_small(f"GenericError.{GenericCode.SQL_ERROR.value}", str(exc))
    )


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return _envelope(
        400,
        APIResponse.err_small(f"GenericError.{GenericCode.INVALID_FIELDS.value}", str(exc.errors())),
    )


async def internal_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(
        "Unhandled error",
        exc_info=exc,
        extra={"endpoint": request.url.path, "method": request.method},
    )
    return _envelope(500, APIResponse.err_small("Internal Server Error"))


def create_app(context: AppContext | None = None) -> FastAPI:
    """
    Build the application.

    When ``context`` is given it is used as is and the caller owns its
    startup and shutdown.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = app.state.context is None
        if owned:
            app.state.context = AppContext.create()
            await app.state.context.startup()
        yield
        if owned:
            await app.state.context.shutdown()

    app = FastAPI(
        title="Listing API",
        description="Bot and server listing backend",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.context = context

    cors_origins = ["http://localhost:5173", "http://localhost:3000"]
    frontend_url = os.getenv("FRONTEND_URL")
    if frontend_url:
        cors_origins.append(frontend_url)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestIDMiddleware)

    app.add_exception_handler(APIError, api_error_handler)
    app.add_exception_handler(EditForbidden, edit_forbidden_handler)
    app.add_exception_handler(RateLimited, rate_limited_handler)
    app.add_exception_handler(ExperimentNotEnabled, experiment_handler)
    app.add_exception_handler(AppealRejected, appeal_rejected_handler)
    app.add_exception_handler(StoreError, store_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, internal_error_handler)

    app.include_router(bots.router, tags=["bots"])
    app.include_router(servers.router, tags=["servers"])
    app.include_router(packs.router, tags=["packs"])
    app.include_router(listings.router, tags=["listings"])
    app.include_router(health.router, tags=["health"])

    return app


app = create_app()


def main() -> None:
    import uvicorn

    uvicorn.run(
        "web.backend.app:app",
        host=os.getenv("API_HOST", "127.0.0.1"),
        port=int(os.getenv("API_PORT", "8081")),
    )


if __name__ == "__main__":
    main()
