from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from detention.api.v1.router import router as api_v1_router
from detention.config.database import check_database_connection
from detention.config.settings import settings
from detention.core.exceptions import BaseAppException, ErrorCode
from detention.core.logging import get_logger, setup_logging
from detention.core.middleware import register_middlewares
from detention.db.init_db import init_db

logger = get_logger(__name__)


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(BaseAppException)
    async def app_exception_handler(request: Request, exc: BaseAppException) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(
            status_code=422,
            content={
                "error": {
                    "message": "Request validation failed",
                    "code": ErrorCode.VALIDATION_ERROR.value,
                    "details": {"errors": [
                        {"loc": list(err.get("loc", ())), "msg": err.get("msg")}
                        for err in exc.errors()
                    ]},
                    "type": "RequestValidationError",
                }
            },
        )


def create_app() -> FastAPI:
    """
    Application factory for the FastAPI app.

    - Configures title, version, debug mode from Settings.
    - Registers CORS, core middleware, and exception handlers.
    - Includes the versioned API router under API_V1_STR.
    """
    setup_logging(settings)

    app = FastAPI(
        title=settings.APP_NAME,
        debug=settings.DEBUG,
        version=settings.API_VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS or ["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_middlewares(app)
    register_exception_handlers(app)

    app.include_router(api_v1_router, prefix=settings.API_V1_STR)

    @app.get("/health", tags=["Health"])
    def health() -> dict:
        database = check_database_connection()
        return {
            "status": "ok" if database["is_connected"] else "degraded",
            "version": settings.API_VERSION,
            "database": database,
        }

    # Schema creation in dev only; production schemas are migrated
    @app.on_event("startup")
    async def on_startup() -> None:
        if not settings.is_production():
            init_db()
        logger.info(f"{settings.APP_NAME} started", extra={"environment": settings.ENVIRONMENT})

    return app


app = create_app()
