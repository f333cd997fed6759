"""
gate_portal/main.py
FastAPI application

Run with:
    uvicorn gate_portal.main:app --reload
"""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from gate_portal import __version__
from gate_portal.config.settings import DEFAULT_JWT_SECRET, Settings, load_settings
from gate_portal.database import close_db, create_engine, create_session_factory, init_db
from gate_portal.errors import APIError, ErrorCode, get_error_summary, new_log_id
from gate_portal.routes import limiter, router

logger = logging.getLogger(__name__)


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler()]
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings
    logger.info(f"Starting application ({settings.environment})...")

    if not settings.is_development and settings.jwt_secret_key == DEFAULT_JWT_SECRET:
        logger.warning("⚠️ JWT_SECRET_KEY is not set - using the development secret")

    engine = create_engine(settings)
    app.state.engine = engine
    app.state.session_factory = create_session_factory(engine)

    try:
        await init_db(engine)
        logger.info("Database connected successfully")
    except Exception as e:
        logger.error(f"Failed to connect to database: {str(e)}")
        raise

    yield

    logger.info("Shutting down application...")
    try:
        await close_db(engine)
    except Exception as e:
        logger.error(f"Error closing database connection: {str(e)}")


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.warning(f"Validation error on {request.url.path}: {exc.errors()}")

    error_details = []
    for error in exc.errors():
        error_details.append({
            "loc": error.get("loc"),
            "msg": error.get("msg"),
            "type": error.get("type")
        })

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "success": False,
            "error": "Validation Error",
            "details": error_details
        }
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    logger.warning(f"HTTP exception on {request.url.path}: {exc.detail}")

    if isinstance(exc.detail, dict):
        return JSONResponse(status_code=exc.status_code, content=exc.detail)

    if exc.status_code == status.HTTP_404_NOT_FOUND:
        code = ErrorCode.NOT_FOUND
    elif exc.status_code >= 500:
        code = ErrorCode.INTERNAL_ERROR
    else:
        code = ErrorCode.VALIDATION_ERROR

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "success": False,
            "error": "Error",
            "message": str(exc.detail),
            "code": code
        }
    )


async def api_error_handler(request: Request, exc: APIError):
    if exc.status_code >= 500:
        logger.error(f"API error on {request.url.path}: {exc.code} - {exc.message}")
    else:
        logger.warning(f"API error on {request.url.path}: {exc.code} - {exc.message}")
    return exc.to_response()


async def global_exception_handler(request: Request, exc: Exception):
    log_id = new_log_id()
    logger.exception(f"[{log_id}] Unhandled exception on {request.url.path}: {type(exc).__name__}: {str(exc)}")

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "success": False,
            "error": "Internal Error",
            "message": "An unexpected error occurred. Please try again later.",
            "code": ErrorCode.INTERNAL_ERROR,
            "details": {"log_id": log_id}
        }
    )


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the application for the given settings (read from the environment if omitted)."""
    settings = settings or load_settings()
    configure_logging(settings)

    app = FastAPI(
        title="GATE Exam Portal API",
        description="Scheduled tests, automatic scoring and result analytics",
        version=__version__,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        debug=settings.debug,
        lifespan=lifespan
    )
    app.state.settings = settings

    limiter.enabled = settings.rate_limit_enabled
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.allowed_origins),
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"],
        allow_headers=["*"],
    )

    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(APIError, api_error_handler)
    app.add_exception_handler(Exception, global_exception_handler)

    @app.get("/health", tags=["Health"])
    async def health_check():
        return {
            "status": "healthy",
            "environment": settings.environment,
            "database": settings.database_url.split(":", 1)[0],
            "version": __version__
        }

    @app.get("/api/errors/health", tags=["Health"])
    async def error_handling_health():
        return get_error_summary()

    @app.get("/", tags=["Root"])
    async def root():
        return {
            "message": "GATE Exam Portal API",
            "version": __version__,
            "docs": "/docs" if settings.is_development else None
        }

    app.include_router(router)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("gate_portal.main:app", host="0.0.0.0", port=8000, reload=True)
