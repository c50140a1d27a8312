"""Chat Assistant API - Main Application Module.

This module initializes the FastAPI application with proper configuration,
middleware, routing, and lifecycle management for the conversational
assistant: conversations, role personas, public share links and the
CV/quiz document pipeline.
"""

import logging
import sys
import uuid
from contextlib import asynccontextmanager
from datetime import datetime
from pathlib import Path

# Add the project root to Python path if running directly
if __name__ == "__main__":
    project_root = Path(__file__).parent.parent
    sys.path.insert(0, str(project_root))

import httpx
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.config import ConfigValidator, get_config_summary, settings
from app.core.logging import configure_logging
from app.core.security import IdentityProviderAuthenticator
from app.database import AsyncSessionLocal, engine
from app.exceptions.llm import LLMServiceError
from app.services.llm_gateway import ChatSessionCache
from models import Base

configure_logging(settings)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle events."""
    # Startup
    logger.info(f"Starting {settings.app_name} ({settings.environment.value})")
    ConfigValidator.validate_required_settings()

    # Local environments create tables on startup
    if (settings.is_development or settings.is_testing) and settings.auto_create_tables:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables created/verified")

    app.state.http_client = httpx.AsyncClient(timeout=settings.ai_request_timeout)
    logger.info(f"Configuration: {get_config_summary()}")

    yield

    # Shutdown
    logger.info(f"Shutting down {settings.app_name}")
    await app.state.http_client.aclose()
    app.state.chat_sessions.clear_all()
    await engine.dispose()
    logger.info("Database connections closed")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title=settings.app_name,
        description="Conversational assistant with role personas, shared conversations and CV tools",
        version=settings.version,
        lifespan=lifespan,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
    )

    # Process-wide collaborators
    app.state.authenticator = IdentityProviderAuthenticator(settings)
    app.state.chat_sessions = ChatSessionCache()

    # Add middleware
    setup_middleware(app)

    # Add exception handlers
    setup_exception_handlers(app)

    # Include routers
    setup_routers(app)

    return app


def setup_middleware(app: FastAPI):
    """Configure application middleware."""
    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Request ID middleware
    @app.middleware("http")
    async def add_request_id(request: Request, call_next):
        request_id = str(uuid.uuid4())
        request.state.request_id = request_id
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response


def error_response(request: Request, status_code: int, message: str, error_code: str, details=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "error": message,
            "status": "error",
            "message": message,
            "error_code": error_code,
            "details": details,
            "timestamp": datetime.utcnow().isoformat(),
            "request_id": getattr(request.state, "request_id", None),
        },
    )


def setup_exception_handlers(app: FastAPI):
    """Configure global exception handlers."""

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        # Handle custom exceptions that have structured detail
        if isinstance(exc.detail, dict) and "message" in exc.detail:
            message = exc.detail["message"]
            error_code = exc.detail.get("error_code", "HTTP_ERROR")
            details = exc.detail.get("details")
        else:
            message = str(exc.detail) if exc.detail else "An error occurred"
            error_code = "HTTP_ERROR"
            details = None

        if isinstance(exc, LLMServiceError):
            logger.error(f"LLM error on {request.method} {request.url.path}: {message}")
        elif exc.status_code >= 500:
            logger.error(f"Server error on {request.method} {request.url.path}: {message}")

        response = error_response(request, exc.status_code, message, error_code, details)
        if exc.headers:
            response.headers.update(exc.headers)
        return response

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        # Convert errors to JSON-serializable format
        errors = []
        for error in exc.errors():
            error_dict = {
                "loc": error.get("loc", []),
                "msg": str(error.get("msg", "Validation error")),
                "type": error.get("type", "value_error"),
            }
            # Handle custom input if present
            if "input" in error:
                error_dict["input"] = str(error["input"])
            errors.append(error_dict)

        return error_response(request, 400, "Validation error", "VALIDATION_ERROR", errors)

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        return error_response(request, 500, "Internal server error", "INTERNAL_ERROR")


def setup_routers(app: FastAPI):
    """Configure application routers."""
    # Import routers
    from app.domains.conversation.controller import router as conversation_router
    from app.domains.document.controller import router as document_router
    from app.domains.llm.controller import router as llm_router
    from app.domains.message.controller import router as message_router
    from app.domains.role.controller import router as role_router
    from app.domains.share.controller import router as share_router
    from app.domains.user.controller import router as user_router

    # Health check endpoint
    @app.get("/health")
    async def health_check():
        """Health check covering the database and configured LLM providers."""
        db_status = "healthy"
        try:
            async with AsyncSessionLocal() as db:
                await db.execute(text("SELECT 1"))
        except Exception as e:
            logger.error(f"Health check database error: {str(e)}")
            db_status = "unhealthy"

        features = ConfigValidator.get_feature_status()
        return JSONResponse(
            status_code=200 if db_status == "healthy" else 503,
            content={
                "status": "healthy" if db_status == "healthy" else "unhealthy",
                "version": settings.version,
                "environment": settings.environment.value,
                "timestamp": datetime.utcnow().isoformat(),
                "services": {
                    "database": db_status,
                    "groq": "configured" if features["groq_enabled"] else "not_configured",
                    "gemini": "configured" if features["gemini_enabled"] else "not_configured",
                },
            },
        )

    @app.get("/")
    async def root():
        """Root endpoint with API information."""
        return {
            "name": settings.app_name,
            "version": settings.version,
            "description": "Conversational assistant API",
            "docs_url": "/docs" if settings.is_development else None,
        }

    # Include domain routers
    app.include_router(user_router)
    app.include_router(conversation_router)
    app.include_router(message_router)
    app.include_router(share_router)
    app.include_router(role_router)
    app.include_router(document_router)
    app.include_router(llm_router)


# Create the application instance
app = create_app()


def main():
    """Entry point for running the application directly."""
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.is_development,
        log_level=settings.log_level.value.lower(),
    )


if __name__ == "__main__":
    main()
