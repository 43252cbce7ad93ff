"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.v1.router import api_router
from app.core.config import settings
from app.core.database import SessionLocal, engine
from app.core.exceptions import register_exception_handlers
from app.core.logging_config import setup_logging
from app.core.session import SessionStore, ensure_session_table
from app.middleware.logging import RequestLoggingMiddleware

setup_logging()
logger = logging.getLogger(__name__)

DESCRIPTION = """
Student Registration Dashboard API.

## Features

- **Student records**: filter, sort, page, edit and delete registrations
- **Notes**: per-student notes plus an automatic status-change log
- **CSV import/export**: bulk import with column synonyms, filtered export
- **List state**: the student list's filters and paging survive navigation
- **Dashboard**: status, location and registration trend statistics

## Authentication

Log in with `POST /api/auth/login`. The session travels in an HTTP-only
cookie; API clients may send the returned token as `Authorization: Bearer <token>`.

## Errors

Failures share one envelope:
```json
{"success": false, "error": {"code": "NOT_FOUND", "message": "Student not found", "details": {}}}
```
"""


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Prepare the session table and drop stale sessions on startup."""
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION} ({settings.ENVIRONMENT})")
    ensure_session_table(engine)
    with SessionLocal() as db:
        purged = SessionStore(db).purge_expired()
        db.commit()
    if purged:
        logger.info(f"Purged {purged} expired sessions")
    yield
    logger.info("Shutting down")
    engine.dispose()


def create_application() -> FastAPI:
    """Build the FastAPI application."""
    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description=DESCRIPTION,
        openapi_url=f"{settings.API_PREFIX}/openapi.json",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    app.add_middleware(RequestLoggingMiddleware)
    # Credentials must be allowed for the session cookie, so origins are explicit
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "Content-Disposition"],
    )

    register_exception_handlers(app)

    @app.get("/health", tags=["Health"])
    async def health_check():
        """Liveness probe."""
        return {
            "status": "healthy",
            "app": settings.APP_NAME,
            "version": settings.APP_VERSION,
        }

    app.include_router(api_router, prefix=settings.API_PREFIX)
    return app


app = create_application()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
    )
