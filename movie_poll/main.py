from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional
import logging

from fastapi import FastAPI, Request, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from movie_poll import __version__
from movie_poll.config import Settings
from movie_poll.database import Base, create_db_engine, create_session_factory
from movie_poll.middleware.security import SecurityHeadersMiddleware
from movie_poll.routes import admin, auth, identity, movies, results, votes
from movie_poll.services.admin_service import AdminService
import movie_poll.models  # noqa: F401  (register tables on Base.metadata)

logger = logging.getLogger(__name__)


# ============================================
# Application Lifespan Management
# ============================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Startup:
    - Create missing tables
    - Bootstrap the admin account when ADMIN_PASSWORD is set

    Shutdown:
    - Log the shutdown banner
    """
    settings: Settings = app.state.settings

    logger.info("=" * 60)
    logger.info("Movie Poll API Starting...")
    logger.info(f"   Environment: {settings.environment}")
    logger.info(f"   Participation threshold: {settings.participation_threshold}")
    logger.info(f"   CORS Origins: {len(settings.allowed_origins)} configured")
    logger.info("=" * 60)

    Base.metadata.create_all(bind=app.state.engine)

    if settings.admin_password:
        db = app.state.session_factory()
        try:
            AdminService.ensure_admin(db, settings.admin_username, settings.admin_password)
        finally:
            db.close()
    else:
        logger.warning("ADMIN_PASSWORD not set, admin login disabled until an admin exists")

    yield

    logger.info("=" * 60)
    logger.info("Movie Poll API Shutting Down...")
    logger.info("=" * 60)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the application around one settings object and one engine"""
    settings = settings or Settings.from_env()

    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    app = FastAPI(
        title="Movie Poll API",
        description="Group movie night voting with appeal-based ranking",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan
    )

    app.state.settings = settings
    app.state.engine = create_db_engine(settings)
    app.state.session_factory = create_session_factory(app.state.engine)

    # ============================================
    # Middleware
    # ============================================

    app.add_middleware(
        SecurityHeadersMiddleware,
        enable_hsts=settings.environment == "production",
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )

    # ============================================
    # Exception Handlers
    # ============================================

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail},
            headers=getattr(exc, "headers", None)
        )

    @app.exception_handler(SQLAlchemyError)
    async def storage_exception_handler(request: Request, exc: SQLAlchemyError):
        logger.error(f"Storage error on {request.method} {request.url.path}: {str(exc)}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content={"detail": "Storage error"}
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled exception: {str(exc)}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error"}
        )

    # ============================================
    # Routes
    # ============================================

    @app.get("/", tags=["Health"])
    async def root():
        """Basic health check"""
        return {
            "message": "Movie Poll API",
            "version": __version__,
            "status": "healthy",
            "docs": "/docs"
        }

    @app.get("/health", tags=["Health"])
    async def health_check():
        """Detailed health check for monitoring"""
        return {
            "status": "healthy",
            "api_version": __version__,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "environment": settings.environment,
        }

    app.include_router(identity.router)
    app.include_router(movies.router)
    app.include_router(votes.router)
    app.include_router(results.router)
    app.include_router(auth.router)
    app.include_router(admin.router)

    return app


# Serve with: uvicorn movie_poll.main:create_app --factory
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        create_app(),
        host="0.0.0.0",
        port=8000,
        log_level="info"
    )
