"""
Main FastAPI application
Quiz attempts with cooldowns, scoring and achievements
"""
from fastapi import FastAPI, Request, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
import logging
import time

from app.config import settings
from app.database import SessionLocal, engine, init_db
from app.api import quizzes, achievements
from app.exceptions import QuizPlatformError, StoreError
from app.services.achievement_catalog import load_catalog, seed_default_achievements
from app.utils.rate_limiter import rate_limiter

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# Paths that bypass the rate limiter
UNLIMITED_PATHS = {"/", "/health", "/docs", "/redoc", "/openapi.json"}

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Quiz-taking backend with attempt cooldowns, scoring and achievements",
    docs_url="/docs",
    redoc_url="/redoc"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def rate_limit_middleware(request: Request, call_next):
    """Reject callers over their per-minute or per-hour budget with 429"""

    if not settings.RATE_LIMIT_ENABLED or request.url.path in UNLIMITED_PATHS:
        return await call_next(request)

    try:
        await rate_limiter.check_rate_limit(request)
    except HTTPException as e:
        return JSONResponse(status_code=e.status_code, content=e.detail)

    return await call_next(request)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log method, path, status and duration, tagged with the caller when known"""

    started = time.perf_counter()
    response = await call_next(request)
    elapsed = time.perf_counter() - started

    caller = request.headers.get("x-user-id", "anonymous")
    logger.info(
        f"{request.method} {request.url.path} - "
        f"Status: {response.status_code} - "
        f"User: {caller} - "
        f"Duration: {elapsed:.3f}s"
    )

    return response


@app.exception_handler(QuizPlatformError)
async def quiz_platform_exception_handler(request: Request, exc: QuizPlatformError):
    """Render service errors with their status and error code"""

    if isinstance(exc, StoreError):
        logger.error(
            f"Store error on {request.method} {request.url.path}: {exc.message}",
            exc_info=exc
        )
    else:
        logger.info(f"{request.method} {request.url.path} rejected: {exc.error_code} ({exc.message})")

    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Anything unexpected becomes a generic 500"""

    logger.error(f"Unhandled exception: {str(exc)}", exc_info=True)

    return JSONResponse(
        status_code=500,
        content={
            "error": "internal_server_error",
            "message": "An unexpected error occurred. Please try again later.",
            "detail": str(exc) if settings.DEBUG else None
        }
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """Same error envelope as the domain errors"""

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": "http_error",
            "message": exc.detail,
            "status_code": exc.status_code
        }
    )


@app.get("/health")
async def health_check():
    """
    Health check endpoint for monitoring

    Pings the database and reports the size of the loaded achievement catalog.
    Responds 503 when the database is unreachable.
    """
    catalog = getattr(app.state, "achievement_catalog", None)
    body = {
        "status": "healthy",
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "database": "ok",
        "rate_limit_backend": rate_limiter.backend,
        "achievements_loaded": len(catalog) if catalog is not None else 0,
        "timestamp": time.time()
    }

    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.error(f"Health check database ping failed: {str(e)}")
        body["status"] = "unhealthy"
        body["database"] = "unreachable"
        return JSONResponse(status_code=503, content=body)

    return body


@app.get("/")
async def root():
    return {
        "message": "Quiz Platform API",
        "version": settings.APP_VERSION,
        "endpoints": ["/api/quizzes", "/api/achievements"],
        "docs": "/docs",
        "health": "/health"
    }


app.include_router(quizzes.router)
app.include_router(achievements.router)


@app.on_event("startup")
async def startup_event():
    """Create tables, optionally seed the starter achievements, load the catalog"""
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")

    try:
        init_db()
    except SQLAlchemyError as e:
        logger.error(f"Failed to initialize database: {str(e)}")
        raise

    db = SessionLocal()
    try:
        if settings.SEED_DEFAULT_ACHIEVEMENTS:
            seed_default_achievements(db)
        app.state.achievement_catalog = load_catalog(db)
    finally:
        db.close()

    logger.info(
        f"Startup complete: streak mode {settings.ACHIEVEMENT_STREAK_MODE}, "
        f"achievement evaluation {'background' if settings.ACHIEVEMENTS_EVALUATE_IN_BACKGROUND else 'inline'}"
    )


@app.on_event("shutdown")
async def shutdown_event():
    """Release pooled connections"""
    logger.info("Shutting down application")
    rate_limiter.close()
    engine.dispose()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG
    )
