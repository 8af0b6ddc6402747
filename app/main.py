# app/main.py

from contextlib import asynccontextmanager
from fastapi import FastAPI, Request, status, Depends
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import text # For database health check
import logging
import asyncio
import uvicorn

from app.config import settings

# --- Configure logging early, before other modules start logging ---
from app.core.logging_config import configure_logging
configure_logging()

logger = logging.getLogger(settings.APP_NAME)

from app.infrastructure.database.session import async_engine, get_db, AsyncSessionLocal
from app.infrastructure.database.base import Base # For metadata.create_all
from app.api.v1 import auth
from app.core.exceptions import APIException
from app.tasks.cleanup_task import purge_expired_tokens

# --- Helper to run the token cleanup periodically ---
async def _run_cleanup_periodically(interval_seconds: int):
    """
    Purges expired tokens at regular intervals.
    Errors are logged so the loop never dies silently.
    """
    logger.info(f"Scheduler started: expired-token cleanup will run every {interval_seconds / 3600:.1f} hours.")
    while True:
        try:
            await purge_expired_tokens(AsyncSessionLocal)
        except Exception as e:
            logger.error(f"Error during expired-token cleanup: {e}", exc_info=True)
        await asyncio.sleep(interval_seconds)

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Creates tables in DEV and schedules the expired-token cleanup.
    """
    logger.info(f"{settings.APP_NAME} starting up in {settings.ENVIRONMENT} mode...")

    # Production schemas are managed by migrations
    if settings.ENVIRONMENT == "DEV":
        logger.info("ENVIRONMENT is DEV: Attempting to create database tables...")
        async with async_engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables created successfully for DEV environment (if not already existing).")
    else:
        logger.info("Database table creation skipped for non-DEV environment.")

    cleanup_task = asyncio.create_task(_run_cleanup_periodically(settings.TOKEN_CLEANUP_INTERVAL_SECONDS))

    yield

    logger.info(f"{settings.APP_NAME} shutting down...")
    cleanup_task.cancel()
    try:
        await async_engine.dispose()
        logger.info("Database connections closed gracefully.")
    except Exception as e:
        logger.error(f"Error closing database connections during shutdown: {e}", exc_info=True)


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.VERSION,
    debug=settings.DEBUG,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/", summary="Welcome message", tags=["Root"])
async def read_root():
    return {"message": f"Welcome to {settings.APP_NAME} v{settings.VERSION}!", "environment": settings.ENVIRONMENT}

@app.get("/health", summary="Health check endpoint", tags=["Monitoring"])
async def health_check(db_session: AsyncSession = Depends(get_db)):
    """
    Checks application status and database connectivity.
    """
    try:
        await db_session.execute(text("SELECT 1"))
        db_status = "ok"
    except Exception as e:
        logger.error(f"Database health check failed: {e}", exc_info=False)
        db_status = "error"

    return JSONResponse(
        status_code=status.HTTP_200_OK if db_status == "ok" else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "status": "ok" if db_status == "ok" else "degraded",
            "version": settings.VERSION,
            "environment": settings.ENVIRONMENT,
            "database_status": db_status
        }
    )

app.include_router(auth.router)


# Global exception handlers
@app.exception_handler(APIException)
async def api_exception_handler(request: Request, exc: APIException):
    logger.warning(f"API Exception on {request.url.path}: {exc.name} - {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message},
        headers=exc.headers,
    )

@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    # Raw validation details (which may echo passwords) only in debug mode
    if settings.DEBUG:
        logger.error(f"Validation Error (DEBUG mode): {exc.errors()}")
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={"detail": "Validation error", "errors": jsonable_encoder(exc.errors())}
        )
    logger.error(f"Validation Error on {request.url.path}")
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": "Invalid input provided. Please check your request."}
    )

@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception):
    logger.critical(f"Unhandled Exception: {exc}", exc_info=True)
    if settings.DEBUG:
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": f"An unexpected error occurred: {type(exc).__name__} - {str(exc)}"}
        )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "An unexpected server error occurred. Please try again later."}
    )


# --- Local development entry point; deployments run uvicorn directly ---
if __name__ == "__main__":
    logger.info(f"Listening on http://0.0.0.0:{settings.PORT}")
    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower(),
    )
