from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from contextlib import asynccontextmanager
import uvicorn
import os
import logging
from dotenv import load_dotenv

# Load environment variables from .env file FIRST, before any other imports
load_dotenv()

logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
logging.getLogger("sqlalchemy.pool").setLevel(logging.WARNING)
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

from config import settings
from habitpush.api.endpoints import reminders, push
from habitpush.core.error_handling import (
    AppException,
    app_exception_handler,
    validation_exception_handler,
    general_exception_handler,
)
from habitpush.core.monitoring import init_sentry

logger = logging.getLogger(__name__)


def get_cors_origins():
    """Get CORS origins from BACKEND_CORS_ORIGINS (comma separated)"""
    cors_env = os.getenv("BACKEND_CORS_ORIGINS", settings.BACKEND_CORS_ORIGINS)
    return [origin.strip() for origin in cors_env.split(",") if origin.strip()]


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan event handler for startup and shutdown"""
    logger.info(f"{settings.APP_NAME} starting up...")

    if init_sentry():
        logger.info("Sentry monitoring initialized")

    yield

    logger.info(f"{settings.APP_NAME} shutting down...")


app = FastAPI(
    title=settings.APP_NAME,
    description="Habit reminders and web push delivery",
    version=settings.APP_VERSION,
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_cors_origins(),
    allow_origin_regex=r"https?://(localhost|127\.0\.0\.1):\d+",
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
    max_age=3600,
)

app.add_exception_handler(AppException, app_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, general_exception_handler)

API_V1_PREFIX = settings.API_V1_PREFIX
app.include_router(reminders.router, prefix=API_V1_PREFIX)
app.include_router(push.router, prefix=API_V1_PREFIX)


@app.get("/")
async def root():
    """Health check endpoint"""
    return {"status": "healthy"}


@app.get("/health")
async def health_check_simple():
    """Simple health check endpoint for monitoring"""
    return {"status": "healthy"}


@app.get("/api/health")
async def health_check():
    """Detailed health check endpoint"""
    return {
        "status": "healthy",
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
    }


if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG
    )
