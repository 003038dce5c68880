"""
ImgBed Upload API
Main FastAPI application entry point
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
import logging

import httpx

from core.config import settings
from core.middleware import RequestIDFilter, RequestIDMiddleware, LoggingMiddleware
from api.router import api_router
from services.upload import create_kv_store

# Configure logging
log_handler = logging.StreamHandler()
log_handler.addFilter(RequestIDFilter())
logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s - %(name)s - [%(request_id)s] - %(levelname)s - %(message)s",
    handlers=[log_handler]
)
# httpx logs full request URLs, which embed the bot token
logging.getLogger("httpx").setLevel(logging.WARNING)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle startup and shutdown events"""
    # Startup
    logger.info("Starting ImgBed Upload API...")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"Dispatch mode: {settings.DISPATCH_MODE}, KV backend: {settings.KV_BACKEND}")
    if not settings.upstream_configured:
        logger.warning("TG_BOT_TOKEN / TG_CHAT_ID not set; uploads will be rejected")

    app.state.http_client = httpx.AsyncClient(timeout=settings.UPSTREAM_TIMEOUT)
    app.state.kv_store = create_kv_store(settings, app.state.http_client)

    yield

    # Shutdown
    logger.info("Shutting down ImgBed Upload API...")
    await app.state.http_client.aclose()


# Create FastAPI application
app = FastAPI(
    title="ImgBed Upload API",
    description="Relays uploaded files to Telegram storage and indexes them in a KV store",
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/api/docs" if settings.DEBUG else None,
    redoc_url="/api/redoc" if settings.DEBUG else None,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=False,
    allow_methods=["POST", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
    max_age=settings.CORS_MAX_AGE,
)

# Add custom middleware (last added runs first, so request IDs exist before logging)
app.add_middleware(LoggingMiddleware)
app.add_middleware(RequestIDMiddleware)

app.include_router(api_router, prefix=settings.API_PREFIX)


@app.get("/health")
async def health_check():
    """Health check endpoint (kept outside the API prefix for load balancers)"""
    return {
        "status": "healthy",
        "environment": settings.ENVIRONMENT
    }
