"""
FastAPI main application for the Research Repository Search API.
"""

import logging
import logging.config
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .routes import routers, init_search_engine, shutdown_search_engine
from config.search_config import (
    LOG_CONFIG,
    API_CONFIG,
    CORS_ORIGINS,
    DATABASE_PATH,
    ENVIRONMENT,
    DEBUG
)

# Configure logging
logging.config.dictConfig(LOG_CONFIG)
logger = logging.getLogger('api')


# ============================================================================
# Application Lifespan
# ============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the document store on startup, release it on shutdown."""
    logger.info(f"Research Search API starting (env={ENVIRONMENT}, debug={DEBUG}, db={DATABASE_PATH})")

    init_search_engine(db_path=DATABASE_PATH)

    yield

    shutdown_search_engine()
    logger.info("Research Search API stopped")


# ============================================================================
# Application Setup
# ============================================================================

app = FastAPI(
    title="Research Search API",
    description="Search and recommendation API for the research paper repository",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs" if DEBUG else None,
    redoc_url="/redoc" if DEBUG else None
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

for router in routers:
    app.include_router(router)


# ============================================================================
# Root Endpoint
# ============================================================================

@app.get("/")
async def root():
    """
    Root endpoint - API information.
    """
    return {
        "name": "Research Search API",
        "version": "1.0.0",
        "endpoints": {
            "advanced_search": "/api/search/advanced",
            "similar": "/api/search/similar/{id}",
            "recommendations": "/api/search/recommendations",
            "research": "/api/research",
            "health": "/api/health"
        },
        "documentation": "/docs" if DEBUG else None
    }


# ============================================================================
# Error Handlers
# ============================================================================

@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request, exc):
    """Return route error bodies as-is, wrap plain string details."""
    if isinstance(exc.detail, dict):
        content = exc.detail
    elif exc.status_code == 404:
        content = {
            "error": "Resource not found",
            "code": "NOT_FOUND",
            "details": {"path": str(request.url.path)}
        }
    else:
        content = {"error": str(exc.detail), "code": f"HTTP_{exc.status_code}"}

    return JSONResponse(status_code=exc.status_code, content=content, headers=exc.headers)


@app.exception_handler(Exception)
async def unhandled_error_handler(request, exc):
    """Log the traceback, answer with a generic body."""
    logger.error(f"Unhandled error on {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal server error",
            "code": "INTERNAL_ERROR"
        }
    )


# ============================================================================
# Development Server
# ============================================================================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "src.api.main:app",
        host=API_CONFIG['host'],
        port=API_CONFIG['port'],
        reload=API_CONFIG['reload'],
        log_level=API_CONFIG['log_level']
    )
