"""
FastAPI route handlers for the research repository API.
"""

import asyncio
import logging
from typing import Optional
from datetime import datetime
from concurrent.futures import ThreadPoolExecutor
from fastapi import APIRouter, HTTPException, Query, Depends, Header
from fastapi.responses import JSONResponse

from .models import (
    Paper,
    PapersResponse,
    PaperResponse,
    HealthResponse,
    ErrorResponse,
)
from src.search.search_engine import SearchEngine, SearchParams, DocumentNotFoundError
from src.storage.document_store import SEARCH_ACTION
from config.search_config import CONCURRENCY_CONFIG, SEARCH_CONFIG

logger = logging.getLogger('api')

# Thread pool for blocking search and database work
search_executor = ThreadPoolExecutor(
    max_workers=CONCURRENCY_CONFIG['search_thread_pool_size']
)

# Global search engine instance (created on startup)
search_engine: SearchEngine = None

# Track service start time
service_start_time = datetime.now()

PAPER_NOT_FOUND = {"error": "Paper not found", "code": "NOT_FOUND"}

# Error bodies documented in the OpenAPI schema
ERROR_RESPONSES = {
    401: {"model": ErrorResponse, "description": "Missing caller identity"},
    500: {"model": ErrorResponse, "description": "Internal failure"},
    503: {"model": ErrorResponse, "description": "Search engine not initialized"},
}
NOT_FOUND_RESPONSE = {404: {"model": ErrorResponse, "description": "Paper not found"}}


# ============================================================================
# Dependency Injection
# ============================================================================

def get_search_engine() -> SearchEngine:
    """Get the global search engine instance."""
    if search_engine is None:
        raise HTTPException(
            status_code=503,
            detail={
                "error": "Search engine not initialized",
                "code": "SERVICE_UNAVAILABLE"
            }
        )
    return search_engine


def get_current_user_id(x_user_id: Optional[str] = Header(None)) -> str:
    """
    Resolve the authenticated caller.

    The host application's authentication layer sets X-User-Id.
    """
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(
            status_code=401,
            detail={"error": "Authentication required", "code": "UNAUTHORIZED"}
        )
    return x_user_id.strip()


async def run_blocking(func, *args):
    """Offload a blocking engine call to the search thread pool."""
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(search_executor, lambda: func(*args))


# ============================================================================
# API Routers
# ============================================================================

search_router = APIRouter(prefix="/api/search", tags=["search"], responses=ERROR_RESPONSES)
research_router = APIRouter(prefix="/api/research", tags=["research"], responses=ERROR_RESPONSES)
health_router = APIRouter(prefix="/api", tags=["health"])


# ============================================================================
# Search Endpoints
# ============================================================================

@search_router.get("/advanced", response_model=PapersResponse)
async def advanced_search(
    query: Optional[str] = Query(None, description="Advanced query text"),
    category: Optional[str] = Query(None, description="Completed or Published"),
    year_completed: Optional[str] = Query(
        None, alias="yearCompleted", description="Year completed; a non-numeric value matches nothing"
    ),
    subject_area: Optional[str] = Query(None, alias="subjectArea", description="Subject area substring"),
    author: Optional[str] = Query(None, description="Author substring"),
    semantic: bool = Query(False, description="Re-rank results by TF-IDF relevance"),
    limit: int = Query(SEARCH_CONFIG['default_limit'], ge=1, le=SEARCH_CONFIG['max_limit']),
    user_id: str = Depends(get_current_user_id),
    engine: SearchEngine = Depends(get_search_engine)
):
    """
    Advanced search over approved papers.

    Supports field qualifiers (title:, author:, keyword:, year:, category:,
    subject:), AND/OR/NOT and quoted phrases, combined with the scalar
    filters. With `semantic=true` results are re-ranked by TF-IDF.
    """
    params = SearchParams(
        query=query,
        category=category,
        year_completed=year_completed,
        subject_area=subject_area,
        author=author,
        semantic=semantic,
        limit=limit
    )

    try:
        logger.info(f"Advanced search request: user={user_id}, params={params.to_dict()}")
        documents = await run_blocking(engine.search, params)

    except Exception as e:
        logger.error(f"Search failed: {e}", exc_info=True)
        raise HTTPException(
            status_code=500,
            detail={"error": "Search failed", "code": "SEARCH_FAILED"}
        )

    if engine.store is not None:
        try:
            await run_blocking(
                engine.store.record_audit_event,
                user_id,
                SEARCH_ACTION,
                'Research',
                None,
                {"query": query, "resultCount": len(documents)}
            )
        except Exception as e:
            logger.warning(f"Failed to record search audit event: {e}")

    return PapersResponse.from_documents(documents)


@search_router.get(
    "/similar/{document_id}", response_model=PapersResponse, responses=NOT_FOUND_RESPONSE
)
async def similar_papers(
    document_id: int,
    limit: int = Query(SEARCH_CONFIG['similar_default_limit'], ge=1, le=SEARCH_CONFIG['max_limit']),
    user_id: str = Depends(get_current_user_id),
    engine: SearchEngine = Depends(get_search_engine)
):
    """
    Find papers similar to a given paper.

    Candidates share a key term, the category or the subject area with the
    source paper and are ranked by TF-IDF similarity.
    """
    try:
        logger.info(f"Similar papers request: user={user_id}, id={document_id}, limit={limit}")
        documents = await run_blocking(engine.find_similar, document_id, limit)
        return PapersResponse.from_documents(documents)

    except DocumentNotFoundError:
        raise HTTPException(status_code=404, detail=PAPER_NOT_FOUND)
    except Exception as e:
        logger.error(f"Similar papers failed: {e}", exc_info=True)
        raise HTTPException(
            status_code=500,
            detail={"error": "Failed to find similar papers", "code": "SIMILAR_FAILED"}
        )


@search_router.get("/recommendations", response_model=PapersResponse)
async def recommendations(
    limit: int = Query(SEARCH_CONFIG['recommendation_default_limit'], ge=1, le=SEARCH_CONFIG['max_limit']),
    user_id: str = Depends(get_current_user_id),
    engine: SearchEngine = Depends(get_search_engine)
):
    """
    Personalized recommendations for the caller.

    Built from bookmarks and recent views; popular papers when the caller
    has no history.
    """
    try:
        logger.info(f"Recommendations request: user={user_id}, limit={limit}")
        documents = await run_blocking(engine.recommend, user_id, limit)
        return PapersResponse.from_documents(documents)

    except Exception as e:
        logger.error(f"Recommendations failed: {e}", exc_info=True)
        raise HTTPException(
            status_code=500,
            detail={"error": "Failed to get recommendations", "code": "RECOMMENDATIONS_FAILED"}
        )


# ============================================================================
# Research Endpoints
# ============================================================================

@research_router.get("", response_model=PapersResponse)
async def list_research(
    search: Optional[str] = Query(None, description="Search text or advanced query"),
    category: Optional[str] = Query(None, description="Completed or Published"),
    status: Optional[str] = Query(None, description="Document status, defaults to approved"),
    user_id: str = Depends(get_current_user_id),
    engine: SearchEngine = Depends(get_search_engine)
):
    """List papers, newest first."""
    try:
        documents = await run_blocking(engine.list_documents, search, category, status)
        return PapersResponse.from_documents(documents)

    except Exception as e:
        logger.error(f"Listing failed: {e}", exc_info=True)
        raise HTTPException(
            status_code=500,
            detail={"error": "Failed to list papers", "code": "LISTING_FAILED"}
        )


@research_router.get("/{document_id}", response_model=PaperResponse, responses=NOT_FOUND_RESPONSE)
async def get_research(
    document_id: int,
    user_id: str = Depends(get_current_user_id),
    engine: SearchEngine = Depends(get_search_engine)
):
    """
    Get a single paper.

    Counts as a view: increments the view count and logs the view for
    recommendations.
    """
    try:
        document = await run_blocking(engine.get_document, document_id)

        if engine.store is not None:
            try:
                if await run_blocking(engine.store.record_view, user_id, document_id):
                    document.view_count += 1
            except Exception as e:
                logger.warning(f"Failed to record view of paper {document_id}: {e}")

        return PaperResponse(paper=Paper.from_document(document))

    except DocumentNotFoundError:
        raise HTTPException(status_code=404, detail=PAPER_NOT_FOUND)
    except Exception as e:
        logger.error(f"Failed to fetch paper {document_id}: {e}", exc_info=True)
        raise HTTPException(
            status_code=500,
            detail={"error": "Failed to fetch paper", "code": "RESEARCH_FAILED"}
        )


# ============================================================================
# Health Check Endpoint
# ============================================================================

@health_router.get("/health", response_model=HealthResponse)
async def health_check(
    engine: SearchEngine = Depends(get_search_engine)
):
    """
    Health check endpoint.

    Returns service status and basic metrics.
    """
    try:
        uptime = (datetime.now() - service_start_time).total_seconds()

        stats = await run_blocking(engine.get_stats)
        db_connected = engine.corpus is not None

        return {
            "status": "healthy" if db_connected else "degraded",
            "database_connected": db_connected,
            "document_count": stats.get('total_documents', 0),
            "approved_count": stats.get('approved_documents', 0),
            "uptime_seconds": int(uptime)
        }

    except Exception as e:
        logger.error(f"Health check failed: {e}", exc_info=True)
        return JSONResponse(
            status_code=503,
            content={
                "status": "unhealthy",
                "error": "Health check failed"
            }
        )


routers = [search_router, research_router, health_router]


# ============================================================================
# Initialization
# ============================================================================

def init_search_engine(db_path: str = None):
    """
    Initialize the global search engine instance.

    This should be called during application startup.
    """
    global search_engine

    logger.info("Initializing search engine...")

    try:
        search_engine = SearchEngine(db_path=db_path)
        search_engine.connect_db()

        logger.info("Search engine initialized successfully")

    except Exception as e:
        logger.error(f"Failed to initialize search engine: {e}")
        raise


def shutdown_search_engine():
    """
    Cleanup search engine on shutdown.

    This should be called during application shutdown.
    """
    global search_engine

    if search_engine:
        logger.info("Shutting down search engine...")
        search_engine.close()
        search_engine = None

    search_executor.shutdown(wait=True)
    logger.info("Thread pool shut down")
