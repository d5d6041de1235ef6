"""
Pydantic models for API responses.
"""

from typing import Optional, List, Dict, Any
from pydantic import BaseModel, ConfigDict, Field

from src.search.models import Document


# ============================================================================
# Paper Models
# ============================================================================

class Paper(BaseModel):
    """Research paper as returned by the API (camelCase keys)."""

    model_config = ConfigDict(populate_by_name=True)

    id: int = Field(..., description="Document ID")
    title: str = Field(..., description="Paper title")
    abstract: str = Field("", description="Paper abstract")
    authors: List[str] = Field(default_factory=list, description="Authors in order")
    keywords: List[str] = Field(default_factory=list, description="Keywords")
    subject_area: Optional[str] = Field(None, alias="subjectArea", description="Subject area")
    category: str = Field(..., description="Completed or Published")
    year_completed: Optional[int] = Field(None, alias="yearCompleted", description="Year completed")
    views: int = Field(0, description="View count")
    created_at: Optional[str] = Field(None, alias="createdAt", description="Creation timestamp")

    @classmethod
    def from_document(cls, document: Document) -> "Paper":
        return cls(
            id=document.id,
            title=document.title,
            abstract=document.abstract,
            authors=document.authors,
            keywords=document.keywords,
            subject_area=document.subject_area,
            category=document.category,
            year_completed=document.year_completed,
            views=document.view_count,
            created_at=document.created_at,
        )


class PapersResponse(BaseModel):
    """List of papers with count."""

    papers: List[Paper] = Field(..., description="Papers")
    count: int = Field(..., description="Number of papers returned")

    @classmethod
    def from_documents(cls, documents: List[Document]) -> "PapersResponse":
        papers = [Paper.from_document(d) for d in documents]
        return cls(papers=papers, count=len(papers))


class PaperResponse(BaseModel):
    """Single paper."""

    paper: Paper = Field(..., description="Paper")


# ============================================================================
# Health Models
# ============================================================================

class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(..., description="Service status")
    database_connected: bool = Field(..., description="Database connection status")
    document_count: int = Field(..., description="Documents in the repository")
    approved_count: int = Field(..., description="Searchable documents")
    uptime_seconds: Optional[int] = Field(None, description="Service uptime in seconds")


# ============================================================================
# Error Models
# ============================================================================

class ErrorResponse(BaseModel):
    """Error response."""

    error: str = Field(..., description="Error message")
    code: str = Field(..., description="Error code")
    details: Optional[Dict[str, Any]] = Field(None, description="Additional error details")
