"""
Analysis API Schemas

Pydantic models for the document analysis request/response cycle and for
validating the structured JSON produced by the completion model.

Wire names are camelCase (``keyFindings``, ``relevantDocuments``); Python
attributes are snake_case.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from impact_rag.models.schemas import Document, IngestResult, RankedChunk


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


# ---------------------------------------------------------------------------
# Structured analysis (model output)
# ---------------------------------------------------------------------------


class KeyFindingGroup(BaseModel):
    category: str
    findings: list[str]


class InsightGroup(BaseModel):
    category: str
    insights: list[str]


class Recommendation(BaseModel):
    recommendation: str
    rationale: str
    priority: Literal["high", "medium", "low"]


class StructuredAnalysis(_CamelModel):
    """The JSON object the completion model is instructed to return."""

    key_findings: list[KeyFindingGroup] = Field(alias="keyFindings")
    insights: list[InsightGroup]
    recommendations: list[Recommendation]


# ---------------------------------------------------------------------------
# Analysis result
# ---------------------------------------------------------------------------


class SourceDocument(BaseModel):
    """A cited source: a retrieved chunk, or the whole first document."""

    title: str
    content: str
    similarity: float = Field(ge=0.0, le=1.0)


class AnalysisResult(StructuredAnalysis):
    """Structured analysis plus the sources it was grounded on."""

    relevant_documents: list[SourceDocument] = Field(alias="relevantDocuments")
    analysis_type: Literal["retrieval", "full_document"] = Field(alias="analysisType")


# ---------------------------------------------------------------------------
# Requests / responses
# ---------------------------------------------------------------------------


class StoreDocumentsRequest(BaseModel):
    """Request body for document ingestion."""

    documents: list[Document] = Field(min_length=1)


class StoreDocumentsResponse(BaseModel):
    """Per-document ingestion outcome."""

    results: list[IngestResult]


class _QueryRequest(BaseModel):
    query: str = Field(..., min_length=1, max_length=2000)

    @field_validator("query")
    @classmethod
    def _query_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("query must not be blank")
        return value


class SearchRequest(_QueryRequest):
    """Request body for semantic search."""


class SearchResponse(BaseModel):
    """Ranked chunks; an empty list means nothing relevant was found."""

    query: str
    chunks: list[RankedChunk]


class AnalyzeRequest(_QueryRequest):
    """Request body for retrieval-grounded document analysis."""

    documents: list[Document] = Field(min_length=1)
