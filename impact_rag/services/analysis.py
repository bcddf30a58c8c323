"""
Document Analysis Service

Consumer of the retrieval orchestrator: stores the submitted documents,
retrieves the chunks relevant to the query and asks the completion model
for a structured nonprofit-management analysis.

When retrieval comes back empty (even after the threshold fallback), the
first submitted document is analyzed in full and cited as the single
source with similarity 1.0, so a result always has at least one source.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Sequence
from typing import Final

from pydantic import ValidationError

from impact_rag.core.exceptions import AnalysisParseError
from impact_rag.models.schemas import Document, RankedChunk
from impact_rag.schemas.analysis import (
    AnalysisResult,
    SourceDocument,
    StructuredAnalysis,
)
from impact_rag.services.completion import CompletionClient
from impact_rag.services.retrieval import RetrievalOrchestrator

logger = logging.getLogger(__name__)

SYSTEM_PROMPT: Final[str] = """You are an expert nonprofit management AI assistant specializing in document analysis. Your role is to:

1. Analyze documents thoroughly and provide structured insights
2. Focus on nonprofit management, fundraising, and organizational effectiveness
3. Provide actionable recommendations based on the content
4. Maintain a professional and analytical tone
5. Structure your response in a clear, organized manner

When analyzing documents:
- Consider both explicit and implicit information
- Look for patterns and connections
- Provide specific examples from the text
- Focus on practical implications
- Highlight both strengths and areas for improvement

Always respond with a valid JSON object containing:
{
  "keyFindings": [
    {
      "category": "string",
      "findings": ["string"]
    }
  ],
  "insights": [
    {
      "category": "string",
      "insights": ["string"]
    }
  ],
  "recommendations": [
    {
      "recommendation": "string",
      "rationale": "string",
      "priority": "high" | "medium" | "low"
    }
  ]
}"""

_JSON_OBJECT: Final[re.Pattern[str]] = re.compile(r"\{[\s\S]*\}")


def parse_analysis(text: str) -> StructuredAnalysis:
    """
    Extract and validate the JSON analysis from a model completion.

    The outermost ``{...}`` span is used, so prose before or after the
    object is tolerated.

    Raises:
        AnalysisParseError: No JSON object, invalid JSON, or missing fields.
    """
    match = _JSON_OBJECT.search(text)
    if match is None:
        raise AnalysisParseError(
            "No JSON object found in response",
            {"response": text[:200]},
        )
    try:
        return StructuredAnalysis.model_validate(json.loads(match.group(0)))
    except json.JSONDecodeError as e:
        raise AnalysisParseError(f"Failed to parse AI response: {e}") from e
    except ValidationError as e:
        raise AnalysisParseError(
            "Invalid response structure",
            {"errors": [err["msg"] for err in e.errors()]},
        ) from e


def format_chunk_context(chunks: Sequence[RankedChunk]) -> str:
    """Render retrieved chunks with their title and relevance percentage."""
    return "\n\n".join(
        f"Document {i}: {chunk.metadata.title}\n"
        f"Relevance: {chunk.similarity * 100:.2f}%\n"
        f"Content:\n{chunk.content}\n---"
        for i, chunk in enumerate(chunks, 1)
    )


def build_retrieval_prompt(query: str, chunks: Sequence[RankedChunk]) -> str:
    return f"""Please analyze the following documents and provide insights in the required JSON format.

Query: {query}

Documents to analyze (with relevance scores):
{format_chunk_context(chunks)}

Instructions:
1. Analyze each document's content thoroughly
2. Consider the relevance scores when weighing the importance of each document
3. Provide specific, actionable insights based on the document content
4. Focus on nonprofit management and fundraising aspects
5. Ensure all findings are directly supported by the document content

Remember to respond ONLY with a valid JSON object in the specified format."""


def build_full_document_prompt(query: str, document: Document) -> str:
    return f"""Please analyze the following document and provide insights in the required JSON format.

Query: {query}

Document to analyze:
Document: {document.title}
Type: {document.type}
Content:
{document.content}

Instructions:
1. Analyze the document content thoroughly
2. Provide specific, actionable insights based on the document content
3. Focus on nonprofit management and fundraising aspects
4. Ensure all findings are directly supported by the document content
5. Structure your response in a clear, organized manner

Remember to respond ONLY with a valid JSON object in the specified format."""


class DocumentAnalyzer:
    """
    Retrieval-grounded analysis with full-document fallback.

    Usage::

        analyzer = DocumentAnalyzer(orchestrator, completion_client)
        result = await analyzer.analyze("How did retention change?", documents)
        for source in result.relevant_documents:
            print(source.title, source.similarity)

    Args:
        orchestrator: Retrieval orchestrator (store + search).
        completion_client: Generative model client.
    """

    def __init__(
        self,
        orchestrator: RetrievalOrchestrator,
        completion_client: CompletionClient,
    ) -> None:
        self._orchestrator = orchestrator
        self._completion_client = completion_client

    async def analyze(self, query: str, documents: Sequence[Document]) -> AnalysisResult:
        """
        Store ``documents``, retrieve context for ``query`` and analyze it.

        Raises:
            ValueError: Empty query or no documents.
            IngestionError: A document could not be processed.
            EmbeddingError / DocumentStoreError: Query-side retrieval failed.
            CompletionError: The completion service failed.
            AnalysisParseError: The completion was not a valid analysis.
        """
        if not query.strip() or not documents:
            raise ValueError("Query and documents are required")

        logger.info("Storing %d documents for analysis", len(documents))
        await self._orchestrator.store_documents(documents)

        chunks = await self._orchestrator.search(query)
        if chunks:
            prompt = build_retrieval_prompt(query, chunks)
            sources = [
                SourceDocument(
                    title=chunk.metadata.title,
                    content=chunk.content,
                    similarity=chunk.similarity,
                )
                for chunk in chunks
            ]
            analysis_type = "retrieval"
        else:
            first = documents[0]
            logger.info(
                "No relevant chunks found, analyzing full document '%s'",
                first.title,
            )
            prompt = build_full_document_prompt(query, first)
            sources = [
                SourceDocument(title=first.title, content=first.content, similarity=1.0)
            ]
            analysis_type = "full_document"

        response_text = await self._completion_client.complete(prompt, system=SYSTEM_PROMPT)
        structured = parse_analysis(response_text)

        return AnalysisResult(
            keyFindings=structured.key_findings,
            insights=structured.insights,
            recommendations=structured.recommendations,
            relevantDocuments=sources,
            analysisType=analysis_type,
        )
