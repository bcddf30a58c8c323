#!/usr/bin/env python3
"""
Ingest Documents Script

Loads .txt, .md and .pdf files, runs them through the retrieval pipeline
(sanitize → chunk → embed → store) and optionally runs a search query
against the result.

Usage:
    python scripts/ingest_documents.py docs/annual_report.pdf docs/policy.txt
    python scripts/ingest_documents.py docs/*.md --query "volunteer growth"
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

from impact_rag.core.config import get_settings
from impact_rag.core.container import build_container
from impact_rag.core.exceptions import ImpactRAGError
from impact_rag.core.logging import setup_logging
from impact_rag.services.ingestion import FileProcessor


def log_info(msg: str) -> None:
    print(f"ℹ {msg}")


def log_success(msg: str) -> None:
    print(f"✓ {msg}")


def log_error(msg: str) -> None:
    print(f"✗ {msg}")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Ingest documents into the vector store")
    parser.add_argument("paths", nargs="+", type=Path, help="Files to ingest")
    parser.add_argument("--query", help="Search query to run after ingestion")
    return parser.parse_args(argv)


async def run(paths: list[Path], query: str | None) -> int:
    settings = get_settings()
    setup_logging(settings.LOG_LEVEL)
    container = build_container(settings)

    try:
        documents = await FileProcessor().load_many(paths)
        results = await container.orchestrator.store_documents(documents)

        for result in results:
            if result.indexed:
                log_success(f"{result.title}: {result.chunks_count} chunks")
            else:
                log_info(f"{result.title}: no indexable text, skipped")

        if query:
            chunks = await container.orchestrator.search(query)
            if not chunks:
                log_info("No relevant chunks found")
            for i, chunk in enumerate(chunks, 1):
                preview = chunk.content[:100]
                print(
                    f"{i}. [{chunk.similarity:.3f}] {chunk.metadata.title} "
                    f"#{chunk.metadata.chunk_index}: {preview}"
                )
    except (FileNotFoundError, ValueError, ImpactRAGError) as e:
        log_error(str(e))
        return 1
    finally:
        await container.aclose()

    return 0


def main() -> None:
    args = parse_args()
    sys.exit(asyncio.run(run(args.paths, args.query)))


if __name__ == "__main__":
    main()
