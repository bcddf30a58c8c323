"""
Document Loading Service

Turns files on disk into ``Document`` inputs for the retrieval pipeline.

Supported formats:
    - Plain text (.txt) and Markdown (.md): UTF-8 decoding
    - PDF (.pdf): text extraction via PyMuPDF (fitz)

The document ``type`` is the file extension without the dot and the
``title`` is the file name, matching what the upload form sends.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Final

import fitz  # PyMuPDF

from impact_rag.models.schemas import Document

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS: Final[frozenset[str]] = frozenset({".txt", ".md", ".pdf"})


class FileProcessor:
    """
    Async file loader.

    Blocking I/O (file reads, PDF parsing) is offloaded to a thread pool
    via ``asyncio.to_thread``.

    Usage::

        processor = FileProcessor()
        doc = await processor.load(Path("annual_report.pdf"))
        print(doc.title, doc.type, len(doc.content))
    """

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def load(self, file_path: Path) -> Document:
        """
        Read a file and return it as a Document.

        Args:
            file_path: Path to the source file.

        Returns:
            Document with raw (unsanitized) content.

        Raises:
            FileNotFoundError: If the file does not exist.
            ValueError: If the file extension is not supported.
        """
        if not file_path.exists():
            raise FileNotFoundError(f"File not found: {file_path}")

        suffix = file_path.suffix.lower()
        if suffix not in SUPPORTED_EXTENSIONS:
            raise ValueError(
                f"Unsupported file type: '{suffix}'. "
                f"Supported: {', '.join(sorted(SUPPORTED_EXTENSIONS))}"
            )

        raw = await asyncio.to_thread(file_path.read_bytes)
        if suffix == ".pdf":
            content, page_count = await asyncio.to_thread(self._extract_pdf_content, raw)
            logger.info(
                "Loaded PDF: %s (%d pages, %d bytes)",
                file_path.name,
                page_count,
                len(raw),
            )
        else:
            content = raw.decode("utf-8")
            logger.info("Loaded text file: %s (%d bytes)", file_path.name, len(raw))

        return Document(title=file_path.name, type=suffix.lstrip("."), content=content)

    async def load_many(self, paths: list[Path]) -> list[Document]:
        """Load several files, in order."""
        return [await self.load(path) for path in paths]

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _extract_pdf_content(raw: bytes) -> tuple[str, int]:
        """
        Extract text and page count from PDF bytes.

        Synchronous helper; always call via ``asyncio.to_thread``.
        """
        doc = fitz.open(stream=raw, filetype="pdf")
        try:
            pages: list[str] = [page.get_text() for page in doc]
            return "\n".join(pages), len(pages)
        finally:
            doc.close()
