"""Bounded plain-text extraction from PDF bytes."""

from __future__ import annotations

import asyncio
import logging
from io import BytesIO
from typing import Any, Callable, List, Optional

from utils.exceptions import ExtractionFailed


logger = logging.getLogger(__name__)

EMPTY_TEXT_MESSAGE = (
    "PDF text extraction failed. Make sure the PDF is text-based (not a scan) "
    "or provide an accessible PDF URL / uploaded file."
)

ReaderFactory = Callable[[BytesIO], Any]


def _default_reader_factory(stream: BytesIO) -> Any:
    from pypdf import PdfReader

    return PdfReader(stream)


class TextExtractor:
    """
    Page- and character-capped text extraction.

    pypdf needs no font data to pull text, so extraction works on hosts
    without any rendering resources. The reader is created per document
    through ``reader_factory`` so tests can substitute a fake.
    """

    def __init__(
        self,
        max_pages: int = 80,
        max_chars: int = 100_000,
        reader_factory: Optional[ReaderFactory] = None,
    ) -> None:
        self.max_pages = max(1, int(max_pages))
        self.max_chars = max(1, int(max_chars))
        self._reader_factory = reader_factory

    @classmethod
    def from_settings(cls, settings=None) -> "TextExtractor":
        if settings is None:
            from config import get_extraction_settings

            settings = get_extraction_settings()
        return cls(max_pages=settings.max_pages, max_chars=settings.max_chars)

    @property
    def reader_factory(self) -> ReaderFactory:
        if self._reader_factory is None:
            self._reader_factory = _default_reader_factory
        return self._reader_factory

    def extract(self, pdf_bytes: bytes) -> str:
        """Return one block of text per page, joined with newlines."""
        if not pdf_bytes:
            raise ExtractionFailed(EMPTY_TEXT_MESSAGE, {"reason": "empty document"})

        try:
            reader = self.reader_factory(BytesIO(pdf_bytes))
            pages = list(reader.pages)[: self.max_pages]
        except Exception as e:
            raise ExtractionFailed(EMPTY_TEXT_MESSAGE, {"reason": str(e)}) from e

        page_texts: List[str] = []
        for index, page in enumerate(pages):
            try:
                text = page.extract_text() or ""
            except Exception as e:
                logger.warning(f"[TextExtractor] Page {index + 1} unreadable: {e}")
                text = ""
            page_texts.append(text.strip())

        joined = "\n".join(page_texts)[: self.max_chars]
        if not joined.strip():
            raise ExtractionFailed(EMPTY_TEXT_MESSAGE, {"reason": "no extractable text", "pages": len(pages)})

        logger.info(f"[TextExtractor] Extracted {len(joined)} chars from {len(pages)} pages")
        return joined

    async def aextract(self, pdf_bytes: bytes) -> str:
        """Run the blocking extraction in a worker thread."""
        return await asyncio.to_thread(self.extract, pdf_bytes)
