"""
Unit tests for bounded PDF text extraction (fake reader, no real PDFs).
"""

from __future__ import annotations

import asyncio

import pytest

from processing.pdf_text import TextExtractor
from utils.exceptions import ExtractionFailed


class _FakePage:
    def __init__(self, text):
        self._text = text

    def extract_text(self):
        if isinstance(self._text, Exception):
            raise self._text
        return self._text


class _FakeReader:
    def __init__(self, texts):
        self.pages = [_FakePage(text) for text in texts]


def _factory(texts):
    def build(stream):
        assert stream.read() == b"%PDF-fake"
        return _FakeReader(texts)

    return build


def test_pages_are_trimmed_and_joined_with_newlines():
    extractor = TextExtractor(reader_factory=_factory(["  Title page \n", "Second page", None]))
    assert extractor.extract(b"%PDF-fake") == "Title page\nSecond page\n"


def test_page_and_char_caps():
    texts = [f"page {i}" for i in range(10)]
    extractor = TextExtractor(max_pages=3, reader_factory=_factory(texts))
    assert extractor.extract(b"%PDF-fake") == "page 0\npage 1\npage 2"

    capped = TextExtractor(max_chars=8, reader_factory=_factory(texts))
    assert capped.extract(b"%PDF-fake") == "page 0\np"


def test_unreadable_page_is_skipped():
    extractor = TextExtractor(reader_factory=_factory([RuntimeError("bad font"), "readable"]))
    assert extractor.extract(b"%PDF-fake") == "\nreadable"


def test_empty_document_fails():
    extractor = TextExtractor(reader_factory=_factory(["   ", ""]))
    with pytest.raises(ExtractionFailed):
        extractor.extract(b"%PDF-fake")

    with pytest.raises(ExtractionFailed):
        extractor.extract(b"")


def test_reader_error_is_wrapped():
    def broken(stream):
        raise ValueError("not a pdf")

    with pytest.raises(ExtractionFailed) as exc_info:
        TextExtractor(reader_factory=broken).extract(b"garbage")
    assert exc_info.value.details["reason"] == "not a pdf"


def test_async_extract_runs_in_thread():
    extractor = TextExtractor(reader_factory=_factory(["hello"]))
    assert asyncio.run(extractor.aextract(b"%PDF-fake")) == "hello"
