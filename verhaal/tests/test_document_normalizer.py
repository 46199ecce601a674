from __future__ import annotations

import pytest

from verhaal.core.documents import NormalizedText, normalize_document
from verhaal.core.errors import DocumentImportError


class _StaticExtractor:
    def __init__(self, html: str) -> None:
        self.html = html
        self.calls = 0

    def to_html(self, data: bytes) -> str:
        self.calls += 1
        return self.html


class _BrokenExtractor:
    def to_html(self, data: bytes) -> str:
        raise ValueError("unexpected structure")


def test_docx_to_markup_end_to_end(sample_docx):
    result = normalize_document(sample_docx)

    assert isinstance(result, NormalizedText)
    assert result.text == "Hello **world**\n\nSecond *line*"
    assert result.html.startswith("<p>Hello <strong>world</strong></p>")
    assert result.paragraph_count == 2
    assert str(result) == result.text


def test_custom_extractor_is_used():
    extractor = _StaticExtractor("<p>a</p><p></p><p></p><p><em>b</em></p>")
    result = normalize_document(b"ignored", extractor=extractor)
    assert extractor.calls == 1
    assert result.text == "a\n\n*b*"


def test_unexpected_extractor_failure_becomes_import_error():
    with pytest.raises(DocumentImportError, match="unexpected structure"):
        normalize_document(b"x", extractor=_BrokenExtractor())


def test_invalid_container_raises_import_error():
    with pytest.raises(DocumentImportError):
        normalize_document(b"PK\x03\x04 truncated")


def test_document_without_text_normalizes_to_empty(make_docx, wml):
    result = normalize_document(make_docx(wml.para() + wml.para()))
    assert result.text == ""
    assert result.paragraph_count == 0
