from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from verhaal.core.errors import DocumentImportError

from .extractor import DocumentExtractor, DocxHtmlExtractor
from .markup import html_to_markup

log = logging.getLogger("verhaal.documents")


@dataclass(frozen=True)
class NormalizedText:
    """Outcome of normalizing a source document.

    Time:  O(1)
    Space: O(1)
    """

    text: str
    html: str

    @property
    def paragraph_count(self) -> int:
        return len([block for block in self.text.split("\n\n") if block.strip()])

    def __str__(self) -> str:
        return self.text


def normalize_document(data: bytes, *, extractor: Optional[DocumentExtractor] = None) -> NormalizedText:
    """Convert a Word payload into markup-dialect text.

    Raises DocumentImportError when the payload cannot be extracted. Any other
    extractor failure is re-raised as DocumentImportError so callers only need
    to handle one error type.

    Security notes:
    - Pure function over in-memory bytes (no file I/O).

    """

    extractor = extractor or DocxHtmlExtractor()
    try:
        html = extractor.to_html(bytes(data or b""))
    except DocumentImportError:
        raise
    except Exception as e:
        raise DocumentImportError(f"Document extraction failed: {e}") from e

    text = html_to_markup(html)
    log.debug("document_normalized", extra={"html_chars": len(html), "text_chars": len(text)})
    return NormalizedText(text=text, html=html)
