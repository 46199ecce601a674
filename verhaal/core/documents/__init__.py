"""Word document import for verhaal.

A source document is extracted to minimal HTML and rewritten into the markup
dialect stored as a story body.

Security notes:
- Never assume the uploaded container is well-formed or benign.
- Keep transforms deterministic and strictly bounded.
"""

from .extractor import DocumentExtractor, DocxHtmlExtractor
from .markup import INLINE_RULES, InlineRule, html_to_markup, tidy_markup
from .normalizer import NormalizedText, normalize_document

__all__ = [
    "DocumentExtractor",
    "DocxHtmlExtractor",
    "INLINE_RULES",
    "InlineRule",
    "html_to_markup",
    "tidy_markup",
    "NormalizedText",
    "normalize_document",
]
