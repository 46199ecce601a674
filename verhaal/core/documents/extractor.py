from __future__ import annotations

import html
import io
import logging
import posixpath
import zipfile
from dataclasses import dataclass
from typing import FrozenSet, Iterator, List, Optional, Protocol, Tuple

from defusedxml import DefusedXmlException
from defusedxml import ElementTree as DefusedET

from verhaal.core.errors import DocumentImportError
from verhaal.core.settings import DocumentLimits

log = logging.getLogger("verhaal.documents")

_W = "{http://schemas.openxmlformats.org/wordprocessingml/2006/main}"
_PKG_REL = "{http://schemas.openxmlformats.org/package/2006/relationships}"
_OFFICE_DOCUMENT_REL = "/officeDocument"
_FALLBACK_MAIN_PART = "word/document.xml"

# Outermost first: bold wraps italic, so a bold+italic run renders as <strong><em>.
_STYLE_TAGS: Tuple[Tuple[str, str], ...] = (
    ("bold", "strong"),
    ("italic", "em"),
    ("underline", "u"),
    ("strike", "s"),
    ("code", "code"),
)

_OFF_VALUES = {"0", "false", "off", "none"}

# Elements inside a paragraph whose content never reaches the reader.
_SKIPPED = {
    f"{_W}pPr",
    f"{_W}rPr",
    f"{_W}del",
    f"{_W}moveFrom",
    f"{_W}commentReference",
    f"{_W}footnoteReference",
    f"{_W}endnoteReference",
}

_LINE_BREAK = object()


class DocumentExtractor(Protocol):
    """Binary document container -> semantic HTML."""

    def to_html(self, data: bytes) -> str: ...


@dataclass(frozen=True)
class _Segment:
    styles: FrozenSet[str]
    text: str


class DocxHtmlExtractor:
    """
    Extract paragraph/run formatting from a DOCX payload as minimal HTML.

    Output vocabulary: <p>, <br />, <strong>, <em>, <u>, <s>, <code>.
    Empty paragraphs are dropped; adjacent runs with identical formatting merge.

    Security:
    - ZIP bomb protection (entry count + size limits)
    - Safe XML parsing via defusedxml
    - Reads only the relationship part and the main document part

    Time:  O(E + U) bounded by limits
    Space: O(S) bounded by limits
    """

    supported_suffixes = {".docx"}

    def __init__(self, limits: Optional[DocumentLimits] = None) -> None:
        self._limits = limits or DocumentLimits()

    def to_html(self, data: bytes) -> str:
        if not data:
            raise DocumentImportError("Document is empty")
        if len(data) > self._limits.max_document_bytes:
            raise DocumentImportError(
                f"Document too large: {len(data)} > {self._limits.max_document_bytes}"
            )

        try:
            with zipfile.ZipFile(io.BytesIO(data), "r") as zf:
                self._enforce_zip_limits(zf)
                member = self._main_part_name(zf)
                try:
                    xml = zf.read(member)
                except KeyError:
                    raise DocumentImportError(f"Missing main document part: {member}")
        except zipfile.BadZipFile as e:
            raise DocumentImportError(f"Not a Word document container: {e}") from e

        root = self._parse(xml)
        body = root.find(f"{_W}body")
        if body is None:
            raise DocumentImportError("Main document part has no body")

        parts: List[str] = []
        for paragraph in body.iter(f"{_W}p"):
            inner = self._render_paragraph(paragraph)
            if inner:
                parts.append(f"<p>{inner}</p>")

        log.debug("docx_extracted", extra={"paragraphs": len(parts), "bytes": len(data)})
        return "".join(parts)

    def _enforce_zip_limits(self, zf: zipfile.ZipFile) -> None:
        infos = zf.infolist()
        if len(infos) > self._limits.max_zip_entries:
            raise DocumentImportError(
                f"ZIP has too many entries: {len(infos)} > {self._limits.max_zip_entries}"
            )

        total = 0
        for info in infos:
            if info.file_size > self._limits.max_zip_entry_bytes:
                raise DocumentImportError(f"ZIP entry too large: {info.filename} ({info.file_size})")
            total += info.file_size
            if total > self._limits.max_zip_total_bytes:
                raise DocumentImportError(f"ZIP total too large: {total}")

    def _main_part_name(self, zf: zipfile.ZipFile) -> str:
        """Resolve the main document part from _rels/.rels, defaulting to word/document.xml."""

        try:
            rels = zf.read("_rels/.rels")
        except KeyError:
            return _FALLBACK_MAIN_PART

        root = self._parse(rels)
        for rel in root.iter(f"{_PKG_REL}Relationship"):
            if (rel.get("Type") or "").endswith(_OFFICE_DOCUMENT_REL):
                target = (rel.get("Target") or "").lstrip("/")
                if target:
                    return posixpath.normpath(target)
        return _FALLBACK_MAIN_PART

    @staticmethod
    def _parse(xml: bytes):
        try:
            return DefusedET.fromstring(xml)
        except (DefusedET.ParseError, DefusedXmlException) as e:
            raise DocumentImportError(f"Malformed document XML: {e}") from e

    def _render_paragraph(self, paragraph) -> str:
        pieces = self._merge(self._walk(paragraph))
        out: List[str] = []
        has_text = False
        for piece in pieces:
            if piece is _LINE_BREAK:
                out.append("<br />")
                continue
            if piece.text:
                has_text = has_text or bool(piece.text.strip())
                out.append(self._wrap(piece))
        if not has_text and not any(p is _LINE_BREAK for p in pieces):
            return ""
        return "".join(out)

    def _walk(self, element) -> Iterator[object]:
        for child in list(element):
            if child.tag in _SKIPPED or child.tag == f"{_W}p":
                continue
            if child.tag == f"{_W}r":
                yield from self._run(child)
            else:
                yield from self._walk(child)

    def _run(self, run) -> Iterator[object]:
        styles = self._run_styles(run.find(f"{_W}rPr"))
        for child in list(run):
            tag = child.tag
            if tag == f"{_W}t":
                yield _Segment(styles, child.text or "")
            elif tag == f"{_W}tab":
                yield _Segment(styles, "\t")
            elif tag == f"{_W}noBreakHyphen":
                yield _Segment(styles, "-")
            elif tag == f"{_W}cr":
                yield _LINE_BREAK
            elif tag == f"{_W}br":
                # Page and column breaks carry no text layout for the reader.
                if (child.get(f"{_W}type") or "textWrapping") == "textWrapping":
                    yield _LINE_BREAK

    def _run_styles(self, rpr) -> FrozenSet[str]:
        if rpr is None:
            return frozenset()

        styles = set()
        if self._toggle(rpr.find(f"{_W}b")):
            styles.add("bold")
        if self._toggle(rpr.find(f"{_W}i")):
            styles.add("italic")
        if self._toggle(rpr.find(f"{_W}u")):
            styles.add("underline")
        if self._toggle(rpr.find(f"{_W}strike")) or self._toggle(rpr.find(f"{_W}dstrike")):
            styles.add("strike")

        rstyle = rpr.find(f"{_W}rStyle")
        if rstyle is not None:
            style_id = (rstyle.get(f"{_W}val") or "").lower()
            if "code" in style_id or "verbatim" in style_id:
                styles.add("code")
        return frozenset(styles)

    @staticmethod
    def _toggle(element) -> bool:
        if element is None:
            return False
        value = element.get(f"{_W}val")
        return value is None or value.strip().lower() not in _OFF_VALUES

    @staticmethod
    def _merge(pieces: Iterator[object]) -> List[object]:
        merged: List[object] = []
        for piece in pieces:
            prev = merged[-1] if merged else None
            if (
                isinstance(piece, _Segment)
                and isinstance(prev, _Segment)
                and prev.styles == piece.styles
            ):
                merged[-1] = _Segment(prev.styles, prev.text + piece.text)
            else:
                merged.append(piece)
        return merged

    @staticmethod
    def _wrap(segment: _Segment) -> str:
        text = html.escape(segment.text, quote=False)
        for style, tag in reversed(_STYLE_TAGS):
            if style in segment.styles:
                text = f"<{tag}>{text}</{tag}>"
        return text
