from __future__ import annotations

import io
import zipfile
from types import SimpleNamespace
from typing import Callable

import pytest

W_NS = "http://schemas.openxmlformats.org/wordprocessingml/2006/main"

_CONTENT_TYPES = (
    '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>'
    '<Types xmlns="http://schemas.openxmlformats.org/package/2006/content-types">'
    '<Default Extension="xml" ContentType="application/xml"/>'
    "</Types>"
)


def _rels(target: str) -> str:
    return (
        '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>'
        '<Relationships xmlns="http://schemas.openxmlformats.org/package/2006/relationships">'
        '<Relationship Id="rId1" '
        'Type="http://schemas.openxmlformats.org/officeDocument/2006/relationships/officeDocument" '
        f'Target="{target}"/>'
        "</Relationships>"
    )


def build_docx(body_xml: str, *, main_part: str = "word/document.xml", rels: bool = True) -> bytes:
    """Build a minimal in-memory .docx whose body is `body_xml` (w: prefix bound)."""

    document = (
        '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>'
        f'<w:document xmlns:w="{W_NS}"><w:body>{body_xml}</w:body></w:document>'
    )
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w", zipfile.ZIP_DEFLATED) as zf:
        zf.writestr("[Content_Types].xml", _CONTENT_TYPES)
        if rels:
            zf.writestr("_rels/.rels", _rels(main_part))
        zf.writestr(main_part, document)
    return buf.getvalue()


def run(text: str, *, bold: bool = False, italic: bool = False, underline: bool = False, strike: bool = False) -> str:
    props = ""
    if bold:
        props += "<w:b/>"
    if italic:
        props += "<w:i/>"
    if underline:
        props += '<w:u w:val="single"/>'
    if strike:
        props += "<w:strike/>"
    rpr = f"<w:rPr>{props}</w:rPr>" if props else ""
    return f'<w:r>{rpr}<w:t xml:space="preserve">{text}</w:t></w:r>'


def para(*runs: str) -> str:
    return f"<w:p>{''.join(runs)}</w:p>"


@pytest.fixture
def make_docx() -> Callable[..., bytes]:
    return build_docx


@pytest.fixture
def sample_docx() -> bytes:
    return build_docx(
        para(run("Hello "), run("world", bold=True))
        + para()
        + para(run("Second "), run("line", italic=True))
    )


@pytest.fixture
def wml() -> SimpleNamespace:
    """WordprocessingML snippet helpers: wml.run(...), wml.para(...)."""

    return SimpleNamespace(run=run, para=para)
