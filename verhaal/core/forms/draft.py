from __future__ import annotations

from dataclasses import dataclass, field, fields
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional, Union


CalendarDate = date


class RecordKind(str, Enum):
    STORY = "story"
    CATEGORY = "category"


class InputKind(str, Enum):
    """How a form control delivers its value to set_field."""

    TEXT = "text"
    CHECKBOX = "checkbox"
    FILE = "file"
    DATE = "date"
    SELECT = "select"


@dataclass(frozen=True, slots=True)
class Attachment:
    """An uploaded file held in memory.

    Security notes:
    - `content` is untrusted; never log it or the filename.

    """

    filename: str
    content: bytes
    content_type: str = "application/octet-stream"

    @property
    def size_bytes(self) -> int:
        return len(self.content)


@dataclass(frozen=True, slots=True)
class Category:
    id: int
    name: str


def _today() -> CalendarDate:
    return datetime.now(timezone.utc).date()


def _input(kind: InputKind) -> Dict[str, Any]:
    return {"input": kind}


@dataclass
class StoryDraft:
    title: str = field(default="", metadata=_input(InputKind.TEXT))
    body: str = field(default="", metadata=_input(InputKind.TEXT))
    summary: str = field(default="", metadata=_input(InputKind.TEXT))
    published: bool = field(default=True, metadata=_input(InputKind.CHECKBOX))
    category_ref: Optional[Union[int, str]] = field(default=None, metadata=_input(InputKind.SELECT))
    cover_image: Optional[Attachment] = field(default=None, metadata=_input(InputKind.FILE))
    date: Union[CalendarDate, str] = field(default_factory=_today, metadata=_input(InputKind.DATE))
    spotlighted: bool = field(default=False, metadata=_input(InputKind.CHECKBOX))
    featured: bool = field(default=False, metadata=_input(InputKind.CHECKBOX))
    downloadable: bool = field(default=False, metadata=_input(InputKind.CHECKBOX))
    external_url: str = field(default="", metadata=_input(InputKind.TEXT))
    source_document: Optional[Attachment] = field(default=None, metadata=_input(InputKind.FILE))

    kind = RecordKind.STORY


@dataclass
class CategoryDraft:
    name: str = field(default="", metadata=_input(InputKind.TEXT))
    description: str = field(default="", metadata=_input(InputKind.TEXT))
    featured: bool = field(default=False, metadata=_input(InputKind.CHECKBOX))
    cover_image: Optional[Attachment] = field(default=None, metadata=_input(InputKind.FILE))
    source_document: Optional[Attachment] = field(default=None, metadata=_input(InputKind.FILE))
    # Filled by a Word import for preview only; never part of the saved record.
    body: str = field(default="", metadata=_input(InputKind.TEXT))

    kind = RecordKind.CATEGORY


Draft = Union[StoryDraft, CategoryDraft]


def empty_draft(kind: RecordKind) -> Draft:
    """Return the canonical empty draft for `kind`."""

    kind = RecordKind(kind)
    if kind is RecordKind.STORY:
        return StoryDraft()
    return CategoryDraft()


def input_kind(draft: Draft, name: str) -> InputKind:
    """Look up the input kind of a draft field.

    Raises KeyError for names the active record kind does not have.
    """

    for f in fields(draft):
        if f.name == name:
            return f.metadata.get("input", InputKind.TEXT)
    raise KeyError(f"Unknown field for {draft.kind.value}: {name}")
