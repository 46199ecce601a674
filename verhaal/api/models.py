from __future__ import annotations

import datetime as dt
from typing import List, Optional, Union

from pydantic import BaseModel, Field


class ApiError(BaseModel):
    """Standard API error payload."""

    error: str
    detail: Optional[str] = None


class NormalizeOut(BaseModel):
    """Markup text produced from an uploaded Word document."""

    filename: str
    size_bytes: int
    text: str
    paragraphs: int = 0
    characters: int = 0


class MarkupIn(BaseModel):
    """Already-extracted HTML to rewrite into the markup dialect."""

    html: str = Field(default="", max_length=5 * 1024 * 1024)


class MarkupOut(BaseModel):
    text: str


class StoryDraftIn(BaseModel):
    """Story form fields as the dialog holds them (untrimmed)."""

    title: str = ""
    body: str = ""
    summary: str = ""
    published: bool = True
    category_ref: Optional[Union[int, str]] = None
    date: Optional[dt.date] = None
    spotlighted: bool = False
    featured: bool = False
    downloadable: bool = False
    external_url: str = ""


class CategoryDraftIn(BaseModel):
    name: str = ""
    description: str = ""
    featured: bool = False


class ValidateOut(BaseModel):
    """Validation verdict; violations are in form order."""

    kind: str
    valid: bool
    violations: List[str] = Field(default_factory=list)
