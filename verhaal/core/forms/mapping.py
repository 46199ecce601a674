from __future__ import annotations

from datetime import date
from typing import Any, Dict

from verhaal.core.errors import ValidationError

from . import messages
from .draft import CategoryDraft, Draft, StoryDraft


def _clean(value: Any) -> str:
    return str(value or "").strip()


def _category_id(value: Any) -> int:
    if isinstance(value, bool):
        raise ValidationError([messages.CATEGORY_INVALID])
    try:
        return int(str(value).strip(), 10)
    except (TypeError, ValueError):
        raise ValidationError([messages.CATEGORY_INVALID])


def _iso_date(value: Any) -> str:
    if isinstance(value, date):
        return value.isoformat()
    return _clean(value)


def map_story(draft: StoryDraft, *, remove_cover_image: bool = False) -> Dict[str, Any]:
    """Map a story draft onto the admin API create contract.

    Body text is trimmed here and nowhere else; interior whitespace is kept.
    """

    return {
        "titel": _clean(draft.title),
        "tekst": str(draft.body or "").strip(),
        "beschrijving": _clean(draft.summary),
        "is_onzichtbaar": not draft.published,
        "categorie": _category_id(draft.category_ref),
        "datum": _iso_date(draft.date),
        "is_uitgelicht": bool(draft.featured),
        "is_spotlighted": bool(draft.spotlighted),
        "is_downloadable": bool(draft.downloadable),
        "url": _clean(draft.external_url),
        "cover_image": draft.cover_image,
        "word_file": draft.source_document,
        "remove_cover_image": bool(remove_cover_image),
    }


def map_category(draft: CategoryDraft, *, remove_cover_image: bool = False) -> Dict[str, Any]:
    return {
        "naam": _clean(draft.name),
        "beschrijving": _clean(draft.description),
        "is_uitgelicht": bool(draft.featured),
        "cover_image": draft.cover_image,
        "word_file": draft.source_document,
        "remove_cover_image": bool(remove_cover_image),
    }


def map_draft(draft: Draft, *, remove_cover_image: bool = False) -> Dict[str, Any]:
    """Dispatch to the mapper for the draft's record kind.

    Raises ValidationError if the category reference is not an integer id.
    """

    if isinstance(draft, StoryDraft):
        return map_story(draft, remove_cover_image=remove_cover_image)
    if isinstance(draft, CategoryDraft):
        return map_category(draft, remove_cover_image=remove_cover_image)
    raise TypeError(f"Unsupported draft type: {type(draft).__name__}")
