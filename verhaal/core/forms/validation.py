from __future__ import annotations

from typing import Any, List

from . import messages
from .draft import CategoryDraft, Draft, StoryDraft


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    return not str(value).strip()


def validate_draft(draft: Draft) -> List[str]:
    """Return required-field violations in form order.

    Story: title, body, category. Category: name.
    An empty list means the draft may be submitted.
    """

    violations: List[str] = []
    if isinstance(draft, StoryDraft):
        if _is_blank(draft.title):
            violations.append(messages.TITLE_REQUIRED)
        if _is_blank(draft.body):
            violations.append(messages.BODY_REQUIRED)
        if _is_blank(draft.category_ref):
            violations.append(messages.CATEGORY_REQUIRED)
    elif isinstance(draft, CategoryDraft):
        if _is_blank(draft.name):
            violations.append(messages.NAME_REQUIRED)
    else:
        raise TypeError(f"Unsupported draft type: {type(draft).__name__}")
    return violations
