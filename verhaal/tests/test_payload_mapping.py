from __future__ import annotations

from datetime import date

import pytest

from verhaal.core.errors import ValidationError
from verhaal.core.forms import Attachment, CategoryDraft, StoryDraft, map_category, map_draft, map_story
from verhaal.core.forms import messages


def _story(**overrides) -> StoryDraft:
    values = dict(title="  De vos  ", body="  Er was eens\n\n**een vos**  \n", category_ref="7", date=date(2024, 3, 1))
    values.update(overrides)
    return StoryDraft(**values)


def test_story_payload_uses_admin_field_names():
    cover = Attachment("cover.png", b"\x89PNG", "image/png")
    doc = Attachment("vos.docx", b"PK", "application/octet-stream")
    payload = map_story(
        _story(summary=" kort ", featured=True, spotlighted=True, downloadable=True,
               external_url=" https://example.org ", cover_image=cover, source_document=doc),
    )

    assert payload == {
        "titel": "De vos",
        "tekst": "Er was eens\n\n**een vos**",
        "beschrijving": "kort",
        "is_onzichtbaar": False,
        "categorie": 7,
        "datum": "2024-03-01",
        "is_uitgelicht": True,
        "is_spotlighted": True,
        "is_downloadable": True,
        "url": "https://example.org",
        "cover_image": cover,
        "word_file": doc,
        "remove_cover_image": False,
    }


def test_unpublished_story_is_invisible():
    assert map_story(_story(published=False))["is_onzichtbaar"] is True


def test_body_keeps_interior_whitespace():
    payload = map_story(_story(body="  a  \n\n  b  "))
    assert payload["tekst"] == "a  \n\n  b"


def test_date_string_is_passed_through_trimmed():
    assert map_story(_story(date=" 2023-12-31 "))["datum"] == "2023-12-31"


@pytest.mark.parametrize("ref", ["abc", "7.5", True, None])
def test_non_integer_category_is_invalid(ref):
    with pytest.raises(ValidationError) as exc:
        map_story(_story(category_ref=ref))
    assert exc.value.violations == (messages.CATEGORY_INVALID,)


def test_integer_category_is_kept():
    assert map_story(_story(category_ref=12))["categorie"] == 12


def test_category_payload():
    payload = map_category(CategoryDraft(name=" Sprookjes ", description=" oud ", featured=True, body="ignored"))
    assert payload == {
        "naam": "Sprookjes",
        "beschrijving": "oud",
        "is_uitgelicht": True,
        "cover_image": None,
        "word_file": None,
        "remove_cover_image": False,
    }


def test_map_draft_dispatches_and_forwards_removal_flag():
    assert map_draft(CategoryDraft(name="x"), remove_cover_image=True)["remove_cover_image"] is True
    assert "titel" in map_draft(_story())
    with pytest.raises(TypeError):
        map_draft(object())
