from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from enum import Enum
from typing import Any, AsyncIterator, Dict, List, Optional, Tuple, Union
from uuid import uuid4

from verhaal.core.documents import DocumentExtractor, NormalizedText, normalize_document
from verhaal.core.documents.extractor import DocxHtmlExtractor
from verhaal.core.errors import DocumentImportError, ValidationError
from verhaal.core.settings import FormSettings

from . import messages
from .collaborators import (
    CategoryDirectory,
    DialogSurface,
    InMemoryPreviewUrls,
    MemoryTransientStore,
    NotificationChannel,
    NullSurface,
    PreviewUrls,
    RecordStore,
    TransientStore,
)
from .draft import Attachment, Category, Draft, InputKind, RecordKind, StoryDraft, empty_draft, input_kind
from .mapping import map_draft
from .preview import PreviewSlot
from .validation import validate_draft

log = logging.getLogger("verhaal.forms")

DOCX_CONTENT_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"

_PREVIEWED_FIELD = "cover_image"


class DialogState(str, Enum):
    CLOSED = "closed"
    EDITING = "editing"
    SUBMITTING = "submitting"


class CreateDialogController:
    """
    Lifecycle of the "new story / new category" dialog.

    States
    - CLOSED -> EDITING (open) -> SUBMITTING (submit) -> CLOSED on success,
      EDITING on failure. close() is valid from any state.

    Invariants
    - One draft at a time, shaped by the record kind chosen at open().
    - At most one save in flight; submit() while saving is a no-op.
    - Each open()/close() starts a new generation. Results of work started in
      an older generation never touch the current draft.
    - The page scroll lock is held exactly while the dialog is open.
    - A pending "processing" notification is always resolved.

    """

    def __init__(
        self,
        *,
        record_store: RecordStore,
        category_directory: Optional[CategoryDirectory] = None,
        notifications: Optional[NotificationChannel] = None,
        transient_store: Optional[TransientStore] = None,
        surface: Optional[DialogSurface] = None,
        preview_urls: Optional[PreviewUrls] = None,
        extractor: Optional[DocumentExtractor] = None,
        settings: Optional[FormSettings] = None,
    ) -> None:
        if record_store is None:
            raise RuntimeError("RecordStore is mandatory")

        self._settings = settings or FormSettings()
        self._store = record_store
        self._directory = category_directory
        self._notifications = notifications
        self._transient = transient_store or MemoryTransientStore()
        self._surface = surface or NullSurface()
        self._extractor = extractor or DocxHtmlExtractor(self._settings.limits)
        self._preview = PreviewSlot(preview_urls or InMemoryPreviewUrls())

        self._state = DialogState.CLOSED
        self._draft: Optional[Draft] = None
        self._generation = 0
        self._scroll_locked = False
        self._shake_handle: Optional[asyncio.TimerHandle] = None
        self._clear_ephemeral()

    # ---- read-only view -------------------------------------------------

    @property
    def state(self) -> DialogState:
        return self._state

    @property
    def is_open(self) -> bool:
        return self._state is not DialogState.CLOSED

    @property
    def kind(self) -> Optional[RecordKind]:
        return self._draft.kind if self._draft is not None else None

    @property
    def draft(self) -> Optional[Draft]:
        return self._draft

    @property
    def errors(self) -> Tuple[str, ...]:
        return self._errors

    @property
    def is_submitted_once(self) -> bool:
        return self._submitted_once

    @property
    def is_saving(self) -> bool:
        return self._saving

    @property
    def is_shaking(self) -> bool:
        return self._shaking

    @property
    def is_preview_visible(self) -> bool:
        return self._preview_visible

    @property
    def cover_preview_url(self) -> Optional[str]:
        return self._preview.url

    @property
    def source_document_name(self) -> Optional[str]:
        return self._source_document_name

    @property
    def image_removal_requested(self) -> bool:
        return self._image_removal_requested

    @property
    def categories(self) -> Tuple[Category, ...]:
        return self._categories

    @property
    def generation(self) -> int:
        return self._generation

    # ---- lifecycle ------------------------------------------------------

    async def open(self, kind: Union[RecordKind, str]) -> None:
        """Show the dialog with an empty draft for `kind`.

        Calling open() while already open (e.g. with another kind) starts over.
        """

        kind = RecordKind(kind)
        self._generation += 1
        generation = self._generation

        self._cancel_shake()
        self._preview.clear()
        self._draft = empty_draft(kind)
        self._clear_ephemeral()
        self._state = DialogState.EDITING
        self._acquire_scroll_lock()
        self._transient.remove(self._settings.transient_filename_key)

        log.info("dialog_opened", extra={"kind": kind.value, "generation": generation})

        if kind is RecordKind.STORY and self._directory is not None:
            await self._load_categories(generation)

    def close(self) -> None:
        """Discard the draft and hide the dialog. Safe to call repeatedly."""

        self._generation += 1
        self._cancel_shake()
        self._preview.clear()
        self._release_scroll_lock()
        was_open = self._state is not DialogState.CLOSED
        self._draft = None
        self._clear_ephemeral()
        self._state = DialogState.CLOSED
        if was_open:
            log.info("dialog_closed", extra={"generation": self._generation})

    def dispose(self) -> None:
        """Unmount hook; releases everything close() releases."""

        self.close()

    @asynccontextmanager
    async def session(self, kind: Union[RecordKind, str]) -> AsyncIterator["CreateDialogController"]:
        """Open for `kind` and guarantee close() on exit, whatever the path."""

        await self.open(kind)
        try:
            yield self
        finally:
            self.close()

    # ---- editing --------------------------------------------------------

    def set_field(self, name: str, value: Any) -> None:
        """Mutate one field of the active draft.

        - file fields: the cover image also gets a fresh preview URL and
          cancels a pending removal request
        - checkbox fields: stored as bool
        - everything else: stored as given (no trimming or coercion)

        Raises KeyError for fields the active record kind does not have.
        """

        draft = self._require_open()
        kind = input_kind(draft, name)

        if kind is InputKind.FILE:
            if value is not None and not isinstance(value, Attachment):
                raise TypeError(f"{name} expects an Attachment")
            setattr(draft, name, value)
            if name == _PREVIEWED_FIELD:
                self._preview.replace(value)
                if value is not None:
                    self._image_removal_requested = False
            return

        if kind is InputKind.CHECKBOX:
            setattr(draft, name, bool(value))
            return

        setattr(draft, name, value)
        if name == "body" and not str(value or "").strip():
            self._preview_visible = False

    def toggle_published(self) -> bool:
        draft = self._require_open()
        input_kind(draft, "published")
        draft.published = not draft.published
        return draft.published

    def remove_cover_image(self) -> None:
        """Explicitly drop the cover image; the save payload will ask to delete it."""

        draft = self._require_open()
        draft.cover_image = None
        self._preview.clear()
        self._image_removal_requested = True

    def toggle_preview(self) -> bool:
        """Show/hide the rendered body preview. Unavailable while the body is blank."""

        draft = self._require_open()
        if not str(draft.body or "").strip():
            self._preview_visible = False
            return False
        self._preview_visible = not self._preview_visible
        return self._preview_visible

    async def import_document(
        self,
        filename: str,
        data: bytes,
        *,
        content_type: str = DOCX_CONTENT_TYPE,
    ) -> Optional[NormalizedText]:
        """Replace the draft body with the normalized text of a Word document.

        On failure the draft is left untouched and an import message is shown.
        """

        draft = self._require_open()
        try:
            result = normalize_document(data, extractor=self._extractor)
        except DocumentImportError as e:
            log.warning("document_import_failed", extra={"error": str(e)})
            self._fail([messages.IMPORT_FAILED])
            return None

        draft.body = result.text
        draft.source_document = Attachment(filename=filename, content=bytes(data), content_type=content_type)
        self._source_document_name = filename
        self._transient.set(self._settings.transient_filename_key, filename)

        log.info(
            "document_imported",
            extra={"text_chars": len(result.text), "paragraphs": result.paragraph_count},
        )
        return result

    def remove_document(self) -> None:
        """Forget the imported document together with the body it produced."""

        draft = self._require_open()
        draft.body = ""
        draft.source_document = None
        self._source_document_name = None
        self._preview_visible = False
        self._transient.remove(self._settings.transient_filename_key)

    # ---- submission -----------------------------------------------------

    def validate(self) -> List[str]:
        return validate_draft(self._require_open())

    async def submit(self) -> bool:
        """Validate and save the draft. Returns True when the record was saved."""

        draft = self._require_open()
        if self._saving:
            log.debug("submit_ignored", extra={"reason": "save_in_flight"})
            return False

        self._submitted_once = True
        self._errors = ()
        self._surface.scroll_to_top()

        violations = self.validate()
        if violations:
            self._fail(violations)
            return False

        try:
            payload = map_draft(draft, remove_cover_image=self._image_removal_requested)
        except ValidationError as e:
            self._fail(list(e.violations))
            return False

        if not self._category_known(draft, payload):
            self._fail([messages.CATEGORY_INVALID])
            return False

        generation = self._generation
        kind = draft.kind
        correlation_id: Optional[str] = None

        self._saving = True
        self._state = DialogState.SUBMITTING

        if isinstance(draft, StoryDraft) and draft.downloadable:
            correlation_id = uuid4().hex
            self._notify("loading", messages.PDF_PROCESSING, correlation_id)

        try:
            result = await self._store.save(kind, payload)
        except Exception as e:
            log.warning("save_failed", extra={"kind": kind.value, "error": str(e)})
            self._save_failed(generation, correlation_id, str(e).strip() or messages.SAVE_FAILED)
            return False

        if not result:
            log.warning("save_failed", extra={"kind": kind.value, "error": "empty result"})
            self._save_failed(generation, correlation_id, messages.SAVE_FAILED)
            return False

        if correlation_id is not None:
            self._notify("success", messages.PDF_READY, correlation_id)
        log.info("record_saved", extra={"kind": kind.value, "generation": generation})

        if generation == self._generation:
            self.close()
        return True

    def _save_failed(self, generation: int, correlation_id: Optional[str], message: str) -> None:
        if correlation_id is not None:
            self._notify("error", messages.PDF_FAILED, correlation_id)

        if generation != self._generation:
            log.info("stale_save_result_ignored", extra={"generation": generation})
            return

        self._saving = False
        self._state = DialogState.EDITING
        self._fail([message])

    # ---- internals ------------------------------------------------------

    def _require_open(self) -> Draft:
        if self._draft is None or self._state is DialogState.CLOSED:
            raise RuntimeError("Dialog is not open")
        return self._draft

    def _clear_ephemeral(self) -> None:
        self._errors: Tuple[str, ...] = ()
        self._submitted_once = False
        self._saving = False
        self._shaking = False
        self._preview_visible = False
        self._source_document_name: Optional[str] = None
        self._image_removal_requested = False
        self._categories: Tuple[Category, ...] = ()

    async def _load_categories(self, generation: int) -> None:
        try:
            listing = await self._directory.list_all()
        except Exception as e:
            log.warning("category_fetch_failed", extra={"error": str(e)})
            if generation == self._generation:
                self._categories = ()
                self._errors = (messages.CATEGORIES_UNAVAILABLE,)
            return

        if generation != self._generation:
            return
        self._categories = tuple(listing)

    def _category_known(self, draft: Draft, payload: Dict[str, Any]) -> bool:
        """A story must point at a listed category once the listing is loaded."""

        if not isinstance(draft, StoryDraft) or not self._categories:
            return True
        return payload["categorie"] in {c.id for c in self._categories}

    def _fail(self, errors: List[str]) -> None:
        self._errors = tuple(errors)
        self._start_shake()
        self._surface.scroll_to_top()

    def _start_shake(self) -> None:
        self._cancel_shake()
        self._shaking = True
        loop = asyncio.get_running_loop()
        self._shake_handle = loop.call_later(self._settings.shake_seconds, self._stop_shake)

    def _stop_shake(self) -> None:
        self._shaking = False
        self._shake_handle = None

    def _cancel_shake(self) -> None:
        if self._shake_handle is not None:
            self._shake_handle.cancel()
            self._shake_handle = None
        self._shaking = False

    def _acquire_scroll_lock(self) -> None:
        if not self._scroll_locked:
            self._surface.lock_scroll()
            self._scroll_locked = True

    def _release_scroll_lock(self) -> None:
        if self._scroll_locked:
            self._scroll_locked = False
            self._surface.unlock_scroll()

    def _notify(self, level: str, message: str, correlation_id: str) -> None:
        """Best-effort user feedback; a broken channel never changes control flow."""

        channel = self._notifications
        if channel is None:
            return
        try:
            getattr(channel, level)(message, correlation_id)
        except Exception:
            log.warning("notification_failed", extra={"level_hint": level}, exc_info=True)
