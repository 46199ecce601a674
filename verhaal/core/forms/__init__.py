"""Create-dialog state for stories and categories.

The controller owns one draft at a time and talks to the outside world only
through the protocols in `collaborators`.
"""

from .collaborators import (
    CategoryDirectory,
    DialogSurface,
    InMemoryPreviewUrls,
    LoggingNotifications,
    MemoryTransientStore,
    NotificationChannel,
    NullSurface,
    PreviewUrls,
    RecordingNotifications,
    RecordStore,
    TransientStore,
)
from .controller import DOCX_CONTENT_TYPE, CreateDialogController, DialogState
from .draft import (
    Attachment,
    Category,
    CategoryDraft,
    Draft,
    InputKind,
    RecordKind,
    StoryDraft,
    empty_draft,
    input_kind,
)
from .mapping import map_category, map_draft, map_story
from .preview import PreviewSlot
from .validation import validate_draft

__all__ = [
    "Attachment",
    "Category",
    "CategoryDirectory",
    "CategoryDraft",
    "CreateDialogController",
    "DOCX_CONTENT_TYPE",
    "DialogState",
    "DialogSurface",
    "Draft",
    "InMemoryPreviewUrls",
    "InputKind",
    "LoggingNotifications",
    "MemoryTransientStore",
    "NotificationChannel",
    "NullSurface",
    "PreviewSlot",
    "PreviewUrls",
    "RecordKind",
    "RecordStore",
    "RecordingNotifications",
    "StoryDraft",
    "TransientStore",
    "empty_draft",
    "input_kind",
    "map_category",
    "map_draft",
    "map_story",
    "validate_draft",
]
