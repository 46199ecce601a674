"""Interfaces the create dialog depends on, plus in-memory defaults.

The dialog never talks to a browser, toast library or HTTP API directly; hosts
plug those in through these protocols.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Protocol, Sequence, Set, Tuple
from uuid import uuid4

from .draft import Attachment, Category, RecordKind


class CategoryDirectory(Protocol):
    async def list_all(self) -> Sequence[Category]: ...


class RecordStore(Protocol):
    async def save(self, kind: RecordKind, payload: Mapping[str, Any]) -> Any: ...


class NotificationChannel(Protocol):
    def loading(self, message: str, correlation_id: str) -> None: ...

    def success(self, message: str, correlation_id: str) -> None: ...

    def error(self, message: str, correlation_id: str) -> None: ...


class TransientStore(Protocol):
    def set(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> None: ...


class DialogSurface(Protocol):
    """UI hooks: page scroll lock while open and scrolling the dialog to its top."""

    def lock_scroll(self) -> None: ...

    def unlock_scroll(self) -> None: ...

    def scroll_to_top(self) -> None: ...


class PreviewUrls(Protocol):
    def create(self, attachment: Attachment) -> str: ...

    def revoke(self, url: str) -> None: ...


class NullSurface:
    """Surface for headless use (CLI, tests)."""

    def lock_scroll(self) -> None:
        return None

    def unlock_scroll(self) -> None:
        return None

    def scroll_to_top(self) -> None:
        return None


@dataclass
class MemoryTransientStore:
    values: Dict[str, str] = field(default_factory=dict)

    def set(self, key: str, value: str) -> None:
        self.values[key] = value

    def remove(self, key: str) -> None:
        self.values.pop(key, None)

    def get(self, key: str) -> Optional[str]:
        return self.values.get(key)


class InMemoryPreviewUrls:
    """Hands out opaque blob-style URLs and tracks which are still live.

    Security notes:
    - URLs carry no file name or content, only a random id.

    """

    def __init__(self) -> None:
        self._live: Dict[str, Attachment] = {}

    def create(self, attachment: Attachment) -> str:
        url = f"blob:verhaal/{uuid4().hex}"
        self._live[url] = attachment
        return url

    def revoke(self, url: str) -> None:
        self._live.pop(url, None)

    def resolve(self, url: str) -> Optional[Attachment]:
        return self._live.get(url)

    @property
    def live(self) -> Set[str]:
        return set(self._live)


@dataclass
class RecordingNotifications:
    """Notification channel that keeps (level, message, correlation_id) tuples."""

    entries: List[Tuple[str, str, str]] = field(default_factory=list)

    def loading(self, message: str, correlation_id: str) -> None:
        self.entries.append(("loading", message, correlation_id))

    def success(self, message: str, correlation_id: str) -> None:
        self.entries.append(("success", message, correlation_id))

    def error(self, message: str, correlation_id: str) -> None:
        self.entries.append(("error", message, correlation_id))

    def pending(self) -> Set[str]:
        """Correlation ids that were opened with loading() and never resolved."""

        open_ids: Set[str] = set()
        for level, _message, cid in self.entries:
            if level == "loading":
                open_ids.add(cid)
            else:
                open_ids.discard(cid)
        return open_ids


class LoggingNotifications:
    """Routes notifications to the `verhaal.notifications` logger."""

    def __init__(self, logger: Optional[logging.Logger] = None) -> None:
        self._log = logger or logging.getLogger("verhaal.notifications")

    def loading(self, message: str, correlation_id: str) -> None:
        self._log.info(message, extra={"correlation_id": correlation_id, "level_hint": "loading"})

    def success(self, message: str, correlation_id: str) -> None:
        self._log.info(message, extra={"correlation_id": correlation_id, "level_hint": "success"})

    def error(self, message: str, correlation_id: str) -> None:
        self._log.error(message, extra={"correlation_id": correlation_id, "level_hint": "error"})
