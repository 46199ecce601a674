from __future__ import annotations

from typing import Optional

from .collaborators import PreviewUrls
from .draft import Attachment


class PreviewSlot:
    """Owns at most one live preview URL.

    Every path that overwrites or clears the slot revokes the previous URL,
    so no preview outlives the image it was made for.
    """

    def __init__(self, urls: PreviewUrls) -> None:
        self._urls = urls
        self._url: Optional[str] = None

    @property
    def url(self) -> Optional[str]:
        return self._url

    def replace(self, attachment: Optional[Attachment]) -> Optional[str]:
        self.clear()
        if attachment is not None:
            self._url = self._urls.create(attachment)
        return self._url

    def clear(self) -> None:
        if self._url is not None:
            url, self._url = self._url, None
            self._urls.revoke(url)
