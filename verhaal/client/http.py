from __future__ import annotations

import asyncio
import http.client
import json
import logging
import ssl
import uuid
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple
from urllib.error import HTTPError, URLError
from urllib.parse import urljoin
from urllib.request import Request, urlopen

from verhaal.core.errors import CategoryFetchError, SaveError
from verhaal.core.forms import messages
from verhaal.core.forms.draft import Attachment, Category, RecordKind
from verhaal.core.settings import ClientSettings

log = logging.getLogger("verhaal.client")


class TransportError(RuntimeError):
    """The admin API could not be reached at all."""


@dataclass(frozen=True, slots=True)
class HttpResponse:
    """HTTP response wrapper.

    Security notes:
    - Treat `body_bytes` as untrusted.

    """

    status: int
    headers: Mapping[str, str]
    body_bytes: bytes

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    def json(self) -> Any:
        """Decode body as JSON."""

        return json.loads(self.body_bytes.decode("utf-8", errors="strict"))


class AdminApiClient:
    """Minimal stdlib-only client for the site's admin API.

    Records are created with multipart/form-data so cover images and Word
    files travel with the fields.

    Security notes:
    - Enforces a max upload size to avoid accidental huge memory usage.
    - Does NOT disable TLS verification.

    Time/Space: depends on request size.
    """

    categories_path = "admin/categories/"
    record_paths = {
        RecordKind.STORY: "admin/verhalen/",
        RecordKind.CATEGORY: "admin/categories/",
    }

    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        max_upload_bytes: int = 25 * 1024 * 1024,
        timeout_seconds: float = 30.0,
    ):
        self.base_url = base_url.rstrip("/") + "/"
        self.token = token
        self.max_upload_bytes = int(max_upload_bytes)
        self.timeout_seconds = float(timeout_seconds)

    @classmethod
    def from_settings(cls, settings: ClientSettings) -> "AdminApiClient":
        return cls(
            settings.base_url,
            token=settings.token,
            max_upload_bytes=settings.max_upload_bytes,
            timeout_seconds=settings.timeout_seconds,
        )

    def get(self, path: str) -> HttpResponse:
        """HTTP GET."""

        url = urljoin(self.base_url, path.lstrip("/"))
        req = Request(url=url, method="GET")
        req.add_header("Accept", "application/json")
        self._authorize(req)
        return _do_request(req, timeout=self.timeout_seconds)

    def post_multipart(
        self,
        path: str,
        *,
        fields: Mapping[str, str],
        files: Sequence[Tuple[str, Attachment]] = (),
    ) -> HttpResponse:
        """HTTP POST multipart/form-data.

        Args:
          fields: form fields (string values)
          files: (field_name, attachment) pairs

        Security notes:
        - This builds the full multipart body in memory. For safety, a size cap is enforced.
        """

        url = urljoin(self.base_url, path.lstrip("/"))

        total = sum(att.size_bytes for _name, att in files)
        if total > self.max_upload_bytes:
            raise ValueError(f"attachments too large for client upload cap: {total} > {self.max_upload_bytes}")

        body, boundary = _encode_multipart(fields=dict(fields), files=list(files))
        req = Request(url=url, data=body, method="POST")
        req.add_header("Content-Type", f"multipart/form-data; boundary={boundary}")
        req.add_header("Content-Length", str(len(body)))
        req.add_header("Accept", "application/json")
        self._authorize(req)
        return _do_request(req, timeout=self.timeout_seconds)

    def list_categories(self) -> List[Category]:
        """Fetch all categories as [{id, naam}] and convert them to Category."""

        try:
            resp = self.get(self.categories_path)
        except TransportError as e:
            raise CategoryFetchError(str(e)) from e
        if not resp.ok:
            raise CategoryFetchError(_error_message(resp) or f"HTTP {resp.status}")

        try:
            rows = resp.json()
        except ValueError as e:
            raise CategoryFetchError(f"invalid category listing: {e}") from e
        if not isinstance(rows, list):
            raise CategoryFetchError("invalid category listing: expected a list")

        out: List[Category] = []
        for row in rows:
            if not isinstance(row, Mapping) or "id" not in row:
                continue
            try:
                category_id = int(row["id"])
            except (TypeError, ValueError):
                continue
            name = row.get("naam", row.get("name", ""))
            out.append(Category(id=category_id, name=str(name or "")))
        return out

    def create_record(self, kind: RecordKind, payload: Mapping[str, Any]) -> Dict[str, Any]:
        """Create a story or category. Raises SaveError with the server's message."""

        kind = RecordKind(kind)
        fields, files = split_payload(payload)
        try:
            resp = self.post_multipart(self.record_paths[kind], fields=fields, files=files)
        except TransportError as e:
            raise SaveError(str(e)) from e
        except ValueError as e:
            raise SaveError(str(e)) from e

        if not resp.ok:
            log.warning("admin_api_rejected", extra={"status_code": resp.status, "kind": kind.value})
            raise SaveError(_error_message(resp) or messages.SAVE_FAILED)

        try:
            data = resp.json()
        except ValueError:
            data = {}
        return data if isinstance(data, dict) and data else {"ok": True}

    def _authorize(self, req: Request) -> None:
        if self.token:
            req.add_header("Authorization", f"Bearer {self.token}")


class HttpCategoryDirectory:
    """CategoryDirectory over AdminApiClient; blocking I/O runs in a worker thread."""

    def __init__(self, client: AdminApiClient) -> None:
        self._client = client

    async def list_all(self) -> List[Category]:
        return await asyncio.to_thread(self._client.list_categories)


class HttpRecordStore:
    """RecordStore over AdminApiClient."""

    def __init__(self, client: AdminApiClient) -> None:
        self._client = client

    async def save(self, kind: RecordKind, payload: Mapping[str, Any]) -> Dict[str, Any]:
        return await asyncio.to_thread(self._client.create_record, kind, payload)


def split_payload(payload: Mapping[str, Any]) -> Tuple[Dict[str, str], List[Tuple[str, Attachment]]]:
    """Separate form fields from file parts. Missing attachments are omitted."""

    fields: Dict[str, str] = {}
    files: List[Tuple[str, Attachment]] = []
    for name, value in payload.items():
        if isinstance(value, Attachment):
            files.append((name, value))
        elif value is None:
            continue
        elif isinstance(value, bool):
            fields[name] = "true" if value else "false"
        else:
            fields[name] = str(value)
    return fields, files


def _error_message(resp: HttpResponse) -> Optional[str]:
    """Pull a human-readable message out of an error body, if there is one."""

    try:
        data = resp.json()
    except ValueError:
        return None
    if not isinstance(data, Mapping):
        return None
    for key in ("detail", "error", "message"):
        value = data.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
        if value:
            return json.dumps(value, ensure_ascii=False)
    return None


def _encode_multipart(
    *, fields: Dict[str, str], files: List[Tuple[str, Attachment]]
) -> Tuple[bytes, str]:
    """Encode multipart/form-data.


    Security notes:
    - Caller should enforce size limits.
    - Quotes and line breaks in file names are replaced to keep headers well-formed.
    """

    boundary = "----verhaal-" + uuid.uuid4().hex
    crlf = "\r\n"
    parts: List[bytes] = []

    for name, value in fields.items():
        parts.append(f"--{boundary}{crlf}".encode("utf-8"))
        parts.append(f'Content-Disposition: form-data; name="{name}"{crlf}{crlf}'.encode("utf-8"))
        parts.append(str(value).encode("utf-8"))
        parts.append(crlf.encode("utf-8"))

    for field_name, att in files:
        filename = att.filename.replace('"', "'").replace("\r", " ").replace("\n", " ")
        parts.append(f"--{boundary}{crlf}".encode("utf-8"))
        parts.append(
            f'Content-Disposition: form-data; name="{field_name}"; filename="{filename}"{crlf}'.encode(
                "utf-8"
            )
        )
        parts.append(f"Content-Type: {att.content_type}{crlf}{crlf}".encode("utf-8"))
        parts.append(att.content)
        parts.append(crlf.encode("utf-8"))

    parts.append(f"--{boundary}--{crlf}".encode("utf-8"))
    body = b"".join(parts)
    return body, boundary


def _do_request(req: Request, *, timeout: Optional[float] = None) -> HttpResponse:
    """Execute a request.


    Security notes:
    - Uses default SSL context (verification ON).
    - Every call is bounded by `timeout`; connection and read failures surface
      as TransportError.
    """

    try:
        ctx = ssl.create_default_context()
        with urlopen(req, context=ctx, timeout=timeout) as resp:
            body = resp.read()
            headers = {k: v for k, v in resp.headers.items()}
            return HttpResponse(status=int(resp.status), headers=headers, body_bytes=body)
    except HTTPError as e:
        body = e.read() if hasattr(e, "read") else b""
        headers = dict(getattr(e, "headers", {}) or {})
        return HttpResponse(
            status=int(getattr(e, "code", 0) or 0), headers=headers, body_bytes=body
        )
    except (URLError, OSError, http.client.HTTPException) as e:
        raise TransportError(f"network error: {e}") from e
