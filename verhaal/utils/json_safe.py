from __future__ import annotations

import base64
import hashlib
from dataclasses import fields, is_dataclass
from datetime import date, datetime
from enum import Enum
from pathlib import Path
from typing import Any, Mapping

from verhaal.core.forms.draft import Attachment


def describe_attachment(att: Attachment) -> dict:
    """Summarise an attachment without its bytes or its full name."""

    return {
        "filename": Path(att.filename).name,
        "content_type": att.content_type,
        "size_bytes": att.size_bytes,
        "sha256": hashlib.sha256(att.content).hexdigest(),
    }


def to_jsonable(obj: Any) -> Any:
    """
    Convert payloads, drafts and common Python objects to JSON-serializable equivalents.

    Security considerations:
    - Attachments are summarised (name, type, size, digest); file bytes are never echoed.
    - loose bytes are base64-encoded to avoid binary injection / encoding issues.
    - does NOT execute or import anything dynamically.

    """
    if obj is None or isinstance(obj, (str, int, float, bool)):
        return obj

    if isinstance(obj, Enum):
        return to_jsonable(obj.value)

    if isinstance(obj, Attachment):
        return describe_attachment(obj)

    # datetime/date -> ISO 8601
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()

    if isinstance(obj, Path):
        return str(obj)

    if isinstance(obj, (bytes, bytearray)):
        return {"__bytes_b64__": base64.b64encode(bytes(obj)).decode("ascii")}

    if is_dataclass(obj) and not isinstance(obj, type):
        return {f.name: to_jsonable(getattr(obj, f.name)) for f in fields(obj)}

    if isinstance(obj, Mapping):
        return {str(k): to_jsonable(v) for k, v in obj.items()}

    if isinstance(obj, (list, tuple, set, frozenset)):
        return [to_jsonable(x) for x in obj]

    # fallback: string representation
    return str(obj)
