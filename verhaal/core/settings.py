from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Optional

_DEFAULT_MAX_DOCUMENT_BYTES = 25 * 1024 * 1024


@dataclass(frozen=True, slots=True)
class DocumentLimits:
    """Bounds applied while opening a Word container.

    Security notes:
    - Defense-in-depth against zip bombs (entry count, per-entry size, total size).

    """

    max_document_bytes: int = _DEFAULT_MAX_DOCUMENT_BYTES
    max_zip_entries: int = 5000
    max_zip_total_bytes: int = 50 * 1024 * 1024
    max_zip_entry_bytes: int = 10 * 1024 * 1024


@dataclass(frozen=True, slots=True)
class FormSettings:
    """Behavioural knobs for the create dialog."""

    shake_seconds: float = 0.5
    transient_filename_key: str = "temp_word_filename"
    limits: DocumentLimits = field(default_factory=DocumentLimits)


@dataclass(frozen=True, slots=True)
class ClientSettings:
    """Where the admin API lives and how to authenticate against it."""

    base_url: str = "http://127.0.0.1:8000/api/"
    token: Optional[str] = None
    max_upload_bytes: int = _DEFAULT_MAX_DOCUMENT_BYTES
    timeout_seconds: float = 30.0


def env_int(name: str, default: int) -> int:
    """Read an integer environment variable.

    Security notes:
    - Env vars are treated as trusted configuration; malformed values fall back.

    """

    raw = os.environ.get(name, "").strip()
    if not raw:
        return int(default)
    try:
        return int(raw)
    except ValueError:
        return int(default)


def env_float(name: str, default: float) -> float:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return float(default)
    try:
        value = float(raw)
    except ValueError:
        return float(default)
    return value if value >= 0 else float(default)


def load_document_limits() -> DocumentLimits:
    defaults = DocumentLimits()
    return DocumentLimits(
        max_document_bytes=env_int("VERHAAL_MAX_DOCUMENT_BYTES", defaults.max_document_bytes),
        max_zip_entries=env_int("VERHAAL_MAX_ZIP_ENTRIES", defaults.max_zip_entries),
        max_zip_total_bytes=env_int("VERHAAL_MAX_ZIP_TOTAL_BYTES", defaults.max_zip_total_bytes),
        max_zip_entry_bytes=env_int("VERHAAL_MAX_ZIP_ENTRY_BYTES", defaults.max_zip_entry_bytes),
    )


def load_form_settings() -> FormSettings:
    """Build FormSettings from VERHAAL_* environment variables."""

    defaults = FormSettings()
    return FormSettings(
        shake_seconds=env_float("VERHAAL_SHAKE_SECONDS", defaults.shake_seconds),
        transient_filename_key=defaults.transient_filename_key,
        limits=load_document_limits(),
    )


def load_client_settings() -> ClientSettings:
    defaults = ClientSettings()
    return ClientSettings(
        base_url=os.environ.get("VERHAAL_API_BASE_URL", "").strip() or defaults.base_url,
        token=os.environ.get("VERHAAL_API_TOKEN", "").strip() or None,
        max_upload_bytes=env_int("VERHAAL_MAX_UPLOAD_BYTES", defaults.max_upload_bytes),
        timeout_seconds=env_float("VERHAAL_API_TIMEOUT_SECONDS", defaults.timeout_seconds),
    )
