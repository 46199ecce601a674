from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from fastapi import FastAPI, File, HTTPException, UploadFile
from fastapi.responses import JSONResponse

from verhaal.api.middleware import RequestContextMiddleware
from verhaal.api.models import (
    ApiError,
    CategoryDraftIn,
    MarkupIn,
    MarkupOut,
    NormalizeOut,
    StoryDraftIn,
    ValidateOut,
)
from verhaal.core.documents import DocxHtmlExtractor, html_to_markup, normalize_document
from verhaal.core.errors import DocumentImportError, ValidationError
from verhaal.core.forms import CategoryDraft, Draft, RecordKind, StoryDraft, map_draft, validate_draft
from verhaal.core.settings import DocumentLimits, env_int, load_document_limits

log = logging.getLogger("verhaal.api")


@dataclass(frozen=True, slots=True)
class ServiceConfig:
    """Configuration for the API service.

    Security notes:
    - Uploads are read in chunks and rejected past max_upload_bytes.

    """

    max_upload_bytes: int = 25 * 1024 * 1024
    limits: DocumentLimits = field(default_factory=DocumentLimits)


def load_service_config() -> ServiceConfig:
    return ServiceConfig(
        max_upload_bytes=env_int("VERHAAL_MAX_UPLOAD_BYTES", 25 * 1024 * 1024),
        limits=load_document_limits(),
    )


def _verdict(kind: RecordKind, draft: Draft) -> ValidateOut:
    violations = validate_draft(draft)
    if not violations:
        try:
            map_draft(draft)
        except ValidationError as e:
            violations = list(e.violations)
    return ValidateOut(kind=kind.value, valid=not violations, violations=violations)


def create_app(*, config: Optional[ServiceConfig] = None) -> FastAPI:
    """Create the FastAPI app."""

    cfg = config or load_service_config()

    # Logging: safe defaults (no request bodies), can be configured by host app.
    log.setLevel(os.environ.get("VERHAAL_LOG_LEVEL", "INFO").upper())

    app = FastAPI(title="Verhaal API", version="0.1")
    app.state.cfg = cfg

    # Request correlation + access logs.
    app.add_middleware(RequestContextMiddleware)

    extractor = DocxHtmlExtractor(cfg.limits)

    @app.get("/health")
    def health() -> Dict[str, Any]:
        return {"ok": True, "max_upload_bytes": cfg.max_upload_bytes}

    def _read_upload(upload: UploadFile) -> bytes:
        """Read an UploadFile into memory.

        Security notes:
        - Reads in chunks and stops as soon as the cap is exceeded.

        """

        chunks = []
        total = 0
        while True:
            chunk = upload.file.read(1024 * 1024)
            if not chunk:
                break
            total += len(chunk)
            if total > cfg.max_upload_bytes:
                raise HTTPException(status_code=413, detail="upload_too_large")
            chunks.append(chunk)
        return b"".join(chunks)

    @app.post("/normalize", response_model=NormalizeOut)
    def normalize_endpoint(file: UploadFile = File(...)):
        """Convert an uploaded .docx into markup text for the story body."""

        data = _read_upload(file)
        try:
            result = normalize_document(data, extractor=extractor)
        except DocumentImportError as e:
            log.info("normalize_rejected", extra={"size_bytes": len(data)})
            return JSONResponse(
                status_code=422,
                content=ApiError(error="document_import_failed", detail=str(e)).model_dump(),
            )

        return NormalizeOut(
            filename=os.path.basename(file.filename or "document.docx")[:255],
            size_bytes=len(data),
            text=result.text,
            paragraphs=result.paragraph_count,
            characters=len(result.text),
        )

    @app.post("/markup", response_model=MarkupOut)
    def markup_endpoint(body: MarkupIn) -> MarkupOut:
        """Rewrite already-extracted HTML into the markup dialect."""

        return MarkupOut(text=html_to_markup(body.html))

    @app.post("/validate/story", response_model=ValidateOut)
    def validate_story_endpoint(body: StoryDraftIn) -> ValidateOut:
        values = body.model_dump(exclude_none=True)
        return _verdict(RecordKind.STORY, StoryDraft(**values))

    @app.post("/validate/category", response_model=ValidateOut)
    def validate_category_endpoint(body: CategoryDraftIn) -> ValidateOut:
        return _verdict(RecordKind.CATEGORY, CategoryDraft(**body.model_dump()))

    return app


def app_from_env() -> FastAPI:
    """Factory used by Uvicorn entrypoints (`uvicorn --factory verhaal.api.server:app_from_env`)."""

    return create_app()
