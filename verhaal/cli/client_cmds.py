from __future__ import annotations

import argparse
import asyncio
import json
import mimetypes
import sys
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from verhaal.client.http import AdminApiClient, HttpCategoryDirectory, HttpRecordStore
from verhaal.core.errors import CategoryFetchError
from verhaal.core.forms import Attachment, CreateDialogController, RecordKind
from verhaal.core.settings import load_client_settings, load_form_settings
from verhaal.utils.json_safe import to_jsonable


class ConsoleNotifications:
    """Prints notifications to stderr, one line each."""

    def loading(self, message: str, correlation_id: str) -> None:
        print(f"... {message}", file=sys.stderr)

    def success(self, message: str, correlation_id: str) -> None:
        print(f"ok  {message}", file=sys.stderr)

    def error(self, message: str, correlation_id: str) -> None:
        print(f"err {message}", file=sys.stderr)


class DryRunStore:
    """RecordStore that prints the payload instead of sending it."""

    def __init__(self) -> None:
        self.saved: Optional[Dict[str, Any]] = None

    async def save(self, kind: RecordKind, payload: Mapping[str, Any]) -> Dict[str, Any]:
        self.saved = {"kind": kind, "payload": dict(payload)}
        print(json.dumps(to_jsonable(self.saved), ensure_ascii=False, indent=2))
        return {"dry_run": True}


def _client(args: argparse.Namespace) -> AdminApiClient:
    settings = load_client_settings()
    return AdminApiClient(
        args.base_url or settings.base_url,
        token=args.token or settings.token,
        max_upload_bytes=settings.max_upload_bytes,
        timeout_seconds=settings.timeout_seconds,
    )


def _attachment(path: Optional[str]) -> Optional[Attachment]:
    if not path:
        return None
    p = Path(path)
    content_type = mimetypes.guess_type(p.name)[0] or "application/octet-stream"
    return Attachment(filename=p.name, content=p.read_bytes(), content_type=content_type)


def _controller(args: argparse.Namespace) -> CreateDialogController:
    client = _client(args)
    store = DryRunStore() if args.dry_run else HttpRecordStore(client)
    return CreateDialogController(
        record_store=store,
        category_directory=HttpCategoryDirectory(client),
        notifications=ConsoleNotifications(),
        settings=load_form_settings(),
    )


def _report(controller: CreateDialogController) -> None:
    for line in controller.errors:
        print(f"error: {line}", file=sys.stderr)


def _resolve_category(controller: CreateDialogController, ref: Optional[str]) -> Optional[str]:
    """Accept a category id or (case-insensitive) name."""

    if not ref:
        return None
    ref = ref.strip()
    for cat in controller.categories:
        if ref == str(cat.id) or ref.lower() == cat.name.lower():
            return str(cat.id)
    return ref


async def _create_story(args: argparse.Namespace) -> int:
    controller = _controller(args)
    async with controller.session(RecordKind.STORY):
        _report(controller)

        controller.set_field("title", args.title)
        controller.set_field("summary", args.summary or "")
        controller.set_field("category_ref", _resolve_category(controller, args.category))
        controller.set_field("featured", args.featured)
        controller.set_field("spotlighted", args.spotlight)
        controller.set_field("downloadable", args.downloadable)
        controller.set_field("external_url", args.url or "")
        if args.date:
            controller.set_field("date", args.date)
        if args.hidden:
            controller.toggle_published()
        if args.cover:
            controller.set_field("cover_image", _attachment(args.cover))

        if args.docx:
            doc = Path(args.docx)
            if await controller.import_document(doc.name, doc.read_bytes()) is None:
                _report(controller)
                return 1
        elif args.body_file:
            controller.set_field("body", Path(args.body_file).read_text(encoding="utf-8"))

        if await controller.submit():
            return 0
        _report(controller)
        return 1


async def _create_category(args: argparse.Namespace) -> int:
    controller = _controller(args)
    async with controller.session(RecordKind.CATEGORY):
        controller.set_field("name", args.name)
        controller.set_field("description", args.description or "")
        controller.set_field("featured", args.featured)
        if args.cover:
            controller.set_field("cover_image", _attachment(args.cover))

        if await controller.submit():
            return 0
        _report(controller)
        return 1


def cmd_categories(args: argparse.Namespace) -> int:
    """List categories from the admin API."""

    try:
        categories = _client(args).list_categories()
    except CategoryFetchError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1

    if args.json:
        print(json.dumps(to_jsonable(categories), ensure_ascii=False, indent=2))
    else:
        for cat in categories:
            print(f"{cat.id}\t{cat.name}")
    return 0


def _run_dialog(flow, args: argparse.Namespace) -> int:
    """Run one dialog flow; unreadable input files are reported like `normalize` does."""

    try:
        return asyncio.run(flow(args))
    except OSError as e:
        print(f"error: cannot read {e.filename or ''}: {e.strerror or e}", file=sys.stderr)
        return 2


def cmd_create_story(args: argparse.Namespace) -> int:
    return _run_dialog(_create_story, args)


def cmd_create_category(args: argparse.Namespace) -> int:
    return _run_dialog(_create_category, args)


def _add_api_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--base-url", default=None, help="Admin API base URL (or VERHAAL_API_BASE_URL)")
    p.add_argument("--token", default=None, help="Bearer token (or VERHAAL_API_TOKEN)")


def register_client_commands(sub: argparse._SubParsersAction) -> None:
    """Register admin-API commands on the main CLI."""

    cp = sub.add_parser("categories", help="List categories from the admin API")
    _add_api_args(cp)
    cp.add_argument("--json", action="store_true", help="Print JSON")
    cp.set_defaults(func=cmd_categories)

    sp = sub.add_parser("create-story", help="Create a story through the create dialog flow")
    _add_api_args(sp)
    sp.add_argument("--title", default="", help="Story title")
    sp.add_argument("--category", default=None, help="Category id or name")
    body = sp.add_mutually_exclusive_group()
    body.add_argument("--docx", default=None, help="Import the body from a Word document")
    body.add_argument("--body-file", default=None, help="Read the body (markup text) from a file")
    sp.add_argument("--summary", default=None, help="Short description")
    sp.add_argument("--date", default=None, help="Publication date (YYYY-MM-DD, default: today)")
    sp.add_argument("--url", default=None, help="External URL")
    sp.add_argument("--cover", default=None, help="Cover image path")
    sp.add_argument("--hidden", action="store_true", help="Save without publishing")
    sp.add_argument("--featured", action="store_true", help="Mark as uitgelicht")
    sp.add_argument("--spotlight", action="store_true", help="Mark as spotlighted")
    sp.add_argument("--downloadable", action="store_true", help="Offer the story as PDF download")
    sp.add_argument("--dry-run", action="store_true", help="Print the payload instead of saving")
    sp.set_defaults(func=cmd_create_story)

    gp = sub.add_parser("create-category", help="Create a category through the create dialog flow")
    _add_api_args(gp)
    gp.add_argument("--name", default="", help="Category name")
    gp.add_argument("--description", default=None, help="Category description")
    gp.add_argument("--cover", default=None, help="Cover image path")
    gp.add_argument("--featured", action="store_true", help="Mark as uitgelicht")
    gp.add_argument("--dry-run", action="store_true", help="Print the payload instead of saving")
    gp.set_defaults(func=cmd_create_category)
