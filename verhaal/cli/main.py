from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from pathlib import Path
from typing import List

from verhaal.cli.client_cmds import register_client_commands
from verhaal.core.documents import DocxHtmlExtractor, html_to_markup, normalize_document
from verhaal.core.errors import DocumentImportError
from verhaal.core.settings import load_document_limits


def cmd_serve(args: argparse.Namespace) -> int:
    """Run the Verhaal API server.

    Security notes:
    - Bind to 127.0.0.1 by default (safer than 0.0.0.0).

    """

    try:
        import uvicorn
    except ImportError as e:
        print(f"error: uvicorn is required to serve the API: {e}", file=sys.stderr)
        return 2

    from verhaal.api.server import create_app

    app = create_app()
    uvicorn.run(app, host=args.host, port=int(args.port), log_level=args.log_level)
    return 0


def cmd_normalize(args: argparse.Namespace) -> int:
    """Convert a .docx file to markup text (or the intermediate HTML)."""

    path = Path(args.path)
    if path.suffix.lower() not in DocxHtmlExtractor.supported_suffixes:
        print(f"warning: {path.name} does not look like a .docx file", file=sys.stderr)

    limits = load_document_limits()
    try:
        size = os.stat(path).st_size
    except OSError as e:
        print(f"error: cannot read {path}: {e}", file=sys.stderr)
        return 2
    if size > limits.max_document_bytes:
        print(f"error: document too large: {size} > {limits.max_document_bytes}", file=sys.stderr)
        return 2

    try:
        result = normalize_document(path.read_bytes(), extractor=DocxHtmlExtractor(limits))
    except DocumentImportError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1

    if args.json:
        out = json.dumps(
            {"text": result.text, "html": result.html, "paragraphs": result.paragraph_count},
            ensure_ascii=False,
            indent=2,
        )
    else:
        out = result.html if args.html else result.text

    if args.out:
        Path(args.out).write_text(out + "\n", encoding="utf-8")
    else:
        print(out)
    return 0


def cmd_markup(args: argparse.Namespace) -> int:
    """Rewrite an HTML file (or stdin) into markup text."""

    if args.path == "-":
        html = sys.stdin.read()
    else:
        html = Path(args.path).read_text(encoding="utf-8")
    print(html_to_markup(html))
    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="verhaal", description="Story/category admin tooling")
    p.add_argument(
        "--log-level",
        dest="cli_log_level",
        default=os.environ.get("VERHAAL_LOG_LEVEL", "WARNING"),
        help="Logging level for verhaal loggers",
    )
    sub = p.add_subparsers(dest="cmd", required=True)

    np = sub.add_parser("normalize", help="Convert a Word document to story markup")
    np.add_argument("path", help="Path to .docx file")
    np.add_argument("--out", default=None, help="Write output to this file instead of stdout")
    np.add_argument("--html", action="store_true", help="Print the intermediate HTML instead")
    np.add_argument("--json", action="store_true", help="Print text, html and paragraph count as JSON")
    np.set_defaults(func=cmd_normalize)

    mp = sub.add_parser("markup", help="Convert HTML to story markup")
    mp.add_argument("path", help="Path to HTML file, or - for stdin")
    mp.set_defaults(func=cmd_markup)

    # --- API server ---
    sv = sub.add_parser("serve", help="Run the Verhaal FastAPI server")
    sv.add_argument("--host", default="127.0.0.1", help="Bind host (default: 127.0.0.1)")
    sv.add_argument("--port", type=int, default=8080, help="Bind port (default: 8080)")
    sv.add_argument("--log-level", dest="log_level", default="info", help="Uvicorn log level")
    sv.set_defaults(func=cmd_serve)

    # --- admin API client ---
    register_client_commands(sub)

    return p


def main(argv: List[str] | None = None) -> int:
    """CLI entry."""
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=str(args.cli_log_level).upper(),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    return int(args.func(args))


if __name__ == "__main__":
    raise SystemExit(main())
