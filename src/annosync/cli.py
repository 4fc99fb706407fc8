"""annosync CLI.

Subcommands:
  sync    -> send unsynced QA annotations to the sync endpoint
  status  -> count items and signatures already recorded as synced
  reset   -> clear sync records in scope (next sync resends everything)
  serve   -> run the sync endpoint (Flask development server)
  schema  -> write JSON Schemas for the sync request & response
"""

from __future__ import annotations

import argparse
import json
import os
from pathlib import Path
from typing import Any

from annosync.config import CONFIG_DEFAULT, DEFAULT_STATE_FILE, SyncSettings, load_config
from annosync.errors import AnnosyncError, classify_error
from annosync.logging import configure_logging
from annosync.pipeline import STATUS_ERROR, SyncReport, SyncRunner
from annosync.schemas import get_schemas
from annosync.source import JsonDocumentSource, JsonFileKeyValueStore
from annosync.sync_state import SyncStateTracker

_MAX_HELP_WIDTH = 100
EXIT_CONFIG_ERROR = 2


class _HelpFormatter(argparse.HelpFormatter):
    def __init__(self, prog: str) -> None:
        super().__init__(prog, max_help_position=30, width=_MAX_HELP_WIDTH)


class _FormatterArgumentParser(argparse.ArgumentParser):
    def __init__(self, *args: Any, **kwargs: Any) -> None:
        kwargs.setdefault("formatter_class", _HelpFormatter)
        super().__init__(*args, **kwargs)


def _add_scope_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--config", default=CONFIG_DEFAULT)
    parser.add_argument("--source", help="Override design snapshot JSON path")
    parser.add_argument("--state", help="Override sync record file path")
    parser.add_argument(
        "--all-pages", action="store_true", help="Scan every page, not only the current one"
    )
    parser.add_argument("--json", action="store_true", help="Print the run report as JSON")


def _build_parser() -> argparse.ArgumentParser:
    p = _FormatterArgumentParser(
        prog="annosync", description="Sync design QA annotations to GitHub issues"
    )
    p.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress informational logging (env: ANNOSYNC_QUIET=1)",
    )
    sub = p.add_subparsers(
        dest="cmd",
        required=True,
        parser_class=_FormatterArgumentParser,
        metavar="<command>",
    )

    ps = sub.add_parser("sync", help="Send unsynced annotations to the sync endpoint")
    _add_scope_args(ps)
    ps.add_argument(
        "--no-skip-synced",
        action="store_true",
        help="Resend annotations already recorded as synced",
    )
    ps.add_argument("--endpoint", help="Override sync endpoint URL")
    ps.add_argument("--repo", help="Override target repository (owner/repo)")

    pst = sub.add_parser("status", help="Show how many annotations are recorded as synced")
    _add_scope_args(pst)

    pr = sub.add_parser("reset", help="Clear sync records in scope")
    _add_scope_args(pr)

    srv = sub.add_parser("serve", help="Run the sync endpoint locally")
    srv.add_argument("--host")
    srv.add_argument("--port", type=int)
    srv.add_argument("--debug", action="store_true")

    sch = sub.add_parser("schema", help="Emit JSON Schema files")
    sch.add_argument("--output-dir", default=".")
    sch.add_argument("--stdout", action="store_true")
    return p


def _apply_overrides(settings: SyncSettings, args: argparse.Namespace, config_dir: Path) -> None:
    if getattr(args, "all_pages", False):
        settings.scan_all_pages = True
    if getattr(args, "no_skip_synced", False):
        settings.skip_synced = False
    if getattr(args, "endpoint", None):
        settings.endpoint = args.endpoint.strip()
    repo = getattr(args, "repo", None)
    if repo:
        owner, _, name = repo.partition("/")
        settings.owner, settings.repo = owner.strip(), name.strip()
    if getattr(args, "source", None):
        settings.source_file = Path(args.source)
    if getattr(args, "state", None):
        settings.state_file = Path(args.state)
    if settings.state_file is None:
        settings.state_file = config_dir / DEFAULT_STATE_FILE


def _build_runner(args: argparse.Namespace) -> SyncRunner:
    settings = load_config(args.config)
    _apply_overrides(settings, args, Path(args.config).parent)
    quiet = args.quiet or os.environ.get("ANNOSYNC_QUIET") == "1"
    configure_logging(
        json_logging=settings.logging_json_enabled,
        level="WARNING" if quiet else settings.logging_level,
        secrets=(settings.secret,) if settings.secret else (),
    )
    if settings.source_file is None:  # pragma: no cover - load_config always sets it
        raise AnnosyncError("No design snapshot configured")
    source = JsonDocumentSource.from_path(settings.source_file)
    assert settings.state_file is not None
    tracker = SyncStateTracker(JsonFileKeyValueStore(settings.state_file))
    progress = None if quiet else (lambda message: print(f"[annosync] {message}"))
    return SyncRunner(settings, source, tracker, progress=progress)


def _emit_report(report: SyncReport, as_json: bool) -> int:
    if as_json:
        print(json.dumps(report.to_dict(), indent=2))
    else:
        print(report.message)
    return 1 if report.status == STATUS_ERROR else 0


def _cmd_sync(args: argparse.Namespace) -> int:
    return _emit_report(_build_runner(args).sync(), args.json)


def _cmd_status(args: argparse.Namespace) -> int:
    return _emit_report(_build_runner(args).view_synced(), args.json)


def _cmd_reset(args: argparse.Namespace) -> int:
    return _emit_report(_build_runner(args).reset_synced(), args.json)


def _cmd_serve(args: argparse.Namespace) -> int:  # pragma: no cover - blocking server
    from annosync.server import run_server

    run_server(host=args.host, port=args.port, debug=args.debug)
    return 0


def _cmd_schema(args: argparse.Namespace) -> int:
    schemas = get_schemas()
    if args.stdout:
        print(json.dumps(schemas, indent=2))
        return 0
    out_dir = Path(args.output_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    for name, schema in schemas.items():
        target = out_dir / f"{name}.schema.json"
        target.write_text(json.dumps(schema, indent=2) + "\n", encoding="utf-8")
        print(f"[schema] wrote {target}")
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    handlers = {
        "sync": _cmd_sync,
        "status": _cmd_status,
        "reset": _cmd_reset,
        "serve": _cmd_serve,
        "schema": _cmd_schema,
    }
    handler = handlers.get(args.cmd)
    if handler is None:  # pragma: no cover - argparse enforces valid choices
        parser.print_help()
        return 1
    try:
        return handler(args)
    except AnnosyncError as exc:
        info = classify_error(exc)
        print(f"[annosync] error ({info.category}): {info.message}")
        return EXIT_CONFIG_ERROR


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
