#!/usr/bin/env python3
"""
Audit Desk -- command line front end over the audit stores.

Usage:
  python main.py list audits
  python main.py list corrective_actions --format csv
  python main.py show checklist_executions 1
  python main.py status
  python main.py dashboard
  python main.py clear audit_reports
  python main.py restore-defaults
  python main.py export-report 1 --format pdf --output report.pdf
  python main.py ingest checklist.csv findings.xlsx --format json
  python main.py whoami
  python main.py sample 250 10
  python main.py --storage memory:// list audit_types --no-color

Environment variables:
  STORAGE_URL   SQLAlchemy URL of the blob store (default: auditdesk.db next to the code).
                --storage overrides it.
  DEBUG         Set to true to run without a SECRET_KEY.
"""

import argparse
import logging
import random
import sys
from pathlib import Path
from typing import Optional

from auth.store import SessionStore
from core.config import get_settings
from core.export import render_report_pdf
from core.formatter import (
    disable_color,
    render_dashboard,
    render_record,
    render_sample,
    render_status,
    render_table,
    report_to_markdown,
    rows_to_csv,
    to_csv,
    to_json,
)
from core.sampling import draw_sample
from ingest.batch import ingest_paths
from storage.backend import KeyValueBackend, StorageError, open_backend
from stores.entities import STORE_NAMES, StoreRegistry, open_stores
from stores.views import dashboard_metrics


def _open(storage: Optional[str]) -> Optional[KeyValueBackend]:
    """Open the backend from --storage or settings. Prints and returns None on bad config."""
    if storage is None:
        try:
            storage = get_settings().storage_url
        except ValueError as e:
            print(f"  [!] Configuration error: {e}")
            print("      Pass --storage URL, or set DEBUG=true / SECRET_KEY in the environment.")
            return None
    try:
        return open_backend(storage)
    except StorageError as e:
        print(f"  [!] Storage error: {e}")
        return None


def _print_listing(records: list, output_format: str) -> None:
    if output_format == "json":
        print(to_json(records))
    elif output_format == "csv":
        print(to_csv(records), end="")
    else:
        print(render_table(records), end="")


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


def cmd_list(stores: StoreRegistry, args: argparse.Namespace) -> int:
    _print_listing(list(stores.by_name(args.store).list()), args.format)
    return 0


def cmd_show(stores: StoreRegistry, args: argparse.Namespace) -> int:
    record = stores.by_name(args.store).get(args.id)
    if record is None:
        print(f"  [!] No record {args.id} in {args.store}.")
        return 1
    print(to_json(record) if args.format == "json" else render_record(record))
    return 0


def cmd_status(stores: StoreRegistry, args: argparse.Namespace) -> int:
    descriptions = [store.describe() for store in stores.all().values()]
    if args.format == "json":
        print(to_json(descriptions))
    else:
        print(render_status(descriptions), end="")
    return 0


def cmd_dashboard(stores: StoreRegistry, args: argparse.Namespace) -> int:
    metrics = dashboard_metrics(stores.audits.list(), stores.executions.list(), stores.actions.list())
    print(to_json(metrics) if args.format == "json" else render_dashboard(metrics))
    return 0


def cmd_clear(stores: StoreRegistry, args: argparse.Namespace) -> int:
    stores.by_name(args.store).clear_all()
    print(f"  Cleared {args.store}.")
    return 0


def cmd_restore_defaults(stores: StoreRegistry, args: argparse.Namespace) -> int:
    skipped = stores.executions.deleted_ids()
    restored = stores.executions.restore_defaults()
    print(f"  Restored {len(restored)} default execution(s); {len(skipped)} deleted id(s) left out.")
    return 0


def cmd_export_report(stores: StoreRegistry, args: argparse.Namespace) -> int:
    report = stores.reports.get(args.id)
    if report is None:
        print(f"  [!] No report {args.id}.")
        return 1

    if args.report_format == "pdf":
        output = Path(args.output or f"report-{report.id}.pdf")
        output.write_bytes(render_report_pdf(report))
        print(f"  Wrote {output}")
        return 0

    text = report_to_markdown(report) if args.report_format == "markdown" else to_json(report)
    if args.output:
        Path(args.output).write_text(text, encoding="utf-8")
        print(f"  Wrote {args.output}")
    else:
        print(text)
    return 0


def cmd_sample(args: argparse.Namespace) -> int:
    rng = random.Random(args.seed) if args.seed is not None else None
    try:
        sample = draw_sample(args.population, args.percentage, rng=rng)
    except ValueError as e:
        print(f"  [!] {e}")
        return 2
    print(to_json(sample) if args.format == "json" else render_sample(sample))
    return 0


def cmd_whoami(sessions: SessionStore, args: argparse.Namespace) -> int:
    """Print the user of the persisted session (set by the last API login)."""
    user = sessions.load()
    if user is None:
        print("  Not signed in.")
        return 1
    if args.format == "json":
        print(to_json(user))
        return 0
    print(f"  {user.username}  {user.name} <{user.email}>")
    print(f"  role: {user.role.value}  permissions: {', '.join(user.permissions)}")
    return 0


def cmd_ingest(args: argparse.Namespace) -> int:
    try:
        max_bytes = get_settings().max_upload_bytes
    except ValueError as e:
        print(f"  [!] Configuration error: {e}")
        return 2
    batch = ingest_paths([Path(p) for p in args.files], max_bytes=max_bytes)
    table = batch.table()
    if args.format == "json":
        print(to_json(table))
    elif args.format == "csv":
        print(rows_to_csv(table), end="")
    else:
        for parsed in batch.files:
            outcome = f"{len(parsed.rows)} row(s)" if parsed.ok else f"error: {parsed.error}"
            print(f"  {parsed.filename:<40} {outcome}")
    if batch.errors:
        print(f"  [!] {len(batch.errors)} file(s) could not be ingested.", file=sys.stderr)
    return 1 if batch.errors else 0


_COMMANDS = {
    "list": cmd_list,
    "show": cmd_show,
    "status": cmd_status,
    "dashboard": cmd_dashboard,
    "clear": cmd_clear,
    "restore-defaults": cmd_restore_defaults,
    "export-report": cmd_export_report,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="audit-desk",
        description="Manage audit types, audits, checklists, corrective actions and reports.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py list audits
  python main.py list corrective_actions --format csv > actions.csv
  python main.py show audit_reports 1 --format json
  python main.py export-report 1 --format markdown --output report.md
  python main.py --storage sqlite:///demo.db status
        """,
    )
    parser.add_argument(
        "--storage",
        metavar="URL",
        help="Storage URL (memory:// or a SQLAlchemy URL). Overrides STORAGE_URL.",
    )
    parser.add_argument(
        "--no-color",
        action="store_true",
        help="Disable ANSI color codes in terminal output",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Log store activity to stderr",
    )
    sub = parser.add_subparsers(dest="command", metavar="COMMAND")

    def _format_option(p: argparse.ArgumentParser, choices: tuple[str, ...]) -> None:
        p.add_argument(
            "--format",
            choices=choices,
            default="table",
            help=f"Output format: {', '.join(choices)} (default: table)",
        )

    p = sub.add_parser("list", help="List every record of a store")
    p.add_argument("store", choices=STORE_NAMES)
    _format_option(p, ("table", "json", "csv"))

    p = sub.add_parser("show", help="Show one record in full")
    p.add_argument("store", choices=STORE_NAMES)
    p.add_argument("id", type=int)
    _format_option(p, ("table", "json"))

    p = sub.add_parser("status", help="Show store state, record counts and the deletion ledger")
    _format_option(p, ("table", "json"))

    p = sub.add_parser("dashboard", help="Show audit, finding and corrective action metrics")
    _format_option(p, ("table", "json"))

    p = sub.add_parser("clear", help="Delete every record of a store (it reseeds on next start)")
    p.add_argument("store", choices=STORE_NAMES)

    sub.add_parser("restore-defaults", help="Restore built-in executions that were not deleted")

    p = sub.add_parser("export-report", help="Export one report as PDF, Markdown or JSON")
    p.add_argument("id", type=int)
    p.add_argument("--format", dest="report_format", choices=("pdf", "markdown", "json"), default="pdf")
    p.add_argument("--output", metavar="PATH", help="Output file (PDF default: report-<id>.pdf)")

    p = sub.add_parser("sample", help="Draw a random sample of element numbers from 1..POPULATION")
    p.add_argument("population", type=int)
    p.add_argument("percentage", type=float, help="Share of the population to sample, 0 < p <= 100")
    p.add_argument("--seed", type=int, help="Seed the random generator for a repeatable draw")
    _format_option(p, ("table", "json"))

    p = sub.add_parser("whoami", help="Show the user of the persisted login session")
    _format_option(p, ("table", "json"))

    p = sub.add_parser("ingest", help="Parse documents and print the consolidated table")
    p.add_argument("files", nargs="+", metavar="FILE")
    _format_option(p, ("table", "json", "csv"))

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.no_color:
        disable_color()
    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)-5s %(name)s %(message)s")

    if args.command is None:
        parser.print_help()
        return 0

    # Ingestion and sampling never touch the stores.
    if args.command == "ingest":
        return cmd_ingest(args)
    if args.command == "sample":
        return cmd_sample(args)

    backend = _open(args.storage)
    if backend is None:
        return 2
    try:
        if args.command == "whoami":
            return cmd_whoami(SessionStore(backend), args)
        return _COMMANDS[args.command](open_stores(backend), args)
    finally:
        backend.close()


if __name__ == "__main__":
    sys.exit(main())
