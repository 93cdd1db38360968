#!/usr/bin/env python3
"""
Export, import or clone a fiscal year from the command line.

Settings come from --settings (or $BUDGET_SETTINGS_FILE) with the usual
$DATABASE_URL / $BUDGET_LOG_LEVEL overrides.  Each command runs in one
transaction: it commits on success and rolls back on a fatal error.

Usage:
    python -m scripts.fy_transfer [--settings FILE] [--actor NAME] <command> ...

Examples:
    # Write a snapshot of one fiscal year
    python -m scripts.fy_transfer export --fiscal-year-id <uuid> --output fy.json

    # Load that snapshot into a fiscal year of another store
    DATABASE_URL=postgresql://... python -m scripts.fy_transfer \\
        import --rc-id <uuid> --fiscal-year-id <uuid> --input fy.json

    # Clone a fiscal year next to itself, or into another centre
    python -m scripts.fy_transfer clone --rc-id <uuid> --fiscal-year-id <uuid> \\
        --name "FY 2026-2027" [--target-rc-id <uuid>]

Exit status:
    0  success
    1  fatal error (nothing written)
    2  import finished with per-item errors
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from uuid import NAMESPACE_OID, UUID, uuid5

EXIT_OK = 0
EXIT_FATAL = 1
EXIT_PARTIAL = 2


def actor_id_for(value: str) -> UUID:
    """Actor UUID as given, or a stable UUID derived from a user name."""
    try:
        return UUID(value)
    except ValueError:
        return uuid5(NAMESPACE_OID, f"budget-actor:{value}")


def _uuid(value: str) -> UUID:
    try:
        return UUID(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"not a UUID: {value!r}") from exc


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="fy_transfer",
        description="Export, import or clone a fiscal-year budget.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "--settings",
        type=Path,
        default=None,
        help="YAML settings file (default: $BUDGET_SETTINGS_FILE, then built-in defaults).",
    )
    parser.add_argument(
        "--actor",
        default="fy_transfer",
        help="Acting user: a UUID or a user name (default: fy_transfer).",
    )
    parser.add_argument(
        "--create-tables",
        action="store_true",
        help="Create missing tables before running (fresh databases only).",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    export = commands.add_parser("export", help="Write a fiscal year to a snapshot file.")
    export.add_argument("--fiscal-year-id", type=_uuid, required=True)
    export.add_argument(
        "--output",
        default="-",
        help="Snapshot file to write ('-' for stdout, the default).",
    )

    imp = commands.add_parser("import", help="Load a snapshot into a fiscal year.")
    imp.add_argument("--rc-id", type=_uuid, required=True)
    imp.add_argument("--fiscal-year-id", type=_uuid, required=True)
    imp.add_argument("--input", type=Path, required=True, help="Snapshot file to read.")

    clone = commands.add_parser("clone", help="Copy a fiscal year inside this store.")
    clone.add_argument("--rc-id", type=_uuid, required=True)
    clone.add_argument("--fiscal-year-id", type=_uuid, required=True)
    clone.add_argument("--name", required=True, help="Name of the new fiscal year.")
    clone.add_argument(
        "--target-rc-id",
        type=_uuid,
        default=None,
        help="Centre to clone into (default: the source centre).",
    )
    return parser


def _run_export(service, args, actor: str) -> int:
    from budget_duplication.snapshot.codec import dumps

    snapshot = service.export_fiscal_year(args.fiscal_year_id, exported_by=actor)
    text = dumps(snapshot)
    if args.output == "-":
        print(text)
    else:
        Path(args.output).write_text(text, encoding="utf-8")
        print(f"Exported fiscal year {args.fiscal_year_id} to {args.output}")
    return EXIT_OK


def _run_import(service, args, actor_id: UUID) -> int:
    from budget_duplication.snapshot.codec import loads

    snapshot = loads(args.input.read_bytes())
    result = service.import_snapshot(args.rc_id, args.fiscal_year_id, snapshot, actor_id)
    print(result.summary())
    for error in result.errors:
        position = "-" if error.position is None else error.position
        print(
            f"  {error.kind.value}[{position}] {error.label}: "
            f"{error.code}: {error.message}"
        )
    skipped = sum(result.skipped.values())
    if skipped:
        print(f"  {skipped} file(s) skipped: no content in snapshot")
    return EXIT_OK if result.is_complete else EXIT_PARTIAL


def _run_clone(service, args, actor_id: UUID) -> int:
    fiscal_year = service.clone_fiscal_year(
        args.rc_id,
        args.fiscal_year_id,
        args.name,
        actor_id,
        target_rc_id=args.target_rc_id,
    )
    print(f"Cloned fiscal year {args.fiscal_year_id} as {fiscal_year.get('name')!r} ({fiscal_year.id})")
    return EXIT_OK


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)

    # Lazy imports so argument errors fail fast
    from budget_kernel.config import load_settings
    from budget_kernel.db.engine import create_tables, init_engine_from_url, session_scope
    from budget_kernel.exceptions import BudgetKernelError
    from budget_kernel.logging_config import configure_logging
    from budget_duplication.service import DuplicationService

    try:
        settings = load_settings(args.settings)
    except BudgetKernelError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return EXIT_FATAL

    configure_logging(level=settings.log_level_number)
    init_engine_from_url(settings.database_url, echo=settings.echo_sql)
    if args.create_tables:
        create_tables()

    actor_id = actor_id_for(args.actor)
    try:
        with session_scope() as session:
            service = DuplicationService(session, settings)
            if args.command == "export":
                return _run_export(service, args, args.actor)
            if args.command == "import":
                return _run_import(service, args, actor_id)
            return _run_clone(service, args, actor_id)
    except BudgetKernelError as exc:
        print(f"ERROR [{exc.code}]: {exc}", file=sys.stderr)
        return EXIT_FATAL
    except OSError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return EXIT_FATAL


if __name__ == "__main__":
    sys.exit(main())
