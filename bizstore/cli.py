"""
Name: bizstore command line

Responsibilities:
  - Operator entry points over the core: backup / restore, export / import,
    audit export / prune / stats, collection stats, seeding
  - Ask for confirmation before destructive restores (unless --yes)
  - Map results and BizStoreError to exit codes

Collaborators:
  - bizstore.container (services)
  - bizstore.context.set_actor (audit attribution)
"""

from __future__ import annotations

import argparse
import json
import os
import sys
from pathlib import Path
from typing import Any, Sequence

from . import container
from .application.collection_stats import (
    archive_candidates,
    collection_statistics,
    collection_trends,
)
from .context import clear_context, set_actor
from .crosscutting.config import get_settings
from .crosscutting.exceptions import BizStoreError
from .crosscutting.logger import logger
from .domain.audit import Actor


def _print_json(payload: Any) -> None:
    print(json.dumps(payload, indent=2, ensure_ascii=False, default=str))


def _confirm(prompt: str) -> bool:
    answer = input(f"{prompt} [y/N]: ").strip().lower()
    return answer in {"y", "yes"}


def _parse_ids(raw: Sequence[str] | None) -> list[Any] | None:
    if raw is None:
        return None
    return [int(value) if value.isdigit() else value for value in raw]


def _build_parser() -> argparse.ArgumentParser:
    settings = get_settings()
    parser = argparse.ArgumentParser(
        prog="bizstore",
        description="Local persistence and audit tooling for the admin back office.",
    )
    parser.add_argument("--actor-id", default="cli", help="Actor id for audit entries")
    parser.add_argument(
        "--actor-name", default=os.getenv("USER") or "cli", help="Actor name for audit entries"
    )
    parser.add_argument("--actor-email", default="", help="Actor email for audit entries")
    sub = parser.add_subparsers(dest="command", required=True)

    p_backup = sub.add_parser("backup", help="Write admin_backup_<date>.json")
    p_backup.add_argument("--dir", default=settings.export_dir)

    p_restore = sub.add_parser("restore", help="Restore a backup file (destructive)")
    p_restore.add_argument("file", type=Path)
    p_restore.add_argument("--yes", action="store_true", help="Skip confirmation")

    p_restore_auto = sub.add_parser("restore-auto", help="Restore the last auto-backup")
    p_restore_auto.add_argument("--yes", action="store_true", help="Skip confirmation")

    sub.add_parser("auto-backup", help="Take an auto-backup now")

    p_export = sub.add_parser("export", help="Export a collection")
    p_export.add_argument("collection")
    p_export.add_argument("--format", choices=["json", "csv"], default="json")
    p_export.add_argument("--dir", default=settings.export_dir)
    p_export.add_argument("--ids", nargs="+", help="Only these record ids")

    p_import = sub.add_parser("import", help="Import a .json or .csv file")
    p_import.add_argument("collection")
    p_import.add_argument("file", type=Path)

    p_stats = sub.add_parser("stats", help="Collection statistics")
    p_stats.add_argument("collection")
    p_stats.add_argument("--days", type=int, default=30, help="Trend window")
    p_stats.add_argument("--archive-days", type=int, default=365)

    sub.add_parser("seed", help="Write seed records for empty collections")
    sub.add_parser("collections", help="Registered collections and record counts")

    p_audit = sub.add_parser("audit", help="Audit log tools")
    audit_sub = p_audit.add_subparsers(dest="audit_command", required=True)

    p_audit_export = audit_sub.add_parser("export", help="Write audit_log_<date>.csv")
    p_audit_export.add_argument("--dir", default=settings.export_dir)
    p_audit_export.add_argument("--action")
    p_audit_export.add_argument("--target-type")
    p_audit_export.add_argument("--actor")
    p_audit_export.add_argument("--start-date")
    p_audit_export.add_argument("--end-date")
    p_audit_export.add_argument("--search")

    p_audit_prune = audit_sub.add_parser("prune", help="Drop entries older than N days")
    p_audit_prune.add_argument("--days", type=int, default=settings.audit_retention_days)

    audit_sub.add_parser("stats", help="Audit statistics")

    return parser


def _run(args: argparse.Namespace) -> int:
    if args.command == "backup":
        path = container.get_backup_service().write_backup_file(args.dir)
        print(path)
        return 0

    if args.command in {"restore", "restore-auto"}:
        if not args.yes and not _confirm("This will replace all current data. Continue?"):
            print("Restore cancelled.")
            return 1
        backup = container.get_backup_service()
        if args.command == "restore":
            result = backup.restore_backup(args.file.read_text(encoding="utf-8"))
        else:
            result = backup.restore_auto_backup()
        _print_json(result.to_dict())
        return 0 if result.success else 1

    if args.command == "auto-backup":
        return 0 if container.get_backup_service().perform_auto_backup() else 1

    if args.command == "export":
        path = container.get_bulk_service().write_export_file(
            args.collection, args.dir, args.format, _parse_ids(args.ids)
        )
        print(path if path is not None else "Nothing to export.")
        return 0

    if args.command == "import":
        text = args.file.read_text(encoding="utf-8")
        bulk = container.get_bulk_service()
        if args.file.suffix.lower() == ".csv":
            result = bulk.import_from_csv(args.collection, text)
        else:
            result = bulk.import_from_json(args.collection, text)
        _print_json(result.to_dict())
        return 0 if result.success else 1

    if args.command == "stats":
        records = container.get_repository(args.collection).list()
        _print_json(
            {
                "statistics": collection_statistics(records),
                "trends": collection_trends(records, args.days),
                "archiveCandidates": len(archive_candidates(records, args.archive_days)),
                "storage": container.get_store().stats(),
            }
        )
        return 0

    if args.command == "seed":
        _print_json({"seeded": container.seed_defaults()})
        return 0

    if args.command == "collections":
        _print_json(
            {
                name: len(container.get_repository(name).list())
                for name in container.get_registry().names()
            }
        )
        return 0

    audit = container.get_audit_log()
    if args.audit_command == "export":
        path = audit.write_csv_file(
            args.dir,
            action=args.action,
            target_type=args.target_type,
            actor_id=args.actor,
            start_date=args.start_date,
            end_date=args.end_date,
            search=args.search,
        )
        print(path)
        return 0
    if args.audit_command == "prune":
        _print_json({"removed": audit.clear_old_entries(args.days)})
        return 0
    _print_json(audit.get_statistics().to_dict())
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)

    set_actor(
        Actor(
            id=args.actor_id,
            name=args.actor_name,
            email=args.actor_email,
            origin="cli",
        )
    )
    try:
        return _run(args)
    except BizStoreError as exc:
        logger.error(
            "Comando falló",
            extra={"command": args.command, "error_code": exc.error_code, "error_id": exc.error_id},
        )
        print(json.dumps(exc.to_response().to_dict(), ensure_ascii=False), file=sys.stderr)
        return 1
    except OSError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    finally:
        clear_context()


if __name__ == "__main__":
    sys.exit(main())
