"""
QuickFolio CLI — database bootstrap, server and export commands.

Commands:
- quickfolio init     — Create the files/folios tables
- quickfolio serve    — Start the API server (uvicorn)
- quickfolio seed     — Insert sample folios and files (idempotent)
- quickfolio export   — Write files or folios to CSV
"""

from __future__ import annotations

import argparse
import logging
import os
from typing import Optional

logger = logging.getLogger("quickfolio.cli")


SAMPLE_FOLIOS = [
    {
        "item": "KeNHA/03.E/R&I/VOL.1",
        "running_no": "1",
        "description": "Research proposals and innovation projects in infrastructure development.",
        "drafted_by": "Kelvin Mwangi",
        "letter_date": "2024-01-15T09:00:00Z",
    },
    {
        "item": "KeNHA/03.E/KM/VOL.1",
        "running_no": "2",
        "description": "Institutional knowledge, policies and procedures.",
        "drafted_by": "Kelvin Mwangi",
        "letter_date": "2024-02-20T09:00:00Z",
    },
    {
        "item": "KeNHA/03.E/BD/VOL.1",
        "running_no": "3",
        "description": "Partnership frameworks and market expansion strategies.",
        "drafted_by": "Kelvin Mwangi",
        "letter_date": "2024-03-05T09:00:00Z",
    },
]

SAMPLE_FILES = [
    {
        "name": "Research & Innovation",
        "folio_number": "KeNHA/03.E/R&I/VOL.1",
        "description": "Research proposals, innovation projects and technological advancements "
                       "in infrastructure development.",
        "created_by": "Kelvin Mwangi",
    },
    {
        "name": "Knowledge Management",
        "folio_number": "KeNHA/03.E/KM/VOL.1",
        "description": "Centralized repository of institutional knowledge, best practices, "
                       "policies and procedures.",
        "created_by": "Kelvin Mwangi",
    },
    {
        "name": "Business Development",
        "folio_number": "KeNHA/03.E/BD/VOL.1",
        "description": "Strategic business development initiatives and partnership frameworks.",
        "created_by": "Kelvin Mwangi",
    },
]


def main(argv: Optional[list] = None) -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="quickfolio",
        description="QuickFolio — Files and Folios records",
    )
    parser.add_argument(
        "--config", default=None, help="Path to quickfolio.yaml (default: auto-discover)"
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # quickfolio init
    subparsers.add_parser("init", help="Create database tables")

    # quickfolio serve
    serve_parser = subparsers.add_parser("serve", help="Start the API server")
    serve_parser.add_argument("--host", help="Host to bind (default: api.host from config)")
    serve_parser.add_argument("--port", type=int, help="Port to bind (default: api.port from config)")

    # quickfolio seed
    subparsers.add_parser("seed", help="Insert sample folios and files")

    # quickfolio export
    export_parser = subparsers.add_parser("export", help="Export records to CSV")
    export_parser.add_argument("entity", choices=["files", "folios"], help="Records to export")
    export_parser.add_argument("--search", help="Free-text search term")
    export_parser.add_argument("--sort", help="Field to sort by (e.g. item, createdAt)")
    export_parser.add_argument("--desc", action="store_true", help="Sort descending")
    export_parser.add_argument("--output", "-o", help="Output path (default: generated filename)")

    args = parser.parse_args(argv)

    if args.command == "init":
        return cmd_init(args)
    elif args.command == "serve":
        return cmd_serve(args)
    elif args.command == "seed":
        return cmd_seed(args)
    elif args.command == "export":
        return cmd_export(args)
    else:
        parser.print_help()
        return 0


def _load(args: argparse.Namespace):
    from quickfolio.engine.config import load_config
    from quickfolio.engine.logging import configure_logging

    config = load_config(args.config)
    configure_logging(config.logging.level)
    return config


def _init_database(config, create_tables: Optional[bool] = None) -> None:
    from quickfolio.db.session import init_db

    init_db(
        config.database.url,
        create_tables=config.database.create_tables if create_tables is None else create_tables,
        pool_size=config.database.pool_size,
        max_overflow=config.database.max_overflow,
        pool_timeout=config.database.pool_timeout,
        pool_recycle=config.database.pool_recycle,
        pool_pre_ping=config.database.pool_pre_ping,
    )


def cmd_init(args: argparse.Namespace) -> int:
    """Create the files and folios tables."""
    from quickfolio.db.session import close_all_sessions
    from quickfolio.engine.errors import QuickFolioConfigError

    try:
        config = _load(args)
    except QuickFolioConfigError as e:
        print(f"[ERROR] {e.message}")
        return 1

    from sqlalchemy.exc import SQLAlchemyError

    try:
        _init_database(config, create_tables=True)
        print(f"[OK] Database tables ready ({config.database.url})")
        return 0
    except SQLAlchemyError as e:
        print(f"[ERROR] Failed to create tables: {e}")
        return 1
    finally:
        close_all_sessions()


def cmd_serve(args: argparse.Namespace) -> int:
    """Start the API server with uvicorn."""
    import uvicorn

    from quickfolio.api.server import create_app

    config = _load(args)
    host = args.host or config.api.host
    port = args.port or config.api.port

    print(f"Starting QuickFolio API on http://{host}:{port}")
    try:
        uvicorn.run(create_app(config), host=host, port=port, log_level=config.logging.level.lower())
    except KeyboardInterrupt:
        print("\nServer stopped.")
    return 0


def cmd_seed(args: argparse.Namespace) -> int:
    """
    Insert sample folios, then files attached to them.

    Existing folio items and file names are skipped; a file whose folio is
    missing is skipped as well.
    """
    from quickfolio.db.session import close_all_sessions, session_scope
    from quickfolio.engine.errors import QuickFolioError
    from quickfolio.records.schemas import parse_iso_datetime
    from quickfolio.services.records import FileService, FolioService

    config = _load(args)
    _init_database(config)

    folios = FolioService()
    files = FileService(folio_service=folios)
    created = 0

    try:
        with session_scope() as session:
            for sample in SAMPLE_FOLIOS:
                if folios.get_by_item(sample["item"], session=session) is not None:
                    print(f"[SKIP] Folio already exists: {sample['item']}")
                    continue
                data = dict(sample, letter_date=parse_iso_datetime(sample["letter_date"]))
                folios.create(data, session=session)
                created += 1
                print(f"[OK] Created folio: {sample['item']}")

            for sample in SAMPLE_FILES:
                data = dict(sample)
                folio_number = data.pop("folio_number")
                if files.get_by("name", data["name"], session=session) is not None:
                    print(f"[SKIP] File already exists: {data['name']}")
                    continue
                if folios.get_by_item(folio_number, session=session) is None:
                    print(f"[SKIP] Folio not found for file {data['name']}: {folio_number}")
                    continue
                files.create_with_folio(data, folio_number, session=session)
                created += 1
                print(f"[OK] Created file: {data['name']}")
    except QuickFolioError as e:
        print(f"[ERROR] Seeding failed: {e.message}")
        return 1
    finally:
        close_all_sessions()

    print(f"Seeding complete ({created} records created)")
    return 0


def cmd_export(args: argparse.Namespace) -> int:
    """Export the datastore's files or folios to a CSV file."""
    from quickfolio.db.session import close_all_sessions, session_scope
    from quickfolio.engine.logging import log, log_export
    from quickfolio.services.records import FileService, FolioService
    from quickfolio.table.columns import EntityType
    from quickfolio.table.export import export_filename, write_csv
    from quickfolio.table.sorting import ASC, DESC
    from quickfolio.table.view import RecordTable

    config = _load(args)
    _init_database(config)

    entity = EntityType.FILE if args.entity == "files" else EntityType.FOLIO
    service = FileService() if entity is EntityType.FILE else FolioService()

    try:
        with session_scope() as session:
            records = [r.to_dict() for r in service.list(session=session)]
    finally:
        close_all_sessions()

    table = RecordTable(records, entity, date_format=config.export.date_format)
    table.set_search(args.search)
    if args.sort:
        table.sort_by(args.sort, DESC if args.desc else ASC)

    rows = table.export_subset()
    filename = export_filename(entity)
    path = args.output or os.path.join(config.export.directory, filename)
    count = write_csv(path, rows, table.columns, config.export.date_format)
    log(log_export(entity.plural, os.path.basename(path), count))

    print(f"[OK] Exported {count} {entity.plural} to {path}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
