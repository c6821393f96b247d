from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

import psycopg2
from dotenv import load_dotenv

from ..config.loader import DEFAULT_CONFIG_PATH, ConfigError, load_config
from ..db.batch_upsert import BatchExecutionFailure
from ..db.connection import db_cursor
from ..db.schema import create_tables
from ..errors import IngestError
from ..excel.reader import read_upload
from ..logging.error_log import ErrorLogBuffer
from ..logging.init import log_summary, setup_logging
from ..records.registry import RecordKind, resolve_kind
from ..services.pipeline import ingest_upload
from ..services.summary import render_summary_line

"""CLI entrypoint: ingest one uploaded lead spreadsheet.

    python -m leadingest.cli FILE --kind {mca,iec,gst} [--config PATH]
        [--dry-run] [--init-db] [--inspect-data] [--debug]

Exit codes: 0 success, 1 fatal before any write, 2 batch failure after
earlier batches were committed.
"""

EXIT_SUCCESS = 0
EXIT_FATAL = 1
EXIT_PARTIAL_FAILURE = 2


def _load_env_file(path: Path, override: bool = True) -> None:
    """Load ``.env`` so its database settings win over the process environment."""
    if path.exists():
        load_dotenv(dotenv_path=path, override=override)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    kinds = "|".join(k.value for k in RecordKind)
    p = argparse.ArgumentParser(description="Spreadsheet lead ingestion into PostgreSQL")
    p.add_argument("file", type=Path, help="uploaded .xlsx / .xls / .csv file")
    p.add_argument("--kind", required=True, help=f"record kind ({kinds})")
    p.add_argument("--config", type=Path, default=None, help=f"config file (default {DEFAULT_CONFIG_PATH})")
    p.add_argument("--dry-run", action="store_true", help="Validate and transform without touching the database")
    p.add_argument("--init-db", action="store_true", help="Create destination tables if missing before ingesting")
    p.add_argument("--inspect-data", action="store_true", help="Print sheet headers & first rows then exit")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    return p.parse_args(argv)


def _inspect_data(content: bytes, filename: str, null_sentinels) -> int:
    sheet = read_upload(content, filename, null_sentinels=null_sentinels)
    print(f"FILE: {filename} sheet={sheet.sheet_name} rows={len(sheet.rows)}")
    print(f"  cols={sheet.columns}")
    for r in sheet.rows[:3]:
        print("  row=", {k: (v.isoformat() if hasattr(v, "isoformat") else v) for k, v in r.items()})
    return EXIT_SUCCESS


def main(argv: list[str] | None = None) -> int:
    logger = setup_logging()

    # None only: an explicit [] from tests must not pick up pytest's argv
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    if args.debug:
        setup_logging(debug=True)
        logger.debug("debug mode enabled")

    _load_env_file(Path(".env"), override=True)
    try:
        cfg = load_config(args.config or DEFAULT_CONFIG_PATH, required=args.config is not None)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    try:
        kind = resolve_kind(args.kind)
    except IngestError as e:
        logger.error(f"kind: {e}")
        return EXIT_FATAL

    path: Path = args.file
    if not path.is_file():
        logger.error(f"file not found: {path}")
        return EXIT_FATAL
    content = path.read_bytes()

    if args.inspect_data:
        try:
            return _inspect_data(content, path.name, cfg.null_sentinels)
        except IngestError as e:
            logger.error(f"inspect: {e}")
            return EXIT_FATAL

    error_log = ErrorLogBuffer(cfg.logs_directory)
    options = dict(
        batch_size=cfg.batch_size,
        null_sentinels=cfg.null_sentinels,
        max_upload_bytes=cfg.max_upload_bytes,
        error_log=error_log,
    )
    exit_code = EXIT_SUCCESS
    result = None
    try:
        if args.dry_run:
            logger.info("dry run: database writes disabled")
            result = ingest_upload(content, path.name, kind, cursor=None, **options)
        else:
            with db_cursor(cfg.database) as cur:
                if args.init_db:
                    created = create_tables(cur)
                    logger.info(f"init-db: {created} table statements applied")
                result = ingest_upload(content, path.name, kind, cursor=cur, **options)
    except BatchExecutionFailure as e:
        logger.error(f"upload partially applied: {e}")
        exit_code = EXIT_PARTIAL_FAILURE
    except IngestError as e:
        logger.error(f"upload rejected: {e}")
        exit_code = EXIT_FATAL
    except psycopg2.Error as e:
        logger.error(f"database: {e}")
        exit_code = EXIT_FATAL
    finally:
        counts = error_log.counts_by_type()
        written = error_log.flush()
        if written is not None:
            detail = " ".join(f"{k}={v}" for k, v in sorted(counts.items()))
            logger.info(f"error log written: {written} ({detail})")

    if result is not None:
        logger.info(json.dumps(result.to_payload()))
        # log_summary adds the "SUMMARY " label itself
        log_summary(render_summary_line(result)[len("SUMMARY "):])
    return exit_code
