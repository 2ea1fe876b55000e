from __future__ import annotations

import argparse
import logging
import os
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import replace
from pathlib import Path
from typing import Any

import psycopg2
from dotenv import load_dotenv

from coursecat_import.config.loader import ConfigError, ImportConfig, resolve_config
from coursecat_import.csvfile.reader import DELIMITERS, CsvImportReader, CsvReadError
from coursecat_import.db.store import CategoryStore, InMemoryCategoryStore, PostgresCategoryStore, StoreError
from coursecat_import.logging.init import log_summary, set_debug, setup_logging
from coursecat_import.models.import_policy import ImportMode, ImportPolicy, UpdateMode
from coursecat_import.models.processing_result import ImportResult
from coursecat_import.services.processor import ImportProcessor, ProcessingError
from coursecat_import.services.summary import render_summary_line
from coursecat_import.services.tracker import OutputMode, Tracker

"""CLI entrypoint for the course category uploader.

    python -m coursecat_import.cli -m createnew -f categories.csv

Flow:
- load .env (python-dotenv, override) and config/import.yml
- merge command line options over the config
- decode the CSV file
- connect to PostgreSQL, or fall back to the in-memory store (mock mode)
- run the import, print the per-row report and the SUMMARY line

Exit codes: 0 all rows imported, 2 some rows rejected, 1 fatal.
"""

EXIT_SUCCESS_ALL = 0
EXIT_PARTIAL_FAILURE = 2
EXIT_FATAL = 1

_TRUE_STRINGS = {"true", "1", "yes", "on", "y"}
_FALSE_STRINGS = {"false", "0", "no", "off", "n"}


def _parse_bool(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE_STRINGS:
        return True
    if lowered in _FALSE_STRINGS:
        return False
    raise argparse.ArgumentTypeError(f"expected true or false, got {value!r}")


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        prog="python -m coursecat_import.cli",
        description="Bulk import of course categories from a CSV file",
    )
    p.add_argument("-m", "--mode", help="Import mode: createnew, createall, createorupdate, update")
    p.add_argument(
        "-u", "--updatemode",
        help="Update mode: nothing (default), dataonly, dataordefaults, missingonly",
    )
    p.add_argument("-f", "--file", type=Path, help="CSV file")
    p.add_argument("-d", "--delimiter", help="CSV delimiter: comma (default), semicolon, colon, tab, cfg")
    p.add_argument("-e", "--encoding", help="CSV file encoding (default UTF-8)")
    # --allowdeletes 単体でも --allowdeletes=true でも可
    p.add_argument("--allowdeletes", nargs="?", const=True, type=_parse_bool, default=None,
                   help="Allow categories to be deleted")
    p.add_argument("--allowrenames", nargs="?", const=True, type=_parse_bool, default=None,
                   help="Allow categories to be renamed")
    p.add_argument("--standardise", nargs="?", const=True, type=_parse_bool, default=None,
                   help="Standardise category names: true (default) or false")
    p.add_argument("--createmissing", nargs="?", const=True, type=_parse_bool, default=None,
                   help="Create missing parent categories")
    p.add_argument("--config", type=Path, default=None, help="Config file (default config/import.yml)")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    p.add_argument("--quiet", action="store_true", help="Do not print the per-row report")
    return p.parse_args(argv)


def _merge_options(cfg: ImportConfig, args: argparse.Namespace) -> ImportConfig:
    """Command line options win over config values."""
    overrides: dict[str, Any] = {}
    for attr, value in (
        ("mode", args.mode),
        ("update_mode", args.updatemode),
        ("delimiter", args.delimiter),
        ("encoding", args.encoding),
        ("allow_deletes", args.allowdeletes),
        ("allow_renames", args.allowrenames),
        ("standardise", args.standardise),
        ("create_missing_parents", args.createmissing),
    ):
        if value is not None:
            overrides[attr] = value
    return replace(cfg, **overrides)


def build_policy(cfg: ImportConfig) -> ImportPolicy:
    """Turn merged options into the run policy.

    Raises:
        ValueError: invalid mode, or invalid update mode for a mode that updates
    """
    if not cfg.mode:
        raise ValueError("invalid import mode: mode is required")
    mode = ImportMode.from_option(cfg.mode)
    if mode in (ImportMode.CREATE_OR_UPDATE, ImportMode.UPDATE_ONLY):
        update_mode = UpdateMode.from_option(cfg.update_mode)
    else:
        # 作成専用モードでは update mode は使われない
        try:
            update_mode = UpdateMode.from_option(cfg.update_mode)
        except ValueError:
            update_mode = UpdateMode.NOTHING
    return ImportPolicy(
        mode=mode,
        update_mode=update_mode,
        allow_deletes=cfg.allow_deletes,
        allow_renames=cfg.allow_renames,
        standardise=cfg.standardise,
        create_missing=cfg.create_missing_parents,
        root_alias=cfg.root_alias,
        defaults=cfg.defaults,
    )


def _build_dsn(cfg: ImportConfig) -> str:
    """Resolve connection parameters.

    優先順位:
        1. DATABASE_URL / PGDSN (.env は main() 冒頭で上書き読み込み済み)
        2. 個別 PGHOST / PGPORT / PGUSER / PGPASSWORD / PGDATABASE
        3. config の database セクション
    """
    db_cfg = cfg.database
    dsn = os.getenv("DATABASE_URL") or os.getenv("PGDSN") or db_cfg.dsn
    if dsn:
        return dsn
    host = os.getenv("PGHOST", db_cfg.host or "localhost")
    port = os.getenv("PGPORT", str(db_cfg.port) if db_cfg.port else "5432")
    user = os.getenv("PGUSER", db_cfg.user or "postgres")
    password = os.getenv("PGPASSWORD", db_cfg.password or "")
    database = os.getenv("PGDATABASE", db_cfg.database or "postgres")
    dsn = f"host={host} port={port} user={user} dbname={database}"
    if password:
        dsn += f" password={password}"
    return dsn


@contextmanager
def _db_connection(cfg: ImportConfig) -> Iterator[Any]:  # pragma: no cover (thin wrapper)
    conn = psycopg2.connect(_build_dsn(cfg))
    try:
        yield conn
    finally:
        conn.close()


def _load_env_file(path: Path, override: bool = True) -> None:
    """Load .env using python-dotenv; .env values override the environment."""
    if path.exists():
        load_dotenv(dotenv_path=path, override=override)


def _import(
    reader: CsvImportReader,
    policy: ImportPolicy,
    store: CategoryStore,
    file_name: str,
    quiet: bool,
) -> ImportResult:
    processor = ImportProcessor(reader, policy, store, file_name=file_name)
    tracker = Tracker(OutputMode.NONE if quiet else OutputMode.PLAIN)
    return processor.execute(tracker)


def main(argv: list[str] | None = None) -> int:
    logger = setup_logging()

    # [] はそのまま使う (None のときだけ sys.argv を読む)
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    if args.debug:
        set_debug(logger)
        logger.debug("debug mode enabled")

    _load_env_file(Path(".env"), override=True)

    try:
        cfg = _merge_options(resolve_config(args.config), args)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    try:
        policy = build_policy(cfg)
    except ValueError as e:
        logger.error(str(e))
        return EXIT_FATAL

    if args.file is None or not args.file.is_file():
        logger.error(f"invalid csv file: {args.file}")
        return EXIT_FATAL
    if cfg.delimiter not in DELIMITERS:
        logger.error(f"invalid delimiter: {cfg.delimiter}")
        return EXIT_FATAL

    try:
        reader = CsvImportReader.from_path(args.file, delimiter=cfg.delimiter, encoding=cfg.encoding)
    except CsvReadError as e:
        logger.error(f"csv: {e}")
        return EXIT_FATAL
    if len(reader) == 0:
        logger.error(f"csvemptyfile: {args.file}")
        return EXIT_FATAL

    logger.info(
        f"Importing {len(reader)} rows from {args.file.name} "
        f"(mode={policy.mode.value} update_mode={policy.update_mode.value})"
    )

    # DB 接続制御: テスト等で無効化したい場合 DISABLE_DB_CONNECT=1
    disable_db = os.getenv("DISABLE_DB_CONNECT") == "1"
    db_mode = "mock"
    try:
        if disable_db:
            logger.debug("DB connect disabled via DISABLE_DB_CONNECT=1 -> mock mode")
            result = _import(reader, policy, InMemoryCategoryStore(), args.file.name, args.quiet)
        else:
            try:
                with _db_connection(cfg) as conn:
                    store = PostgresCategoryStore(conn)
                    store.ensure_schema()
                    db_mode = "live"
                    result = _import(reader, policy, store, args.file.name, args.quiet)
            except (psycopg2.Error, StoreError) as db_e:
                if db_mode == "live":
                    raise
                logger.info(f"DB connection failed -> fallback to mock mode: {db_e}")
                result = _import(reader, policy, InMemoryCategoryStore(), args.file.name, args.quiet)
    except ProcessingError as e:
        logger.error(f"processing: {e}")
        return EXIT_FATAL
    except (psycopg2.Error, StoreError) as e:
        logger.error(f"database: {e}")
        return EXIT_FATAL

    logger.info(f"mode={db_mode} total_rows={result.total}")

    summary_line = render_summary_line(result)
    # log_summary が "SUMMARY " を付与する
    log_summary(summary_line[len("SUMMARY "):])

    if result.errors > 0:
        return EXIT_PARTIAL_FAILURE
    return EXIT_SUCCESS_ALL


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
