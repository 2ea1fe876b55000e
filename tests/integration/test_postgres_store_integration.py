from __future__ import annotations

import os

import psycopg2
import pytest

from coursecat_import.csvfile.reader import CsvImportReader
from coursecat_import.db.store import PostgresCategoryStore
from coursecat_import.logging.error_log import ErrorLogBuffer
from coursecat_import.models.import_policy import ImportMode, ImportPolicy, UpdateMode
from coursecat_import.services.processor import ImportProcessor

"""Run against a real PostgreSQL (skipped unless COURSECAT_TEST_DSN is set).

The table is created in a throwaway schema that is dropped afterwards.
"""

DSN = os.getenv("COURSECAT_TEST_DSN")

pytestmark = pytest.mark.skipif(not DSN, reason="COURSECAT_TEST_DSN not set (requires PostgreSQL)")


@pytest.fixture()
def pg_store():
    conn = psycopg2.connect(DSN)
    with conn, conn.cursor() as cur:
        cur.execute("CREATE SCHEMA IF NOT EXISTS coursecat_test")
        cur.execute("SET search_path TO coursecat_test")
    store = PostgresCategoryStore(conn)
    store.ensure_schema()
    try:
        yield store
    finally:
        with conn, conn.cursor() as cur:
            cur.execute("DROP SCHEMA coursecat_test CASCADE")
        conn.close()


def test_import_create_rename_delete(pg_store, tmp_path):
    reader = CsvImportReader(
        columns=["name", "idnumber", "oldname", "deleted"],
        rows=[
            ["Science/Physics", "1", "", ""],
            ["Natural Science", "", "Science", ""],
            ["Natural Science/Physics", "", "", "1"],
        ],
    )
    policy = ImportPolicy(
        mode=ImportMode.CREATE_OR_UPDATE,
        update_mode=UpdateMode.DATA_ONLY,
        allow_deletes=True,
        allow_renames=True,
        create_missing=True,
    )
    result = ImportProcessor(reader, policy, pg_store, error_log=ErrorLogBuffer(tmp_path)).execute()
    assert (result.created, result.updated, result.deleted, result.errors) == (1, 1, 1, 0)
    science = pg_store.find_one("natural science", 0)
    assert science is not None
    assert pg_store.find_one("Physics", science.id) is None
    assert not pg_store.exists_by_idnumber("1")
