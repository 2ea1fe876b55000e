from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import replace
from typing import Any, Protocol

import psycopg2
from psycopg2.extras import RealDictCursor

from ..models.category import PERSISTED_FIELDS, ROOT_ID, CategoryEntity

"""Category store: the only place that reads or writes persisted categories.

Two implementations share the CategoryStore protocol:
- InMemoryCategoryStore: mock mode (no DB connection) and tests
- PostgresCategoryStore: psycopg2 connection, table `course_categories`

Name lookups are case-insensitive and ignore surrounding whitespace. Any
failure of a write is reported as StoreError; callers decide whether it is
fatal.
"""

__all__ = [
    "StoreError",
    "CategoryStore",
    "InMemoryCategoryStore",
    "PostgresCategoryStore",
    "persisted_values",
]

TABLE = "course_categories"
_COLUMNS = ("id", "name", "parent", "idnumber", "description", "visible", "theme")


class StoreError(Exception):
    pass


class CategoryStore(Protocol):
    def find_one(self, name: str, parent_id: int) -> CategoryEntity | None: ...

    def exists_by_idnumber(self, idnumber: str) -> bool: ...

    def create(self, fields: Mapping[str, Any]) -> CategoryEntity: ...

    def update(self, category_id: int, fields: Mapping[str, Any]) -> CategoryEntity: ...

    def delete_recursive(self, category_id: int) -> None: ...


def _name_key(name: str) -> str:
    return name.strip().lower()


def persisted_values(fields: Mapping[str, Any]) -> dict[str, Any]:
    """Keep only stored columns (drops directives such as deleted / oldname and id)."""
    values = {k: fields[k] for k in PERSISTED_FIELDS if k in fields}
    if "parent" in fields:
        values["parent"] = int(fields["parent"])
    if values.get("idnumber") == "":
        values["idnumber"] = None
    return values


class InMemoryCategoryStore:
    """Dict backed store with the same constraints as the SQL table.

    - idnumber unique (None allowed many times)
    - parent must be ROOT_ID or an existing category
    """

    def __init__(self, categories: Iterable[CategoryEntity] = ()) -> None:
        self._rows: dict[int, CategoryEntity] = {}
        self._next_id = 1
        for cat in categories:
            self._rows[cat.id] = cat
            self._next_id = max(self._next_id, cat.id + 1)

    def get(self, category_id: int) -> CategoryEntity | None:
        return self._rows.get(category_id)

    def all(self) -> list[CategoryEntity]:
        return sorted(self._rows.values(), key=lambda c: c.id)

    def __len__(self) -> int:
        return len(self._rows)

    def find_one(self, name: str, parent_id: int) -> CategoryEntity | None:
        key = _name_key(name)
        for cat in self.all():
            if cat.parent == parent_id and _name_key(cat.name) == key:
                return cat
        return None

    def exists_by_idnumber(self, idnumber: str) -> bool:
        return any(c.idnumber == idnumber for c in self._rows.values())

    def _check(self, values: Mapping[str, Any], category_id: int | None = None) -> None:
        parent = values.get("parent")
        if parent is not None and parent != ROOT_ID and parent not in self._rows:
            raise StoreError(f"parent category {parent} does not exist")
        idnumber = values.get("idnumber")
        if idnumber is not None and any(
            c.idnumber == idnumber and c.id != category_id for c in self._rows.values()
        ):
            raise StoreError(f"duplicate idnumber {idnumber}")

    def create(self, fields: Mapping[str, Any]) -> CategoryEntity:
        values = persisted_values(fields)
        if not values.get("name"):
            raise StoreError("category name is required")
        values.setdefault("parent", ROOT_ID)
        self._check(values)
        cat = CategoryEntity(id=self._next_id, **values)
        self._rows[cat.id] = cat
        self._next_id += 1
        return cat

    def update(self, category_id: int, fields: Mapping[str, Any]) -> CategoryEntity:
        current = self._rows.get(category_id)
        if current is None:
            raise StoreError(f"category {category_id} does not exist")
        values = persisted_values(fields)
        self._check(values, category_id)
        cat = replace(current, **values)
        self._rows[category_id] = cat
        return cat

    def delete_recursive(self, category_id: int) -> None:
        if category_id not in self._rows:
            raise StoreError(f"category {category_id} does not exist")
        doomed = {category_id}
        changed = True
        while changed:
            children = {c.id for c in self._rows.values() if c.parent in doomed} - doomed
            changed = bool(children)
            doomed |= children
        for cid in doomed:
            del self._rows[cid]


class PostgresCategoryStore:
    """psycopg2 backed store.

    Each call runs in its own transaction (connection context manager: commit
    on success, rollback on error), so a failed row never leaves the
    connection in an aborted state.
    """

    SCHEMA_SQL = f"""
        CREATE TABLE IF NOT EXISTS {TABLE} (
            id SERIAL PRIMARY KEY,
            name VARCHAR(255) NOT NULL,
            parent INTEGER NOT NULL DEFAULT 0,
            idnumber VARCHAR(100) UNIQUE,
            description TEXT,
            visible BOOLEAN NOT NULL DEFAULT TRUE,
            theme VARCHAR(50),
            timecreated TIMESTAMPTZ NOT NULL DEFAULT now(),
            timemodified TIMESTAMPTZ NOT NULL DEFAULT now()
        );
        CREATE INDEX IF NOT EXISTS {TABLE}_parent_name_idx ON {TABLE} (parent, lower(name));
    """

    def __init__(self, conn: Any) -> None:
        self._conn = conn

    def _run(self, sql: str, params: Iterable[Any] | None = None, fetch: str | None = None) -> Any:
        try:
            with self._conn:
                with self._conn.cursor(cursor_factory=RealDictCursor) as cur:
                    cur.execute(sql, params)
                    if fetch == "one":
                        return cur.fetchone()
                    if fetch == "all":
                        return cur.fetchall()
                    return None
        except psycopg2.Error as e:
            raise StoreError(str(e).strip()) from e

    @staticmethod
    def _entity(row: Mapping[str, Any]) -> CategoryEntity:
        return CategoryEntity(**{k: row[k] for k in _COLUMNS})

    def ensure_schema(self) -> None:
        self._run(self.SCHEMA_SQL)

    def find_one(self, name: str, parent_id: int) -> CategoryEntity | None:
        row = self._run(
            f"SELECT {', '.join(_COLUMNS)} FROM {TABLE} "
            "WHERE parent = %s AND lower(name) = lower(%s) ORDER BY id LIMIT 1",
            (parent_id, name.strip()),
            fetch="one",
        )
        return self._entity(row) if row else None

    def exists_by_idnumber(self, idnumber: str) -> bool:
        row = self._run(
            f"SELECT 1 AS found FROM {TABLE} WHERE idnumber = %s LIMIT 1", (idnumber,), fetch="one"
        )
        return row is not None

    def create(self, fields: Mapping[str, Any]) -> CategoryEntity:
        values = persisted_values(fields)
        values.setdefault("parent", ROOT_ID)
        cols = list(values)
        placeholders = ", ".join(["%s"] * len(cols))
        row = self._run(
            f"INSERT INTO {TABLE} ({', '.join(cols)}) VALUES ({placeholders}) "
            f"RETURNING {', '.join(_COLUMNS)}",
            [values[c] for c in cols],
            fetch="one",
        )
        return self._entity(row)

    def update(self, category_id: int, fields: Mapping[str, Any]) -> CategoryEntity:
        values = persisted_values(fields)
        assignments = [f"{c} = %s" for c in values] + ["timemodified = now()"]
        row = self._run(
            f"UPDATE {TABLE} SET {', '.join(assignments)} WHERE id = %s "
            f"RETURNING {', '.join(_COLUMNS)}",
            [*values.values(), category_id],
            fetch="one",
        )
        if row is None:
            raise StoreError(f"category {category_id} does not exist")
        return self._entity(row)

    def delete_recursive(self, category_id: int) -> None:
        # 子孫カテゴリも含めて削除
        deleted = self._run(
            f"""
            WITH RECURSIVE subtree AS (
                SELECT id FROM {TABLE} WHERE id = %s
                UNION ALL
                SELECT c.id FROM {TABLE} c JOIN subtree s ON c.parent = s.id
            )
            DELETE FROM {TABLE} WHERE id IN (SELECT id FROM subtree) RETURNING id
            """,
            (category_id,),
            fetch="all",
        )
        if not deleted:
            raise StoreError(f"category {category_id} does not exist")
