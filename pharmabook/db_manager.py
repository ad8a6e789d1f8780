from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, Sequence

from pharmabook.config import DB_PATH, SCHEMA_PATH
from pharmabook.errors import StoreError

logger = logging.getLogger(__name__)

COLLECTIONS: dict[str, tuple[str, ...]] = {
    "products": ("id", "name"),
    "batches": ("id", "product_id", "batch_no", "expiry_date", "current_stock", "mrp"),
}

# (child, parent) -> foreign key column on the child
PARENT_KEYS: dict[tuple[str, str], str] = {
    ("batches", "products"): "product_id",
}


@dataclass(frozen=True)
class Product:
    id: int
    name: str


@dataclass(frozen=True)
class Batch:
    id: int
    product_id: int
    batch_no: str
    expiry_date: str
    current_stock: int
    mrp: float = 0


@dataclass(frozen=True)
class InventoryRow:
    batch: Batch
    product_name: str | None


class InventoryDB:
    """SQLite implementation of the products/batches store.

    Rows go in and come out as plain dicts keyed by column name. Columns of a
    parent collection can be embedded in a select as ``"products.name"``; they
    come back nested under the parent key, or as ``None`` when the parent row
    is missing. Every sqlite failure surfaces as :class:`StoreError`.
    """

    def __init__(self, db_path: Path = DB_PATH, schema_path: Path = SCHEMA_PATH):
        self.db_path = Path(db_path)
        self.schema_path = Path(schema_path)

        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    @contextmanager
    def _transaction(self):
        try:
            conn = self._connect()
        except sqlite3.Error as exc:
            raise StoreError(str(exc)) from exc
        try:
            yield conn
            conn.commit()
        except (sqlite3.Error, OverflowError) as exc:
            conn.rollback()
            raise StoreError(str(exc)) from exc
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _init_db(self) -> None:
        try:
            schema_sql = self.schema_path.read_text(encoding="utf-8")
        except OSError as exc:
            raise StoreError(f"cannot read schema {self.schema_path}: {exc}") from exc
        with self._transaction() as conn:
            conn.executescript(schema_sql)
        logger.info("Store ready at %s", self.db_path)

    @staticmethod
    def _check_column(table: str, column: str) -> None:
        if table not in COLLECTIONS:
            raise StoreError(f"unknown collection: {table}")
        if column not in COLLECTIONS[table]:
            raise StoreError(f"unknown column {column!r} on {table}")

    def select(
        self,
        table: str,
        columns: Sequence[str],
        order_by: Iterable[tuple[str, bool]] = (),
    ) -> list[dict[str, Any]]:
        select_parts: list[str] = []
        joins: list[str] = []
        embedded: dict[str, list[str]] = {}

        for column in columns:
            if "." not in column:
                self._check_column(table, column)
                select_parts.append(f'{table}.{column} AS "{column}"')
                continue

            parent, parent_column = column.split(".", 1)
            foreign_key = PARENT_KEYS.get((table, parent))
            if foreign_key is None:
                raise StoreError(f"no relation from {table} to {parent}")
            self._check_column(parent, parent_column)
            if parent not in embedded:
                embedded[parent] = []
                joins.append(f"LEFT JOIN {parent} ON {parent}.id = {table}.{foreign_key}")
                select_parts.append(f'{parent}.id AS "{parent}#id"')
            embedded[parent].append(parent_column)
            select_parts.append(f'{parent}.{parent_column} AS "{parent}.{parent_column}"')

        if not select_parts:
            raise StoreError("select needs at least one column")

        order_parts: list[str] = []
        for column, ascending in order_by:
            self._check_column(table, column)
            order_parts.append(f"{table}.{column} {'ASC' if ascending else 'DESC'}")

        sql = f"SELECT {', '.join(select_parts)} FROM {table}"
        if joins:
            sql += " " + " ".join(joins)
        if order_parts:
            sql += " ORDER BY " + ", ".join(order_parts)

        with self._transaction() as conn:
            rows = conn.execute(sql).fetchall()

        result: list[dict[str, Any]] = []
        for row in rows:
            record = {column: row[column] for column in columns if "." not in column}
            for parent, parent_columns in embedded.items():
                if row[f"{parent}#id"] is None:
                    record[parent] = None
                else:
                    record[parent] = {c: row[f"{parent}.{c}"] for c in parent_columns}
            result.append(record)
        return result

    def insert(self, table: str, row: dict[str, Any]) -> dict[str, Any]:
        if not row:
            raise StoreError("cannot insert an empty row")
        for column in row:
            self._check_column(table, column)

        columns = list(row.keys())
        placeholders = ", ".join("?" for _ in columns)
        with self._transaction() as conn:
            cursor = conn.execute(
                f"INSERT INTO {table} ({', '.join(columns)}) VALUES ({placeholders})",
                [row[c] for c in columns],
            )
            stored = conn.execute(
                f"SELECT {', '.join(COLLECTIONS[table])} FROM {table} WHERE id = ?",
                (cursor.lastrowid,),
            ).fetchone()
        return dict(stored)

    def delete(self, table: str, ids: Iterable[int]) -> int:
        self._check_column(table, "id")
        id_list = [int(i) for i in ids]
        if not id_list:
            return 0
        placeholders = ", ".join("?" for _ in id_list)
        with self._transaction() as conn:
            cursor = conn.execute(
                f"DELETE FROM {table} WHERE id IN ({placeholders})",
                id_list,
            )
        return int(cursor.rowcount)

    def delete_unreferenced(self, table: str, child: str) -> list[int]:
        """Delete rows of ``table`` that no ``child`` row points at.

        The lookup and the DELETE share one write-locked transaction, so a
        child inserted concurrently either lands first (and its parent
        survives) or fails its foreign key afterwards. Returns the deleted ids.
        """
        foreign_key = PARENT_KEYS.get((child, table))
        if foreign_key is None:
            raise StoreError(f"no relation from {child} to {table}")
        unreferenced = (
            f"WHERE id NOT IN (SELECT {foreign_key} FROM {child} WHERE {foreign_key} IS NOT NULL)"
        )

        with self._transaction() as conn:
            conn.execute("BEGIN IMMEDIATE")
            deleted = [
                int(row["id"])
                for row in conn.execute(f"SELECT id FROM {table} {unreferenced} ORDER BY id")
            ]
            if deleted:
                conn.execute(f"DELETE FROM {table} {unreferenced}")
        return deleted
