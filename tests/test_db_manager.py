from __future__ import annotations

from pathlib import Path

import pytest

from pharmabook.config import SCHEMA_PATH
from pharmabook.db_manager import InventoryDB
from pharmabook.errors import StoreError


def _add_batch(db, product_id, batch_no, expiry_date, qty=10):
    return db.insert(
        "batches",
        {
            "product_id": product_id,
            "batch_no": batch_no,
            "expiry_date": expiry_date,
            "current_stock": qty,
            "mrp": 0,
        },
    )


def test_schema_is_applied_idempotently(db):
    db.insert("products", {"name": "Crocin"})
    reopened = InventoryDB(db.db_path, db.schema_path)
    assert [row["name"] for row in reopened.select("products", ("name",))] == ["Crocin"]


def test_insert_returns_stored_row_with_generated_id(db):
    first = db.insert("products", {"name": "Dolo 650"})
    second = db.insert("products", {"name": "Dolo 650"})

    assert first == {"id": first["id"], "name": "Dolo 650"}
    assert second["id"] != first["id"]


def test_batch_insert_echoes_all_columns(db):
    product = db.insert("products", {"name": "Azithral 500"})
    batch = _add_batch(db, product["id"], "AZ-01", "2027-03-31", qty=12)

    assert batch["product_id"] == product["id"]
    assert batch["batch_no"] == "AZ-01"
    assert batch["expiry_date"] == "2027-03-31"
    assert batch["current_stock"] == 12
    assert batch["mrp"] == 0


def test_select_embeds_parent_columns(db):
    product = db.insert("products", {"name": "Pan 40"})
    _add_batch(db, product["id"], "P40", "2026-01-31")

    rows = db.select("batches", ("batch_no", "products.name"))

    assert rows == [{"batch_no": "P40", "products": {"name": "Pan 40"}}]


def test_select_orders_by_requested_columns(db):
    product = db.insert("products", {"name": "Pan 40"})
    _add_batch(db, product["id"], "late", "2027-06-30")
    _add_batch(db, product["id"], "early", "2025-02-28")
    _add_batch(db, product["id"], "mid", "2026-01-31")

    ascending = db.select("batches", ("batch_no",), (("expiry_date", True),))
    descending = db.select("batches", ("batch_no",), (("expiry_date", False),))

    assert [r["batch_no"] for r in ascending] == ["early", "mid", "late"]
    assert [r["batch_no"] for r in descending] == ["late", "mid", "early"]


@pytest.mark.parametrize(
    "table, columns",
    [
        ("customers", ("id",)),
        ("batches", ("price",)),
        ("products", ("batches.batch_no",)),
        ("batches", ()),
    ],
)
def test_select_rejects_unknown_shapes(db, table, columns):
    with pytest.raises(StoreError):
        db.select(table, columns)


def test_insert_with_missing_product_raises_store_error(db):
    with pytest.raises(StoreError) as excinfo:
        _add_batch(db, 999, "X1", "2026-12-31")

    assert "FOREIGN KEY" in excinfo.value.message
    assert db.select("batches", ("id",)) == []


def test_negative_stock_is_rejected_by_store(db):
    product = db.insert("products", {"name": "Dolo 650"})

    with pytest.raises(StoreError):
        _add_batch(db, product["id"], "A21X", "2026-12-31", qty=-1)


def test_insert_rejects_unknown_column(db):
    with pytest.raises(StoreError):
        db.insert("products", {"name": "Dolo 650", "barcode": "890"})


def test_delete_removes_requested_rows(db):
    keep = db.insert("products", {"name": "keep"})
    drop = db.insert("products", {"name": "drop"})

    assert db.delete("products", [drop["id"]]) == 1
    assert db.delete("products", []) == 0
    assert [r["id"] for r in db.select("products", ("id",))] == [keep["id"]]


def test_unopenable_database_raises_store_error(tmp_path):
    target = tmp_path / "as_dir.db"
    target.mkdir()

    with pytest.raises(StoreError):
        InventoryDB(target, SCHEMA_PATH)


def test_integer_too_large_for_sqlite_raises_store_error(db):
    product = db.insert("products", {"name": "Dolo 650"})

    with pytest.raises(StoreError):
        _add_batch(db, product["id"], "A21X", "2026-12-31", qty=10**20)
    assert db.select("batches", ("id",)) == []


def test_missing_schema_file_raises_store_error(tmp_path):
    with pytest.raises(StoreError, match="cannot read schema"):
        InventoryDB(tmp_path / "inventory.db", tmp_path / "missing.sql")


def test_default_schema_ships_inside_the_package(tmp_path):
    import pharmabook.db_manager as db_manager

    assert SCHEMA_PATH.parent == Path(db_manager.__file__).resolve().parent
    assert SCHEMA_PATH.is_file()
    assert InventoryDB(tmp_path / "inventory.db").select("products", ("id",)) == []


def test_delete_unreferenced_removes_only_parents_without_children(db):
    orphan = db.insert("products", {"name": "orphan"})
    stocked = db.insert("products", {"name": "stocked"})
    _add_batch(db, stocked["id"], "A21X", "2026-12-31")

    assert db.delete_unreferenced("products", "batches") == [orphan["id"]]
    assert db.delete_unreferenced("products", "batches") == []
    assert [r["id"] for r in db.select("products", ("id",))] == [stocked["id"]]


def test_delete_unreferenced_rejects_unknown_relation(db):
    with pytest.raises(StoreError):
        db.delete_unreferenced("batches", "products")
