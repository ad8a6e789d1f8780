from __future__ import annotations

import asyncio
from typing import Any

from pharmabook.db_manager import Batch, InventoryDB, InventoryRow, Product
from pharmabook.errors import FetchError, StoreError

BATCH_COLUMNS = ("id", "product_id", "batch_no", "expiry_date", "current_stock", "mrp")
LIST_COLUMNS = BATCH_COLUMNS + ("products.name",)
FEFO_ORDER = (("expiry_date", True), ("id", True))


def _batch_from_row(row: dict[str, Any]) -> Batch:
    return Batch(
        id=int(row["id"]),
        product_id=int(row["product_id"]),
        batch_no=str(row["batch_no"]),
        expiry_date=str(row["expiry_date"]),
        current_stock=int(row["current_stock"]),
        mrp=float(row["mrp"]),
    )


class StockGateway:
    """Async read/write access to products and batches.

    Store calls block, so each one runs in a worker thread and the caller's
    event loop stays free while it waits.
    """

    def __init__(self, db: InventoryDB):
        self.db = db

    async def list_batches(self) -> list[InventoryRow]:
        try:
            rows = await asyncio.to_thread(self.db.select, "batches", LIST_COLUMNS, FEFO_ORDER)
        except StoreError as exc:
            raise FetchError(exc.message) from exc

        inventory: list[InventoryRow] = []
        for row in rows:
            parent = row.get("products")
            inventory.append(
                InventoryRow(
                    batch=_batch_from_row(row),
                    product_name=parent["name"] if parent else None,
                )
            )
        return inventory

    async def create_product(self, name: str) -> Product:
        row = await asyncio.to_thread(self.db.insert, "products", {"name": name})
        return Product(id=int(row["id"]), name=str(row["name"]))

    async def create_batch(
        self,
        product_id: int,
        batch_no: str,
        expiry_date: str,
        current_stock: int,
        mrp: float = 0,
    ) -> Batch:
        row = await asyncio.to_thread(
            self.db.insert,
            "batches",
            {
                "product_id": product_id,
                "batch_no": batch_no,
                "expiry_date": expiry_date,
                "current_stock": current_stock,
                "mrp": mrp,
            },
        )
        return _batch_from_row(row)
