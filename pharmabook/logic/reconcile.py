from __future__ import annotations

import logging

from pharmabook.db_manager import InventoryDB, Product

logger = logging.getLogger(__name__)


class ReconcileService:
    """Cleans up products left behind by a failed batch insert."""

    def __init__(self, db: InventoryDB):
        self.db = db

    def find_orphan_products(self) -> list[Product]:
        products = self.db.select("products", ("id", "name"), (("id", True),))
        referenced = {
            int(row["product_id"])
            for row in self.db.select("batches", ("product_id",))
        }
        return [
            Product(id=int(row["id"]), name=str(row["name"]))
            for row in products
            if int(row["id"]) not in referenced
        ]

    def purge_orphan_products(self) -> int:
        deleted = self.db.delete_unreferenced("products", "batches")
        if not deleted:
            logger.info("No orphan products found")
            return 0

        logger.warning("Purged %d orphan products: %s", len(deleted), ", ".join(map(str, deleted)))
        return len(deleted)
