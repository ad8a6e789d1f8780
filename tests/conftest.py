from __future__ import annotations

import asyncio
import os
import sys

import pytest

sys.path.append(os.path.join(os.path.dirname(__file__), ".."))

from pharmabook.config import SCHEMA_PATH
from pharmabook.db_manager import InventoryDB
from pharmabook.errors import FetchError, StoreError
from pharmabook.gateway import StockGateway
from pharmabook.logic.intake import IntakeForm, IntakeWorkflow


@pytest.fixture
def db(tmp_path):
    return InventoryDB(tmp_path / "inventory.db", SCHEMA_PATH)


@pytest.fixture
def gateway(db):
    return StockGateway(db)


@pytest.fixture
def workflow(gateway):
    return IntakeWorkflow(gateway)


@pytest.fixture
def dolo_form():
    return IntakeForm(name="Dolo 650", batch_no="A21X", qty="50", expiry_date="2026-12-31")


class RecordingGateway(StockGateway):
    """Counts store calls and can be told to fail or hold individual steps."""

    def __init__(self, db: InventoryDB):
        super().__init__(db)
        self.calls: list[str] = []
        self.fail_product = False
        self.fail_batch = False
        self.fail_list = False
        self.hold_product: asyncio.Event | None = None
        self.hold_batch: asyncio.Event | None = None

    async def list_batches(self):
        self.calls.append("list_batches")
        if self.fail_list:
            raise FetchError("connection reset")
        return await super().list_batches()

    async def create_product(self, name):
        self.calls.append("create_product")
        if self.hold_product is not None:
            await self.hold_product.wait()
        if self.fail_product:
            raise StoreError("duplicate key value violates unique constraint")
        return await super().create_product(name)

    async def create_batch(self, **fields):
        self.calls.append("create_batch")
        if self.hold_batch is not None:
            await self.hold_batch.wait()
        if self.fail_batch:
            raise StoreError("batch insert rejected")
        return await super().create_batch(**fields)

    def write_calls(self) -> list[str]:
        return [c for c in self.calls if c != "list_batches"]


@pytest.fixture
def recording_gateway(db):
    return RecordingGateway(db)
