from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum

from pharmabook.db_manager import Batch, InventoryRow, Product
from pharmabook.errors import FetchError, StoreError, ValidationError
from pharmabook.gateway import StockGateway

logger = logging.getLogger(__name__)

SUCCESS_MESSAGE = "Stock Added to Godown!"
# largest value an SQLite INTEGER column holds
MAX_QUANTITY = 2**63 - 1


class Phase(str, Enum):
    BUSY = "busy"
    INVALID = "invalid"
    PRODUCT_FAILED = "product_failed"
    BATCH_FAILED = "batch_failed"
    SUCCEEDED = "succeeded"


@dataclass
class IntakeForm:
    name: str = ""
    batch_no: str = ""
    qty: str = ""
    expiry_date: str = ""

    def clear(self) -> None:
        self.name = ""
        self.batch_no = ""
        self.qty = ""
        self.expiry_date = ""


@dataclass(frozen=True)
class Notice:
    title: str
    message: str


BUSY_NOTICE = Notice("Please Wait", "Another operation is still running. Try again in a moment.")


@dataclass(frozen=True)
class SubmitOutcome:
    phase: Phase
    notice: Notice | None = None
    product: Product | None = None
    batch: Batch | None = None

    @property
    def succeeded(self) -> bool:
        return self.phase is Phase.SUCCEEDED


@dataclass
class InventoryState:
    inventory: list[InventoryRow] = field(default_factory=list)
    loading: bool = False
    last_fetch_error: FetchError | None = None

    @property
    def sku_count(self) -> int:
        return len(self.inventory)


def validate_intake(form: IntakeForm) -> tuple[str, str, int, str]:
    name = form.name.strip()
    batch_no = form.batch_no.strip()
    qty_text = form.qty.strip()
    expiry_date = form.expiry_date.strip()

    if not name or not batch_no or not qty_text or not expiry_date:
        raise ValidationError("Missing Details", "Please fill all fields.")

    if qty_text.startswith("-") and qty_text[1:].isascii() and qty_text[1:].isdigit():
        raise ValidationError("Invalid Quantity", "Quantity cannot be negative.")
    if not (qty_text.isascii() and qty_text.isdigit()):
        raise ValidationError("Invalid Quantity", "Quantity must be a whole number.")
    quantity = int(qty_text)
    if quantity > MAX_QUANTITY:
        raise ValidationError("Invalid Quantity", f"Quantity cannot exceed {MAX_QUANTITY}.")

    return name, batch_no, quantity, expiry_date


class IntakeWorkflow:
    """Owns the inventory state and the two-step product/batch write.

    ``state.loading`` doubles as the re-entrancy lock: while a refresh or a
    submission is in flight, further calls return without touching the store.
    The product and batch inserts are not wrapped in a transaction, so a failed
    batch insert leaves its product behind (see ``logic.reconcile``).
    """

    def __init__(self, gateway: StockGateway, state: InventoryState | None = None):
        self.gateway = gateway
        self.state = state or InventoryState()

    async def refresh(self) -> bool:
        if self.state.loading:
            logger.debug("Refresh skipped, another operation is in flight")
            return False

        self.state.loading = True
        try:
            await self._reload()
        finally:
            self.state.loading = False
        return self.state.last_fetch_error is None

    async def _reload(self) -> None:
        try:
            rows = await self.gateway.list_batches()
        except FetchError as exc:
            self.state.last_fetch_error = exc
            logger.error("Inventory refresh failed, keeping %d cached rows: %s",
                         len(self.state.inventory), exc.message)
            return

        self.state.inventory = rows
        self.state.last_fetch_error = None
        logger.info("Inventory refreshed: %d batches", len(rows))

    async def submit(self, form: IntakeForm) -> SubmitOutcome:
        if self.state.loading:
            logger.info("Submit ignored, another operation is in flight")
            return SubmitOutcome(Phase.BUSY, BUSY_NOTICE)

        try:
            name, batch_no, quantity, expiry_date = validate_intake(form)
        except ValidationError as exc:
            return SubmitOutcome(Phase.INVALID, Notice(exc.title, exc.message))

        self.state.loading = True
        try:
            outcome = await self._write(name, batch_no, quantity, expiry_date)
        finally:
            self.state.loading = False

        if outcome.succeeded:
            form.clear()
        return outcome

    async def _write(self, name: str, batch_no: str, quantity: int, expiry_date: str) -> SubmitOutcome:
        try:
            product = await self.gateway.create_product(name)
        except StoreError as exc:
            logger.warning("Product insert failed for %r: %s", name, exc.message)
            return SubmitOutcome(
                Phase.PRODUCT_FAILED,
                Notice("Error", f"Could not create product: {exc.message}"),
            )

        try:
            batch = await self.gateway.create_batch(
                product_id=product.id,
                batch_no=batch_no,
                expiry_date=expiry_date,
                current_stock=quantity,
                mrp=0,
            )
        except StoreError as exc:
            logger.warning("Batch insert failed, product %s left without a batch: %s",
                           product.id, exc.message)
            return SubmitOutcome(Phase.BATCH_FAILED, Notice("Error", exc.message), product=product)

        logger.info("Stock added: %s batch %s exp %s qty %d",
                    product.name, batch.batch_no, batch.expiry_date, batch.current_stock)
        await self._reload()
        return SubmitOutcome(
            Phase.SUCCEEDED,
            Notice("Success", SUCCESS_MESSAGE),
            product=product,
            batch=batch,
        )
