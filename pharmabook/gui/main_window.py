from __future__ import annotations

from PyQt6.QtCore import Qt
from PyQt6.QtWidgets import (
    QDialog,
    QFormLayout,
    QHBoxLayout,
    QLabel,
    QLineEdit,
    QMainWindow,
    QMessageBox,
    QPushButton,
    QStackedWidget,
    QTableWidget,
    QTableWidgetItem,
    QVBoxLayout,
    QWidget,
)

from pharmabook.config import APP_TITLE, SHOP_NAME
from pharmabook.db_manager import InventoryDB
from pharmabook.gateway import StockGateway
from pharmabook.gui.async_runner import AsyncRunner
from pharmabook.logic.intake import IntakeForm, IntakeWorkflow, Notice, Phase, SubmitOutcome

FALLBACK_PRODUCT_NAME = "Medicine"


class IntakeDialog(QDialog):
    def __init__(self, parent: QWidget | None = None):
        super().__init__(parent)
        self.setWindowTitle("Incoming Stock Entry")
        self.setModal(True)
        self.resize(420, 260)

        form = QFormLayout()
        self.name_input = QLineEdit()
        self.name_input.setPlaceholderText("e.g. Dolo 650")
        self.batch_input = QLineEdit()
        self.batch_input.setPlaceholderText("e.g. A21X")
        self.expiry_input = QLineEdit()
        self.expiry_input.setPlaceholderText("2026-12-31")
        self.qty_input = QLineEdit()
        self.qty_input.setPlaceholderText("50")

        form.addRow("Medicine Name", self.name_input)
        form.addRow("Batch Number", self.batch_input)
        form.addRow("Expiry (YYYY-MM-DD)", self.expiry_input)
        form.addRow("Quantity", self.qty_input)

        self.save_btn = QPushButton("SAVE TO GODOWN")
        self.save_btn.setDefault(True)
        self.cancel_btn = QPushButton("Cancel")
        self.cancel_btn.clicked.connect(self.reject)

        buttons = QHBoxLayout()
        buttons.addStretch(1)
        buttons.addWidget(self.cancel_btn)
        buttons.addWidget(self.save_btn)

        layout = QVBoxLayout(self)
        layout.addLayout(form)
        layout.addLayout(buttons)

    def form(self) -> IntakeForm:
        return IntakeForm(
            name=self.name_input.text(),
            batch_no=self.batch_input.text(),
            qty=self.qty_input.text(),
            expiry_date=self.expiry_input.text(),
        )

    def clear(self) -> None:
        for field in (self.name_input, self.batch_input, self.expiry_input, self.qty_input):
            field.clear()
        self.name_input.setFocus()

    def set_busy(self, busy: bool) -> None:
        self.save_btn.setEnabled(not busy)
        self.save_btn.setText("Saving..." if busy else "SAVE TO GODOWN")


class MainWindow(QMainWindow):
    def __init__(self, db: InventoryDB):
        super().__init__()
        self.db = db
        self.workflow = IntakeWorkflow(StockGateway(self.db))
        self.runner = AsyncRunner(self)

        self.setWindowTitle(APP_TITLE)
        self.resize(560, 760)
        self._build_ui()
        self.intake_dialog = IntakeDialog(self)
        self.intake_dialog.save_btn.clicked.connect(self.submit_intake)
        self.refresh_inventory()

    def _build_ui(self) -> None:
        root = QWidget()
        self.setCentralWidget(root)
        main_layout = QVBoxLayout(root)

        header = QHBoxLayout()
        title = QLabel("Pharma<b>Book</b>")
        title.setTextFormat(Qt.TextFormat.RichText)
        self.refresh_btn = QPushButton("Refresh")
        self.refresh_btn.clicked.connect(self.refresh_inventory)
        header.addWidget(title)
        header.addStretch(1)
        header.addWidget(self.refresh_btn)
        main_layout.addLayout(header)

        shop_label = QLabel(SHOP_NAME)
        shop_label.setStyleSheet("font-weight: bold;")
        self.sku_label = QLabel("Total SKUs: 0")
        main_layout.addWidget(shop_label)
        main_layout.addWidget(self.sku_label)

        actions = QHBoxLayout()
        self.add_stock_btn = QPushButton("Add Stock")
        self.add_stock_btn.clicked.connect(self.open_intake_dialog)
        self.expiry_alert_btn = QPushButton("Expiry Alert")
        self.expiry_alert_btn.setEnabled(False)
        self.expiry_alert_btn.setToolTip("Not available yet")
        actions.addWidget(self.add_stock_btn)
        actions.addWidget(self.expiry_alert_btn)
        actions.addStretch(1)
        main_layout.addLayout(actions)

        main_layout.addWidget(QLabel("<b>Godown Inventory</b>"))

        self.inventory_table = QTableWidget(0, 4)
        self.inventory_table.setHorizontalHeaderLabels(["Medicine", "Batch", "Expiry", "Boxes"])
        self.inventory_table.horizontalHeader().setStretchLastSection(True)
        self.inventory_table.setEditTriggers(QTableWidget.EditTrigger.NoEditTriggers)
        self.inventory_table.verticalHeader().setVisible(False)

        self.empty_label = QLabel("Godown is empty. Add stock above.")
        self.empty_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self.loading_label = QLabel("Loading...")
        self.loading_label.setAlignment(Qt.AlignmentFlag.AlignCenter)

        self.list_stack = QStackedWidget()
        self.list_stack.addWidget(self.inventory_table)
        self.list_stack.addWidget(self.empty_label)
        self.list_stack.addWidget(self.loading_label)
        main_layout.addWidget(self.list_stack, 1)

    def open_intake_dialog(self) -> None:
        self.intake_dialog.set_busy(self.workflow.state.loading)
        self.intake_dialog.name_input.setFocus()
        self.intake_dialog.exec()

    def refresh_inventory(self) -> None:
        if self.workflow.state.loading:
            return
        self._set_loading(True)
        self.runner.submit(self.workflow.refresh(), self._on_refreshed, self._on_task_error)

    def _on_refreshed(self, _ok: bool) -> None:
        self.intake_dialog.set_busy(False)
        self._set_loading(False)
        self.populate_inventory()

    def submit_intake(self) -> None:
        self.intake_dialog.set_busy(True)
        self._set_loading(True)
        self.runner.submit(
            self.workflow.submit(self.intake_dialog.form()),
            self._on_submitted,
            self._on_task_error,
        )

    def _on_submitted(self, outcome: SubmitOutcome) -> None:
        if outcome.phase is Phase.BUSY:
            self._warn(outcome.notice)
            return

        self.intake_dialog.set_busy(False)
        self._set_loading(False)
        if outcome.succeeded:
            self._info(outcome.notice)
            self.intake_dialog.clear()
            self.intake_dialog.accept()
            self.populate_inventory()
            return

        self._warn(outcome.notice)

    def _on_task_error(self, exc: BaseException) -> None:
        self.intake_dialog.set_busy(False)
        self._set_loading(False)
        self._warn(Notice("Error", str(exc)))

    def _set_loading(self, loading: bool) -> None:
        self.refresh_btn.setEnabled(not loading)
        if loading:
            self.list_stack.setCurrentWidget(self.loading_label)
        else:
            self._show_list()

    def _show_list(self) -> None:
        has_rows = self.inventory_table.rowCount() > 0
        self.list_stack.setCurrentWidget(self.inventory_table if has_rows else self.empty_label)

    def populate_inventory(self) -> None:
        rows = self.workflow.state.inventory
        self.sku_label.setText(f"Total SKUs: {self.workflow.state.sku_count}")

        self.inventory_table.setRowCount(len(rows))
        for r, row in enumerate(rows):
            batch = row.batch
            self.inventory_table.setItem(r, 0, QTableWidgetItem(row.product_name or FALLBACK_PRODUCT_NAME))
            self.inventory_table.setItem(r, 1, QTableWidgetItem(batch.batch_no))
            self.inventory_table.setItem(r, 2, QTableWidgetItem(batch.expiry_date))
            qty_item = QTableWidgetItem(str(batch.current_stock))
            qty_item.setTextAlignment(Qt.AlignmentFlag.AlignRight | Qt.AlignmentFlag.AlignVCenter)
            self.inventory_table.setItem(r, 3, qty_item)

        self._show_list()

    def _warn(self, notice: Notice | None) -> None:
        if notice is not None:
            QMessageBox.warning(self, notice.title, notice.message)

    def _info(self, notice: Notice | None) -> None:
        if notice is not None:
            QMessageBox.information(self, notice.title, notice.message)

    def closeEvent(self, event) -> None:
        self.runner.shutdown()
        super().closeEvent(event)
