import argparse
import logging
import sys
from pathlib import Path

from pharmabook.config import DB_PATH, LOG_DIR
from pharmabook.db_manager import InventoryDB
from pharmabook.errors import StoreError
from pharmabook.logic.reconcile import ReconcileService
from pharmabook.logging_setup import configure_logging

logger = logging.getLogger("pharmabook")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="PharmaBook godown stock intake")
    parser.add_argument("--db", type=Path, default=DB_PATH, help="SQLite database file")
    parser.add_argument("--log-dir", type=Path, default=LOG_DIR, help="directory for log files")
    parser.add_argument(
        "--purge-orphans",
        action="store_true",
        help="delete products left without a batch and exit",
    )
    return parser


def purge_orphans(db: InventoryDB) -> int:
    try:
        deleted = ReconcileService(db).purge_orphan_products()
    except StoreError as exc:
        logger.error("Orphan purge failed: %s", exc.message)
        return 1
    print(f"Purged {deleted} orphan product(s).")
    return 0


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_dir)

    try:
        db = InventoryDB(args.db)
    except StoreError as exc:
        logger.error("Could not open database %s: %s", args.db, exc.message)
        return 1

    if args.purge_orphans:
        return purge_orphans(db)

    from PyQt6.QtWidgets import QApplication
    from pharmabook.gui.main_window import MainWindow

    app = QApplication(sys.argv[:1])
    window = MainWindow(db)
    window.show()
    return app.exec()


if __name__ == "__main__":
    raise SystemExit(main())
