import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent
SCHEMA_PATH = BASE_DIR / "schema.sql"

DATA_DIR = Path(os.environ.get("PHARMABOOK_HOME", Path.home() / ".pharmabook"))
DB_PATH = Path(os.environ.get("PHARMABOOK_DB_PATH", DATA_DIR / "pharmabook.db"))
LOG_DIR = Path(os.environ.get("PHARMABOOK_LOG_DIR", DATA_DIR / "logs"))

APP_TITLE = "PharmaBook"
SHOP_NAME = "Mahadev Pharma Distributors"
