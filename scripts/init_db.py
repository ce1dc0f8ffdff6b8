from __future__ import annotations

import importlib
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from dotenv import load_dotenv

from config import get_settings_module

from src.time_tracker.time_tracker.database.bootstrap import apply_schema, list_tables

REQUIRED_TABLES = ("users", "work_sessions", "activity_logs")


def main() -> int:
    load_dotenv(override=False)
    settings = importlib.import_module(get_settings_module())
    db_config = dict(settings.DB_CONFIG)
    target = f"{db_config.get('user')}@{db_config.get('host')}:{db_config.get('port', 3306)}/{db_config.get('database')}"

    apply_schema(db_config, schema_path=REPO_ROOT / "database" / "schema.sql")

    present = set(list_tables(db_config))
    missing = [name for name in REQUIRED_TABLES if name not in present]
    if missing:
        print(f"FAILED: {target} is missing tables: {', '.join(missing)}")
        return 1

    print(f"OK: time tracker schema ready on {target} ({', '.join(REQUIRED_TABLES)})")
    return 0


if __name__ == "__main__":
    sys.exit(main())
