from __future__ import annotations

import importlib

from dotenv import load_dotenv

from attendance_register.common.logging_setup import configure_logging
from attendance_register.config import get_settings_module
from attendance_register.database.bootstrap import ensure_indexes, list_collections
from attendance_register.database.connection import DatabaseConnection, MongoConfig


def main() -> None:
    load_dotenv(override=False)
    settings = importlib.import_module(get_settings_module())
    configure_logging(level=getattr(settings, "LOG_LEVEL", "INFO"))
    mongo = dict(settings.MONGO_CONFIG)

    conn = DatabaseConnection(MongoConfig(uri=mongo["uri"], database=mongo["database"]))
    try:
        ensure_indexes(conn.db)
        collections = list_collections(conn.db)
    finally:
        conn.close()
    print(f"OK: Indexes ready -> {mongo['database']} (collections={len(collections)})")


if __name__ == "__main__":
    main()
