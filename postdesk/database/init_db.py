"""
Apply schema.sql to the configured database.

The application factory already does this on startup; this script exists so
the schema can be created (or checked) without starting the server:

    python -m postdesk.database.init_db
"""

import logging
import os
import sys

from dotenv import load_dotenv

from postdesk.database.store import Store


def main() -> int:
    load_dotenv()
    logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(asctime)s - %(message)s")

    dsn = os.getenv("DATABASE_URL")
    if not dsn:
        logging.error("DATABASE_URL is not set. Please set the environment variable.")
        return 1

    store = Store.connect(dsn, maxconn=1)
    try:
        store.init_schema()
        for table in ("users", "posts"):
            logging.info(f" - {table}: {len(store.list(table))} rows")
    except Exception as e:
        logging.error(f"Schema initialization FAILED: {e}")
        return 1
    finally:
        store.close()

    logging.info("Database initialization PASSED.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
