# src/remit/cli/migrate.py
from pathlib import Path
import logging
import os

from dotenv import load_dotenv

from src.remit.data.storage.postgres.pool import create_pool
from src.remit.data.storage.postgres.storage import PostgreSQLClaimStore

DDL_PATH = Path(__file__).resolve().parents[1] / "data" / "storage" / "postgres" / "ddl.sql"


def main() -> None:
    load_dotenv()
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )

    dsn = os.getenv("PG_DSN")
    if not dsn:
        raise SystemExit("PG_DSN env var is required")

    pool = create_pool(dsn, max_size=1)
    try:
        PostgreSQLClaimStore(pool).exec_ddl(DDL_PATH.read_text(encoding="utf-8"))
    finally:
        pool.close()


if __name__ == "__main__":
    main()
