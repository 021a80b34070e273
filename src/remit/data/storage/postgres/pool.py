# src/remit/data/storage/postgres/pool.py
from psycopg_pool import ConnectionPool


def create_pool(dsn: str, *, min_size: int = 1, max_size: int = 10, timeout: float = 30.0) -> ConnectionPool:
    # workers and the listener sweep share this pool; LISTEN uses its own connection
    return ConnectionPool(
        conninfo=dsn,
        min_size=min_size,
        max_size=max_size,
        timeout=timeout,
        kwargs={"autocommit": False, "prepare_threshold": 0},
    )
