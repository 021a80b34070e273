# src/remit/data/storage/postgres/storage.py
from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any

from psycopg_pool import ConnectionPool

from src.remit.core.models.claim import ClaimTransaction
from src.remit.core.models.enums import ClaimStatus
from src.remit.data.storage.base import ClaimStore

logger = logging.getLogger(__name__)

_CLAIM_COLUMNS = """
    id, user_id, recipient_id, amount, currency, status,
    bank_details, metadata, created_at, updated_at
"""


def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


def _jsonb(value: Any) -> str | None:
    if value is None:
        return None
    return json.dumps(value, ensure_ascii=False, default=str)


class PostgreSQLClaimStore(ClaimStore):
    """
    PostgreSQL storage for claim transactions (table `transactions`).

    metadata is jsonb and merged with `||`, so concurrent writers of other
    keys are not clobbered.
    """

    def __init__(self, pool: ConnectionPool):
        self.pool = pool

    # ======================================================================
    # HELPERS
    # ======================================================================

    def _fetch_all(self, query: str, params: tuple) -> list[dict]:
        with self.pool.connection() as conn:
            with conn.cursor() as cur:
                cur.execute(query, params)
                cols = [d[0] for d in (cur.description or [])]
                return [dict(zip(cols, r)) for r in cur.fetchall()]

    def _exec_one(self, query: str, params: tuple):
        with self.pool.connection() as conn:
            with conn.cursor() as cur:
                cur.execute(query, params)
                row = cur.fetchone() if cur.description else None
            conn.commit()
        return row

    # ======================================================================
    # DDL
    # ======================================================================

    def exec_ddl(self, ddl_sql: str) -> None:
        with self.pool.connection() as conn:
            with conn.cursor() as cur:
                cur.execute(ddl_sql)
            conn.commit()
        logger.info("DDL applied")

    # ======================================================================
    # CLAIMS
    # ======================================================================

    def insert(self, claim: ClaimTransaction) -> None:
        row = claim.to_row()
        now = _utcnow()
        self._exec_one(
            """
            INSERT INTO transactions (
                id, user_id, recipient_id, amount, currency, status,
                bank_details, metadata, created_at, updated_at
            )
            VALUES (%s, %s, %s, %s, %s, %s, %s::jsonb, %s::jsonb, %s, %s)
            """,
            (
                row["id"], row["user_id"], row["recipient_id"], row["amount"],
                row["currency"], row["status"],
                _jsonb(row["bank_details"]), _jsonb(row["metadata"] or {}),
                row["created_at"] or now, now,
            ),
        )

    def get(self, claim_id: str) -> ClaimTransaction | None:
        rows = self._fetch_all(
            f"SELECT {_CLAIM_COLUMNS} FROM transactions WHERE id = %s",
            (claim_id,),
        )
        return ClaimTransaction.from_row(rows[0]) if rows else None

    def list_by_status(self, status: ClaimStatus, *, limit: int = 100) -> list[ClaimTransaction]:
        rows = self._fetch_all(
            f"""
            SELECT {_CLAIM_COLUMNS}
            FROM transactions
            WHERE status = %s
            ORDER BY updated_at
            LIMIT %s
            """,
            (ClaimStatus(status).value, int(limit)),
        )
        return [ClaimTransaction.from_row(r) for r in rows]

    def update_status(
        self,
        claim_id: str,
        status: ClaimStatus,
        metadata_patch: dict[str, Any] | None = None,
    ) -> None:
        row = self._exec_one(
            """
            UPDATE transactions
            SET status = %s,
                metadata = COALESCE(metadata, '{}'::jsonb) || %s::jsonb,
                updated_at = %s
            WHERE id = %s
            RETURNING id
            """,
            (ClaimStatus(status).value, _jsonb(metadata_patch or {}), _utcnow(), claim_id),
        )
        if row is None:
            logger.warning("[STORE] update_status: claim %s not found", claim_id)
            return
        logger.info("[STORE] claim %s -> %s", claim_id, ClaimStatus(status).value)

    def compare_and_set_status(
        self,
        claim_id: str,
        expected: ClaimStatus,
        status: ClaimStatus,
        metadata_patch: dict[str, Any] | None = None,
        *,
        bank_details: dict[str, Any] | None = None,
    ) -> bool:
        row = self._exec_one(
            """
            UPDATE transactions
            SET status = %s,
                metadata = COALESCE(metadata, '{}'::jsonb) || %s::jsonb,
                bank_details = COALESCE(%s::jsonb, bank_details),
                updated_at = %s
            WHERE id = %s AND status = %s
            RETURNING id
            """,
            (
                ClaimStatus(status).value,
                _jsonb(metadata_patch or {}),
                _jsonb(bank_details),
                _utcnow(),
                claim_id,
                ClaimStatus(expected).value,
            ),
        )
        ok = row is not None
        if ok:
            logger.info(
                "[STORE] claim %s %s -> %s",
                claim_id, ClaimStatus(expected).value, ClaimStatus(status).value,
            )
        return ok
