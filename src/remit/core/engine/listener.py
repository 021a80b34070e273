# src/remit/core/engine/listener.py
from __future__ import annotations

import logging
import threading
import time
from typing import Any, Callable, Optional

import psycopg

from src.remit.core.engine.runner import ClaimRunner
from src.remit.core.models.enums import ClaimStatus
from src.remit.data.storage.base import ClaimStore

log = logging.getLogger("remit.engine.listener")

CHANNEL = "claim_requested"


class ClaimListener(threading.Thread):
    """
    Feeds claims that entered `claiming` into the runner.

    Two sources:
      - PostgreSQL LISTEN on `claim_requested` (payload = claim id)
      - a periodic sweep of status=claiming, for notifications lost while
        the listener was down

    Never executes a claim itself.
    """

    def __init__(
        self,
        *,
        store: ClaimStore,
        runner: ClaimRunner,
        dsn: Optional[str] = None,
        sweep_sec: float = 30.0,
        notify_timeout_sec: float = 1.0,
        sweep_limit: int = 100,
        connect: Optional[Callable[[], Any]] = None,
    ):
        super().__init__(daemon=True, name="ClaimListener")
        self.store = store
        self.runner = runner
        self.sweep_sec = float(sweep_sec)
        self.notify_timeout_sec = float(notify_timeout_sec)
        self.sweep_limit = int(sweep_limit)
        self._connect = connect or (
            (lambda: psycopg.connect(dsn, autocommit=True)) if dsn else None
        )
        self._conn: Any = None
        self._next_sweep = 0.0
        self._stop_event = threading.Event()

    def stop(self) -> None:
        self._stop_event.set()

    # ------------------------------------------------------------------
    # sources
    # ------------------------------------------------------------------
    def sweep(self) -> int:
        claims = self.store.list_by_status(ClaimStatus.CLAIMING, limit=self.sweep_limit)
        n = 0
        for c in claims:
            if self.runner.submit(c.id) is not None:
                n += 1
        if n:
            log.info("[SWEEP] submitted %d claiming claims", n)
        return n

    def _ensure_listening(self) -> None:
        if self._conn is not None or self._connect is None:
            return
        conn = self._connect()
        conn.execute(f"LISTEN {CHANNEL}")
        self._conn = conn
        log.info("LISTEN %s", CHANNEL)

    def _drop_connection(self) -> None:
        conn, self._conn = self._conn, None
        if conn is None:
            return
        try:
            conn.close()
        except psycopg.Error:
            log.warning("listener connection close failed", exc_info=True)

    def drain_notifications(self) -> int:
        self._ensure_listening()
        if self._conn is None:
            self._stop_event.wait(self.notify_timeout_sec)
            return 0

        n = 0
        for notify in self._conn.notifies(timeout=self.notify_timeout_sec):
            claim_id = (notify.payload or "").strip()
            if claim_id:
                self.runner.submit(claim_id)
                n += 1
            if self._stop_event.is_set():
                break
        return n

    # ------------------------------------------------------------------
    # loop
    # ------------------------------------------------------------------
    def run_once(self) -> None:
        now = time.monotonic()
        if now >= self._next_sweep:
            self._next_sweep = now + self.sweep_sec
            self.sweep()
        self.drain_notifications()

    def run(self) -> None:
        log.info("ClaimListener started (sweep=%.1fs)", self.sweep_sec)
        try:
            while not self._stop_event.is_set():
                try:
                    self.run_once()
                except psycopg.Error:
                    log.exception("listener DB error, reconnecting")
                    self._drop_connection()
                    self._stop_event.wait(min(5.0, self.sweep_sec))
                except Exception:
                    log.exception("listener loop error")
                    self._stop_event.wait(min(5.0, self.sweep_sec))
        finally:
            self._drop_connection()
            log.info("ClaimListener stopped")
