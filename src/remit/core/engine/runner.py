# src/remit/core/engine/runner.py
from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Optional

from src.remit.core.claims.processor import ClaimProcessor

log = logging.getLogger("remit.engine.runner")


class ClaimRunner:
    """
    One task per claim on a bounded thread pool.

    A claim id already queued or running is not submitted again; the
    processor's compare-and-set covers duplicates across processes.
    """

    def __init__(self, processor: ClaimProcessor, *, max_workers: int = 4):
        workers = max(1, min(32, int(max_workers or 1)))
        self.processor = processor
        self._pool = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="claim")
        self._lock = threading.Lock()
        self._inflight: set[str] = set()
        log.info("ClaimRunner started: workers=%d", workers)

    def submit(self, claim_id: str) -> Optional[Future]:
        claim_id = str(claim_id)
        with self._lock:
            if claim_id in self._inflight:
                log.debug("[CLAIM] %s already in flight, skip", claim_id)
                return None
            self._inflight.add(claim_id)

        fut = self._pool.submit(self.processor.on_claim_requested, claim_id)
        fut.add_done_callback(lambda f, cid=claim_id: self._done(cid, f))
        return fut

    def inflight(self) -> int:
        with self._lock:
            return len(self._inflight)

    def _done(self, claim_id: str, fut: Future) -> None:
        with self._lock:
            self._inflight.discard(claim_id)

        if fut.cancelled():
            log.warning("[CLAIM] %s task cancelled", claim_id)
            return
        exc = fut.exception()
        if exc is not None:
            # already persisted as failed by the processor
            log.error("[CLAIM] %s task raised %s: %s", claim_id, type(exc).__name__, exc)

    def shutdown(self, wait: bool = True) -> None:
        self._pool.shutdown(wait=wait, cancel_futures=not wait)
        log.info("ClaimRunner stopped")
