# src/remit/core/trading/poller.py
from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Optional

import requests

from src.remit.core.errors import (
    FillsUnavailableError,
    OrderTimeoutError,
    PollCancelledError,
    UpstreamApiError,
)
from src.remit.core.models.order import Fill, Order
from src.remit.core.models.withdrawal import Withdrawal
from src.remit.exchanges.base.exchange import ExchangeAdapter
from src.remit.exchanges.base.rail import RailAdapter

logger = logging.getLogger(__name__)


def is_transient(exc: BaseException) -> bool:
    if isinstance(exc, UpstreamApiError):
        return exc.is_transient
    return isinstance(exc, requests.RequestException)


class CompletionPoller:
    """
    Turns the exchange's asynchronous order lifecycle into a bounded blocking wait.

    Every wait goes through stop_event.wait(), so whoever owns the event can
    cancel an in-flight wait from outside (PollCancelledError).
    """

    def __init__(
        self,
        exchange: ExchangeAdapter,
        *,
        rail: RailAdapter | None = None,
        interval_sec: float = 1.0,
        backoff_base_sec: float = 1.0,
        backoff_cap_sec: float = 5.0,
        stop_event: threading.Event | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.exchange = exchange
        self.rail = rail
        self.interval_sec = float(interval_sec)
        self.backoff_base_sec = float(backoff_base_sec)
        self.backoff_cap_sec = float(backoff_cap_sec)
        self._stop = stop_event or threading.Event()
        self._clock = clock

    def stop(self) -> None:
        self._stop.set()

    def _sleep(self, delay: float) -> None:
        if self._stop.is_set():
            raise PollCancelledError("poller stopped")
        if delay <= 0:
            return
        if self._stop.wait(delay):
            raise PollCancelledError("poller stopped")

    # ------------------------------------------------------------------
    # order completion (fixed interval)
    # ------------------------------------------------------------------
    def await_order_completion(self, order_id: str, max_wait: float = 30.0) -> Order:
        return self._await_terminal(
            subject=f"order {order_id}",
            fetch=lambda: self.exchange.get_order_status(order_id),
            max_wait=max_wait,
        )

    # ------------------------------------------------------------------
    # withdrawal completion (fixed interval)
    # ------------------------------------------------------------------
    def await_withdrawal(self, withdrawal_id: str, max_wait: float = 300.0) -> Withdrawal:
        if self.rail is None:
            raise RuntimeError("await_withdrawal requires a rail adapter")
        rail = self.rail
        return self._await_terminal(
            subject=f"withdrawal {withdrawal_id}",
            fetch=lambda: rail.get_withdrawal_status(withdrawal_id),
            max_wait=max_wait,
        )

    def _await_terminal(self, *, subject: str, fetch: Callable, max_wait: float):
        deadline = self._clock() + float(max_wait)

        while True:
            remaining = deadline - self._clock()
            if remaining <= 0:
                break

            try:
                obj = fetch()
                if obj.is_terminal:
                    logger.info("[POLL] %s terminal status=%s", subject, obj.status.value)
                    return obj
                logger.debug("[POLL] %s status=%s", subject, obj.status.value)
            except Exception as e:
                if not is_transient(e):
                    raise
                logger.warning("[POLL] %s status fetch failed, retrying | %r", subject, e)

            remaining = deadline - self._clock()
            if remaining <= 0:
                break
            self._sleep(min(self.interval_sec, remaining))

        raise OrderTimeoutError(subject, max_wait)

    # ------------------------------------------------------------------
    # fills (exponential backoff, wall-clock + retry-count bound)
    # ------------------------------------------------------------------
    def _backoff(self, retry: int) -> float:
        return min(self.backoff_base_sec * (2 ** (retry - 1)), self.backoff_cap_sec)

    def await_order_fills(self, order_id: str, max_wait: float = 30.0, max_retries: int = 10) -> list[Fill]:
        start = self._clock()
        retries = 0
        last_err: Optional[Exception] = None

        while self._clock() - start < max_wait and retries < max_retries:
            try:
                fills = self.exchange.get_order_fills(order_id)
                if fills:
                    logger.info(
                        "[POLL] found %d fills for order %s after %d retries",
                        len(fills), order_id, retries,
                    )
                    return list(fills)
                last_err = None
            except (UpstreamApiError, requests.RequestException) as e:
                last_err = e
                logger.warning("[POLL] fills fetch failed for order %s, retry %d | %r", order_id, retries, e)

            retries += 1
            if retries >= max_retries:
                break

            delay = self._backoff(retries)
            remaining = max_wait - (self._clock() - start)
            if remaining <= 0:
                break
            logger.info(
                "[POLL] no fills for order %s, retry %d/%d in %.1fs",
                order_id, retries, max_retries, min(delay, remaining),
            )
            self._sleep(min(delay, remaining))

        raise FillsUnavailableError(
            order_id,
            retries=retries,
            elapsed=self._clock() - start,
            last_error=last_err,
        )
