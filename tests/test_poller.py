"""
Completion poller: bounded waits, transient error tolerance, fill backoff
"""

from unittest.mock import MagicMock

import pytest
import requests

from src.remit.core.errors import (
    FillsUnavailableError,
    OrderTimeoutError,
    PollCancelledError,
    UpstreamApiError,
)
from src.remit.core.models.enums import Denomination, OrderKind, OrderSide, OrderStatus, WithdrawalStatus
from src.remit.core.trading.poller import CompletionPoller, is_transient
from src.remit.exchanges.bitso.exchange import BitsoExchange


def _place(exchange, book="usd_mxn"):
    return exchange.place_order(book, OrderSide.BUY, OrderKind.MARKET, 100.0, Denomination.MINOR)


class TestIsTransient:
    def test_classification(self):
        assert is_transient(UpstreamApiError(None, "reset"))
        assert is_transient(UpstreamApiError(429, "slow down"))
        assert is_transient(UpstreamApiError(503, "down"))
        assert is_transient(requests.ConnectionError("boom"))
        assert not is_transient(UpstreamApiError(400, "bad"))
        assert not is_transient(ValueError("x"))


class TestOrderCompletion:
    def test_returns_terminal_order(self, exchange, poller, stop_event):
        exchange.plan("usd_mxn", statuses=[OrderStatus.OPEN, OrderStatus.PARTIAL_FILL, OrderStatus.COMPLETED])
        o = _place(exchange)

        done = poller.await_order_completion(o.order_id, max_wait=30)

        assert done.status == OrderStatus.COMPLETED
        assert exchange.status_calls == 3
        assert stop_event.waits == [1.0, 1.0]

    def test_cancelled_is_terminal(self, exchange, poller):
        exchange.plan("usd_mxn", statuses=[OrderStatus.CANCELLED])
        o = _place(exchange)
        assert poller.await_order_completion(o.order_id).status == OrderStatus.CANCELLED

    def test_timeout_is_bounded(self, exchange, poller, clock):
        exchange.plan("usd_mxn", statuses=[OrderStatus.OPEN])
        o = _place(exchange)
        start = clock()

        with pytest.raises(OrderTimeoutError) as ei:
            poller.await_order_completion(o.order_id, max_wait=5)

        assert isinstance(ei.value, TimeoutError)
        assert clock() - start == pytest.approx(5.0)
        assert exchange.status_calls == 5

    def test_in_between_venue_statuses_keep_polling(self, clock, stop_event):
        rest = MagicMock()
        rest.lookup_order.side_effect = [
            [{"oid": "abc", "status": "queued"}],
            [{"oid": "abc", "status": "partially filled"}],
            [{"oid": "abc", "status": "completed"}],
        ]
        poller = CompletionPoller(BitsoExchange(rest), interval_sec=1.0, stop_event=stop_event, clock=clock)

        done = poller.await_order_completion("abc", max_wait=30)

        assert done.status == OrderStatus.COMPLETED
        assert rest.lookup_order.call_count == 3
        assert stop_event.waits == [1.0, 1.0]

    def test_transient_errors_are_swallowed(self, exchange, poller):
        exchange.plan(
            "usd_mxn",
            statuses=[UpstreamApiError(503, "x"), requests.Timeout("t"), OrderStatus.COMPLETED],
        )
        o = _place(exchange)
        assert poller.await_order_completion(o.order_id).status == OrderStatus.COMPLETED

    def test_permanent_error_propagates(self, exchange, poller):
        exchange.plan("usd_mxn", statuses=[UpstreamApiError(401, "bad key")])
        o = _place(exchange)
        with pytest.raises(UpstreamApiError):
            poller.await_order_completion(o.order_id)
        assert exchange.status_calls == 1

    def test_cancellation(self, exchange, poller, stop_event):
        exchange.plan("usd_mxn", statuses=[OrderStatus.OPEN])
        o = _place(exchange)
        stop_event.set()
        with pytest.raises(PollCancelledError):
            poller.await_order_completion(o.order_id)


class TestOrderFills:
    def test_backoff_schedule_until_fills_appear(self, exchange, poller, stop_event, fill_factory):
        fill = fill_factory("?", "usd_mxn", "buy", 5.0, 100.0)
        exchange.plan("usd_mxn", fills=[[], [], [], [fill]])
        o = _place(exchange)

        fills = poller.await_order_fills(o.order_id, max_wait=60, max_retries=10)

        assert len(fills) == 1
        assert fills[0].order_id == o.order_id
        # base * 2^(n-1): 1, 2, 4
        assert stop_event.waits == [1.0, 2.0, 4.0]

    def test_backoff_is_capped(self, exchange, poller, stop_event):
        exchange.plan("usd_mxn", fills=[[]])
        o = _place(exchange)

        with pytest.raises(FillsUnavailableError) as ei:
            poller.await_order_fills(o.order_id, max_wait=1000, max_retries=6)

        assert stop_event.waits == [1.0, 2.0, 4.0, 5.0, 5.0]
        assert ei.value.retries == 6
        assert exchange.fill_calls == 6

    def test_wall_clock_bound(self, exchange, poller, clock):
        exchange.plan("usd_mxn", fills=[[]])
        o = _place(exchange)
        start = clock()

        with pytest.raises(FillsUnavailableError):
            poller.await_order_fills(o.order_id, max_wait=6, max_retries=100)

        assert clock() - start <= 6.0 + 1e-9

    def test_errors_count_as_retries(self, exchange, poller):
        exchange.plan("usd_mxn", fills=[UpstreamApiError(500, "x")])
        o = _place(exchange)

        with pytest.raises(FillsUnavailableError) as ei:
            poller.await_order_fills(o.order_id, max_wait=100, max_retries=3)

        assert ei.value.retries == 3
        assert isinstance(ei.value.last_error, UpstreamApiError)


class TestWithdrawal:
    def test_await_withdrawal(self, poller, rail):
        rail.statuses = [WithdrawalStatus.PENDING, WithdrawalStatus.PROCESSING, WithdrawalStatus.COMPLETE]
        assert poller.await_withdrawal("wid1", max_wait=60).status == WithdrawalStatus.COMPLETE

    def test_requires_rail(self, exchange):
        with pytest.raises(RuntimeError):
            CompletionPoller(exchange).await_withdrawal("wid1")
