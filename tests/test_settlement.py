"""
Settlement calculator: received amount, fees, executed rate
"""

import itertools
from datetime import datetime, timedelta, timezone

import pytest

from src.remit.core.models.enums import OrderKind, OrderSide, OrderStatus
from src.remit.core.models.order import Order
from src.remit.core.trading.settlement import (
    amount_received,
    build_settlement,
    executed_rate,
    fee_currency,
    total_fee,
)


@pytest.fixture
def buy_fills(fill_factory):
    return [
        fill_factory("o1", "usd_mxn", "buy", 30.0, 600.0, fee=0.03, fee_currency="usd"),
        fill_factory("o1", "usd_mxn", "buy", 22.3, 400.0, fee=-0.02, fee_currency="usd"),
    ]


class TestAmountReceived:
    def test_buy_side_counts_major(self, buy_fills):
        assert amount_received(buy_fills, "usd") == pytest.approx(52.3)
        assert amount_received(buy_fills, "mxn") == 0.0

    def test_sell_side_counts_minor(self, fill_factory):
        fills = [fill_factory("o2", "usd_ars", "sell", 52.3, 52300.0)]
        assert amount_received(fills, "ars") == pytest.approx(52300.0)
        assert amount_received(fills, "usd") == 0.0

    def test_currency_match_is_case_insensitive(self, buy_fills):
        assert amount_received(buy_fills, "USD") == pytest.approx(52.3)

    def test_no_match_returns_zero(self, buy_fills):
        assert amount_received([], "usd") == 0.0
        assert amount_received(buy_fills, "eur") == 0.0

    def test_order_of_fills_does_not_matter(self, fill_factory):
        fills = [
            fill_factory("o", "usd_ars", "sell", 1.0, 1000.1),
            fill_factory("o", "usd_ars", "sell", 2.0, 2000.2),
            fill_factory("o", "usd_ars", "sell", 0.5, 500.05),
        ]
        expected = amount_received(fills, "ars")
        for perm in itertools.permutations(fills):
            assert amount_received(list(perm), "ars") == pytest.approx(expected)


class TestFees:
    def test_total_fee_sums_absolute_values(self, buy_fills):
        assert total_fee(buy_fills) == pytest.approx(0.05)

    def test_fee_currency_first_non_empty(self, buy_fills, fill_factory):
        assert fee_currency(buy_fills) == "usd"
        assert fee_currency([fill_factory("o", "usd_mxn", "buy", 1, 20)]) is None


class TestExecutedRate:
    def test_rate(self):
        assert executed_rate(1000.0, 52300.0) == pytest.approx(52.3)

    def test_zero_source_is_rejected(self):
        with pytest.raises(ValueError):
            executed_rate(0.0, 10.0)


class TestBuildSettlement:
    def test_result_fields(self, buy_fills, fill_factory):
        leg1 = Order("o1", "usd_mxn", OrderSide.BUY, OrderKind.MARKET, OrderStatus.COMPLETED, requested_amount=1000.0)
        leg2 = Order("o2", "usd_ars", OrderSide.SELL, OrderKind.MARKET, OrderStatus.COMPLETED, requested_amount=52.3)
        leg2_fills = [fill_factory("o2", "usd_ars", "sell", 52.3, 52300.0, fee=52.3, fee_currency="ars")]
        started = datetime(2024, 5, 1, tzinfo=timezone.utc)

        r = build_settlement(
            trade_id="trade_1",
            source_currency="mxn",
            destination_currency="ars",
            source_amount=1000.0,
            legs=[(leg1, buy_fills), (leg2, leg2_fills)],
            destination_fills=leg2_fills,
            started_at=started,
            finished_at=started + timedelta(milliseconds=1500),
        )

        assert r.source_currency == "MXN"
        assert r.destination_currency == "ARS"
        assert r.destination_amount == pytest.approx(52300.0)
        assert r.destination_amount == pytest.approx(r.source_amount * r.executed_rate)
        assert r.leg_fees == pytest.approx([0.05, 52.3])
        assert r.total_fee == pytest.approx(52.35)
        assert r.execution_ms == 1500
        assert [leg.fee_currency for leg in r.legs] == ["usd", "ars"]

        d = r.to_dict()
        assert d["to_amount"] == pytest.approx(52300.0)
        assert d["legs"][1]["order_id"] == "o2"
