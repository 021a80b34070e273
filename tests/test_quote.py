"""
Indicative quote through the bridge
"""

import pytest

from src.remit.core.errors import UnsupportedPairError, UpstreamApiError
from src.remit.core.models.order import Ticker
from src.remit.core.trading.quote import quote_cross_rate


class TestQuote:
    def test_mxn_to_ars(self, exchange):
        q = quote_cross_rate(exchange, "mxn", "ars", 1000.0)

        # mids: usd_mxn 20, usd_ars 1000 -> 1 MXN = 50 ARS
        assert q.exchange_rate == pytest.approx(50.0)
        assert q.destination_amount == pytest.approx(50_000.0)
        assert q.source_currency == "MXN" and q.destination_currency == "ARS"
        assert q.calculation_method == "MXN -> USD -> ARS"
        assert exchange.placed == []

    def test_ars_to_mxn(self, exchange):
        q = quote_cross_rate(exchange, "ARS", "MXN", 50_000.0)
        assert q.exchange_rate == pytest.approx(0.02)
        assert q.destination_amount == pytest.approx(1000.0)

    def test_missing_market_data(self, exchange):
        exchange.tickers = [Ticker(book="usd_mxn", bid=19.9, ask=20.1)]
        with pytest.raises(UpstreamApiError) as ei:
            quote_cross_rate(exchange, "mxn", "ars", 1000.0)
        assert ei.value.status == 503

    def test_bad_input(self, exchange):
        with pytest.raises(ValueError):
            quote_cross_rate(exchange, "mxn", "ars", 0)
        with pytest.raises(UnsupportedPairError):
            quote_cross_rate(exchange, "mxn", "eur", 10)

    def test_to_dict(self, exchange):
        d = quote_cross_rate(exchange, "mxn", "ars", 1.0).to_dict()
        assert set(d) >= {"from_currency", "to_currency", "from_amount", "to_amount", "exchange_rate", "timestamp"}
