# src/remit/core/trading/quote.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone

from src.remit.core.errors import UpstreamApiError
from src.remit.core.models.order import Ticker
from src.remit.core.trading.routes import resolve_route
from src.remit.exchanges.base.exchange import ExchangeAdapter


@dataclass(frozen=True, slots=True)
class Quote:
    source_currency: str
    destination_currency: str
    source_amount: float
    destination_amount: float
    exchange_rate: float
    source_bridge_rate: float
    destination_bridge_rate: float
    calculation_method: str
    timestamp: datetime

    def to_dict(self) -> dict:
        return {
            "from_currency": self.source_currency,
            "to_currency": self.destination_currency,
            "from_amount": self.source_amount,
            "to_amount": self.destination_amount,
            "exchange_rate": self.exchange_rate,
            "source_bridge_rate": self.source_bridge_rate,
            "destination_bridge_rate": self.destination_bridge_rate,
            "calculation_method": self.calculation_method,
            "timestamp": self.timestamp.isoformat(),
        }


def find_ticker(tickers: list[Ticker], book: str) -> Ticker | None:
    b = book.lower()
    for t in tickers:
        if t.book.lower() == b:
            return t
    return None


def quote_cross_rate(
    exchange: ExchangeAdapter,
    source_currency: str,
    destination_currency: str,
    amount: float,
) -> Quote:
    """
    Indicative quote through the bridge using mid prices. Places nothing.

    1 SRC = (1 / bridge_SRC) BRIDGE = (bridge_DST / bridge_SRC) DST
    """
    if amount is None or float(amount) <= 0:
        raise ValueError("amount must be greater than 0")

    route = resolve_route(source_currency, destination_currency)
    tickers = exchange.get_tickers()

    src_ticker = find_ticker(tickers, route.leg1.book)
    dst_ticker = find_ticker(tickers, route.leg2.book)
    for book, t in ((route.leg1.book, src_ticker), (route.leg2.book, dst_ticker)):
        if t is None or t.mid <= 0:
            raise UpstreamApiError(503, f"{book.upper()} market data not available", source="bitso")

    src_rate = src_ticker.mid
    dst_rate = dst_ticker.mid
    rate = dst_rate / src_rate

    return Quote(
        source_currency=route.source.upper(),
        destination_currency=route.destination.upper(),
        source_amount=float(amount),
        destination_amount=round(float(amount) * rate, 6),
        exchange_rate=round(rate, 8),
        source_bridge_rate=round(src_rate, 6),
        destination_bridge_rate=round(dst_rate, 6),
        calculation_method=route.label,
        timestamp=datetime.now(tz=timezone.utc),
    )
