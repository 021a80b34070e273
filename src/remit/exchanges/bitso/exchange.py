# src/remit/exchanges/bitso/exchange.py
from __future__ import annotations

import logging
from typing import Optional

from src.remit.core.errors import UpstreamApiError
from src.remit.core.models.enums import Denomination, OrderKind, OrderSide
from src.remit.core.models.order import Balance, Fill, Order, Ticker
from src.remit.core.utils.amounts import fmt_amount
from src.remit.exchanges.base.exchange import ExchangeAdapter
from src.remit.exchanges.bitso.normalize import norm_balance, norm_fill, norm_order, norm_ticker
from src.remit.exchanges.bitso.rest import BitsoREST


class BitsoExchange(ExchangeAdapter):
    """
    Bitso spot exchange adapter.
    One REST client per process, injected by the runner.
    """

    name = "bitso"

    def __init__(self, rest: BitsoREST):
        self.rest = rest
        self.logger = logging.getLogger("bitso.exchange")

    # ---------------- account ----------------

    def get_balances(self) -> list[Balance]:
        payload = self.rest.balance() or {}
        out: list[Balance] = []
        for raw in payload.get("balances") or []:
            b = norm_balance(raw)
            if b is not None:
                out.append(b)
        return out

    # ---------------- trading ----------------

    def place_order(
        self,
        book: str,
        side: OrderSide,
        kind: OrderKind,
        amount: float,
        denomination: Denomination,
        price: Optional[float] = None,
    ) -> Order:
        params: dict[str, str] = {
            "book": book,
            "side": OrderSide(side).value,
            "type": OrderKind(kind).value,
        }
        params[Denomination(denomination).value] = fmt_amount(amount)
        if OrderKind(kind) == OrderKind.LIMIT and price:
            params["price"] = fmt_amount(price)

        self.logger.info("Placing order: %s", params)
        raw = self.rest.place_order(**params) or {}
        # POST orders may return only {"oid": ...}
        raw = {"book": book, "side": params["side"], "type": params["type"], "status": "open", **raw}
        order = norm_order(raw, denomination=Denomination(denomination))
        order.requested_amount = float(amount)
        return order

    def get_order_status(self, order_id: str) -> Order:
        payload = self.rest.lookup_order(order_id)
        rows = payload if isinstance(payload, list) else [payload]
        if not rows or not rows[0]:
            # freshly placed orders can lag behind the lookup endpoint
            raise UpstreamApiError(None, f"order {order_id} not visible yet", message=f"order {order_id} not found")
        return norm_order(rows[0])

    def get_order_fills(self, order_id: str) -> list[Fill]:
        return [norm_fill(r) for r in (self.rest.order_trades(order_id) or [])]

    # ---------------- market data ----------------

    def get_tickers(self) -> list[Ticker]:
        out: list[Ticker] = []
        for raw in self.rest.ticker() or []:
            t = norm_ticker(raw)
            if t is not None:
                out.append(t)
        return out
