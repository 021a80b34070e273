# src/remit/exchanges/base/exchange.py
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from src.remit.core.models.enums import Denomination, OrderKind, OrderSide
from src.remit.core.models.order import Balance, Fill, Order, Ticker


class ExchangeAdapter(ABC):
    """
    Base exchange adapter.
    Implementations transport orders only; sequencing belongs to the trade router.
    """

    name: str

    # ---- account ----

    @abstractmethod
    def get_balances(self) -> list[Balance]:
        ...

    def get_balance(self, currency: str) -> Balance | None:
        cur = currency.lower()
        for b in self.get_balances():
            if b.currency.lower() == cur:
                return b
        return None

    # ---- trading ----

    @abstractmethod
    def place_order(
        self,
        book: str,
        side: OrderSide,
        kind: OrderKind,
        amount: float,
        denomination: Denomination,
        price: Optional[float] = None,
    ) -> Order:
        """
        Submit order to exchange. Not idempotent.
        """
        ...

    @abstractmethod
    def get_order_status(self, order_id: str) -> Order:
        ...

    @abstractmethod
    def get_order_fills(self, order_id: str) -> list[Fill]:
        ...

    # ---- market data ----

    @abstractmethod
    def get_tickers(self) -> list[Ticker]:
        ...
