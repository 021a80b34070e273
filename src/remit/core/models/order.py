# src/remit/core/models/order.py
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from src.remit.core.models.enums import Denomination, OrderKind, OrderSide, OrderStatus


_TERMINAL_ORDER_STATUSES = {OrderStatus.COMPLETED, OrderStatus.CANCELLED}


@dataclass(slots=True)
class Order:
    """
    One leg placed on the exchange.

    The exchange client only transports it; the trade router owns it for the
    lifetime of the trade.
    """

    order_id: str
    book: str
    side: OrderSide
    kind: OrderKind
    status: OrderStatus

    requested_amount: float = 0.0
    denomination: Denomination = Denomination.MINOR
    price: Optional[float] = None
    unfilled_amount: Optional[float] = None

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    raw_json: dict[str, Any] | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status in _TERMINAL_ORDER_STATUSES

    @property
    def is_completed(self) -> bool:
        return self.status == OrderStatus.COMPLETED


@dataclass(frozen=True, slots=True)
class Fill:
    order_id: str
    book: str
    side: OrderSide

    major: float
    major_currency: str
    minor: float
    minor_currency: str

    fee_amount: float = 0.0
    fee_currency: Optional[str] = None
    price: Optional[float] = None
    trade_id: Optional[str] = None
    created_at: Optional[datetime] = None


@dataclass(frozen=True, slots=True)
class Balance:
    currency: str
    available: float
    locked: float = 0.0
    total: float = 0.0


@dataclass(frozen=True, slots=True)
class Ticker:
    book: str
    bid: float
    ask: float
    last: float = 0.0
    created_at: Optional[datetime] = None

    @property
    def mid(self) -> float:
        return (self.bid + self.ask) / 2.0


@dataclass(frozen=True, slots=True)
class LegSummary:
    leg: int
    order_id: str
    book: str
    side: str
    amount: float
    price: float
    status: str
    fee: float
    fee_currency: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "leg": self.leg,
            "order_id": self.order_id,
            "book": self.book,
            "side": self.side,
            "amount": self.amount,
            "price": self.price,
            "status": self.status,
            "fee": self.fee,
            "fee_currency": self.fee_currency,
        }


@dataclass(frozen=True, slots=True)
class SettlementResult:
    trade_id: str
    source_currency: str
    destination_currency: str
    source_amount: float
    destination_amount: float
    executed_rate: float
    legs: tuple[LegSummary, ...] = field(default_factory=tuple)
    total_fee: float = 0.0
    execution_ms: int = 0
    timestamp: Optional[datetime] = None

    @property
    def leg_fees(self) -> list[float]:
        return [leg.fee for leg in self.legs]

    def to_dict(self) -> dict[str, Any]:
        """Serialize for claim metadata."""
        return {
            "trade_id": self.trade_id,
            "from_currency": self.source_currency,
            "to_currency": self.destination_currency,
            "from_amount": self.source_amount,
            "to_amount": self.destination_amount,
            "executed_rate": self.executed_rate,
            "legs": [leg.to_dict() for leg in self.legs],
            "total_fee": self.total_fee,
            "execution_ms": self.execution_ms,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
        }
