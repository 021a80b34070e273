# src/remit/core/trading/settlement.py
"""
Settlement arithmetic over exchange fills.

Everything here is pure: no I/O, no clocks other than the timestamps passed in.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Iterable, Sequence

from src.remit.core.models.enums import OrderSide
from src.remit.core.models.order import Fill, LegSummary, Order, SettlementResult


def amount_received(fills: Iterable[Fill], currency: str) -> float:
    """
    Sum of `currency` actually credited by the fills.

    buy fill  -> we receive the major currency
    sell fill -> we receive the minor currency

    Returns 0.0 when nothing matches; callers treat that as a failed leg.
    """
    cur = str(currency).lower()
    total = 0.0
    for f in fills:
        if f.side == OrderSide.BUY:
            if f.major_currency.lower() == cur:
                total += abs(f.major)
        else:
            if f.minor_currency.lower() == cur:
                total += abs(f.minor)
    return total


def total_fee(fills: Iterable[Fill]) -> float:
    """Sum of absolute fees. No currency conversion."""
    return sum(abs(f.fee_amount) for f in fills)


def fee_currency(fills: Sequence[Fill]) -> str | None:
    for f in fills:
        if f.fee_currency:
            return f.fee_currency
    return None


def executed_rate(source_amount: float, destination_amount: float) -> float:
    if source_amount == 0:
        raise ValueError("executed_rate undefined for source_amount == 0")
    return destination_amount / source_amount


def summarize_leg(leg: int, order: Order, fills: Sequence[Fill]) -> LegSummary:
    return LegSummary(
        leg=leg,
        order_id=order.order_id,
        book=order.book,
        side=order.side.value,
        amount=float(order.requested_amount or 0.0),
        price=float(order.price or 0.0),
        status=order.status.value,
        fee=total_fee(fills),
        fee_currency=fee_currency(fills),
    )


def build_settlement(
    *,
    trade_id: str,
    source_currency: str,
    destination_currency: str,
    source_amount: float,
    legs: Sequence[tuple[Order, Sequence[Fill]]],
    destination_fills: Sequence[Fill],
    started_at: datetime,
    finished_at: datetime | None = None,
) -> SettlementResult:
    finished = finished_at or datetime.now(tz=timezone.utc)
    dst_amount = amount_received(destination_fills, destination_currency)

    summaries = tuple(summarize_leg(i, order, fills) for i, (order, fills) in enumerate(legs, start=1))

    return SettlementResult(
        trade_id=trade_id,
        source_currency=source_currency.upper(),
        destination_currency=destination_currency.upper(),
        source_amount=float(source_amount),
        destination_amount=dst_amount,
        executed_rate=executed_rate(source_amount, dst_amount),
        legs=summaries,
        total_fee=sum(s.fee for s in summaries),
        execution_ms=max(0, int((finished - started_at).total_seconds() * 1000)),
        timestamp=finished,
    )
