from __future__ import annotations
from datetime import datetime
from typing import Any

from src.remit.core.models.enums import Denomination, OrderKind, OrderSide, OrderStatus, WithdrawalStatus
from src.remit.core.models.order import Balance, Fill, Order, Ticker
from src.remit.core.models.withdrawal import MethodDescriptor, Withdrawal

def parse_ts(raw: Any) -> datetime | None:
    if not raw:
        return None
    s = str(raw).strip()
    # bitso sends "2024-05-01T12:00:00+0000"; fromisoformat wants +00:00
    if len(s) > 5 and s[-5] in "+-" and s[-4:].isdigit():
        s = s[:-2] + ":" + s[-2:]
    try:
        return datetime.fromisoformat(s.replace("Z", "+00:00"))
    except ValueError:
        return None

def _f(raw: Any) -> float:
    try:
        return float(raw or 0.0)
    except (TypeError, ValueError):
        return 0.0

# venue statuses outside the enum (queued, "partially filled", ...) are still live
_ORDER_STATUS_ALIASES = {
    "queued": OrderStatus.OPEN,
    "partially filled": OrderStatus.PARTIAL_FILL,
    "partially_filled": OrderStatus.PARTIAL_FILL,
    "canceled": OrderStatus.CANCELLED,
}

def norm_order_status(raw: Any) -> OrderStatus:
    s = str(raw or "open").strip().lower()
    try:
        return OrderStatus(s)
    except ValueError:
        return _ORDER_STATUS_ALIASES.get(s, OrderStatus.OPEN)

def norm_order(raw: dict, *, denomination: Denomination | None = None) -> Order:
    oid = str(raw.get("oid") or "")
    if not oid:
        raise ValueError(f"order payload without oid: {raw!r}")
    price = raw.get("price")
    return Order(
        order_id=oid,
        book=str(raw.get("book") or "").lower(),
        side=OrderSide(str(raw.get("side") or "buy").lower()),
        kind=OrderKind(str(raw.get("type") or "market").lower()),
        status=norm_order_status(raw.get("status")),
        requested_amount=_f(raw.get("original_amount") or raw.get("original_value")),
        denomination=denomination or Denomination.MINOR,
        price=_f(price) if price not in (None, "") else None,
        unfilled_amount=_f(raw.get("unfilled_amount")) if raw.get("unfilled_amount") is not None else None,
        created_at=parse_ts(raw.get("created_at")),
        updated_at=parse_ts(raw.get("updated_at")),
        raw_json=raw,
    )

def norm_fill(raw: dict) -> Fill:
    return Fill(
        order_id=str(raw.get("oid") or ""),
        trade_id=str(raw["tid"]) if raw.get("tid") is not None else None,
        book=str(raw.get("book") or "").lower(),
        side=OrderSide(str(raw.get("side") or "buy").lower()),
        major=_f(raw.get("major")),
        major_currency=str(raw.get("major_currency") or "").lower(),
        minor=_f(raw.get("minor")),
        minor_currency=str(raw.get("minor_currency") or "").lower(),
        fee_amount=_f(raw.get("fees_amount")),
        fee_currency=(str(raw["fees_currency"]).lower() if raw.get("fees_currency") else None),
        price=_f(raw.get("price")) or None,
        created_at=parse_ts(raw.get("created_at")),
    )

def norm_balance(raw: dict) -> Balance | None:
    cur = str(raw.get("currency") or "").lower()
    if not cur:
        return None
    return Balance(
        currency=cur,
        available=_f(raw.get("available")),
        locked=_f(raw.get("locked")),
        total=_f(raw.get("total")),
    )

def norm_ticker(raw: dict) -> Ticker | None:
    book = str(raw.get("book") or "").lower()
    if not book:
        return None
    return Ticker(
        book=book,
        bid=_f(raw.get("bid")),
        ask=_f(raw.get("ask")),
        last=_f(raw.get("last")),
        created_at=parse_ts(raw.get("created_at")),
    )

def norm_withdrawal(raw: dict) -> Withdrawal:
    wid = str(raw.get("wid") or "")
    if not wid:
        raise ValueError(f"withdrawal payload without wid: {raw!r}")
    details = raw.get("details") or {}
    destination = None
    for k in ("cvu", "cbu", "clabe", "address"):
        if details.get(k):
            destination = str(details[k])
            break
    return Withdrawal(
        withdrawal_id=wid,
        currency=str(raw.get("currency") or "").lower(),
        amount=_f(raw.get("amount")),
        status=WithdrawalStatus(str(raw.get("status") or "pending").lower()),
        asset=raw.get("asset"),
        method=raw.get("method"),
        network=raw.get("network"),
        protocol=raw.get("protocol"),
        destination=destination,
        origin_id=details.get("origin_id"),
        created_at=parse_ts(raw.get("created_at")),
        raw_json=raw,
    )

def norm_method(raw: dict) -> MethodDescriptor:
    return MethodDescriptor(
        method=str(raw.get("method") or ""),
        network=str(raw.get("network") or ""),
        protocol=str(raw.get("protocol") or ""),
        integration=raw.get("integration"),
        name=raw.get("name"),
        required_fields=tuple(raw.get("required_fields") or ()),
        optional_fields=tuple(raw.get("optional_fields") or ()),
    )
