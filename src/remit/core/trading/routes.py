# src/remit/core/trading/routes.py
from __future__ import annotations

from dataclasses import dataclass

from src.remit.core.errors import UnsupportedPairError
from src.remit.core.models.enums import Denomination, OrderSide


@dataclass(frozen=True, slots=True)
class LegSpec:
    book: str
    side: OrderSide
    denomination: Denomination


@dataclass(frozen=True, slots=True)
class Route:
    source: str
    destination: str
    bridge: str
    leg1: LegSpec
    leg2: LegSpec

    @property
    def label(self) -> str:
        return f"{self.source.upper()} -> {self.bridge.upper()} -> {self.destination.upper()}"


BRIDGE_CURRENCY = "usd"

# leg 1 buys the bridge with the exact source amount (minor unit);
# leg 2 sells whatever leg 1 actually filled (major unit).
ROUTES: dict[tuple[str, str], Route] = {
    ("mxn", "ars"): Route(
        source="mxn",
        destination="ars",
        bridge=BRIDGE_CURRENCY,
        leg1=LegSpec(book="usd_mxn", side=OrderSide.BUY, denomination=Denomination.MINOR),
        leg2=LegSpec(book="usd_ars", side=OrderSide.SELL, denomination=Denomination.MAJOR),
    ),
    ("ars", "mxn"): Route(
        source="ars",
        destination="mxn",
        bridge=BRIDGE_CURRENCY,
        leg1=LegSpec(book="usd_ars", side=OrderSide.BUY, denomination=Denomination.MINOR),
        leg2=LegSpec(book="usd_mxn", side=OrderSide.SELL, denomination=Denomination.MAJOR),
    ),
}


def resolve_route(source_currency: str, destination_currency: str) -> Route:
    route = ROUTES.get((str(source_currency).lower(), str(destination_currency).lower()))
    if route is None:
        raise UnsupportedPairError(source_currency, destination_currency)
    return route


def supported_currencies() -> set[str]:
    out: set[str] = set()
    for src, dst in ROUTES:
        out.add(src)
        out.add(dst)
    return out
