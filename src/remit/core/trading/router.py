# src/remit/core/trading/router.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from src.remit.core.errors import InsufficientFundsError, LegFailedError
from src.remit.core.models.enums import Denomination, OrderKind
from src.remit.core.models.order import Fill, Order, SettlementResult
from src.remit.core.trading.poller import CompletionPoller
from src.remit.core.trading.routes import LegSpec, Route, resolve_route
from src.remit.core.trading.settlement import amount_received, build_settlement
from src.remit.core.utils.idempotency import make_trade_id
from src.remit.exchanges.base.exchange import ExchangeAdapter


@dataclass(frozen=True, slots=True)
class RouterLimits:
    order_max_wait_sec: float = 30.0
    fills_max_wait_sec: float = 30.0
    fills_max_retries: int = 10


class TradeRouter:
    """
    Two-leg cross-currency trade through the bridge currency.

    Responsibilities:
      ✔ balance precondition on the source currency
      ✔ leg 1 with the exact source amount (minor unit)
      ✔ leg 2 with leg 1's actual fill (major unit), only after leg 1 completed
      ✔ settlement from both legs' fills

    Placing orders is NOT idempotent: execute() must not be retried blindly.
    """

    def __init__(
        self,
        *,
        exchange: ExchangeAdapter,
        poller: CompletionPoller,
        limits: RouterLimits | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.exchange = exchange
        self.poller = poller
        self.limits = limits or RouterLimits()
        self.logger = logger or logging.getLogger(__name__)

    # ------------------------------------------------------------------
    # public
    # ------------------------------------------------------------------
    def execute(
        self,
        source_currency: str,
        destination_currency: str,
        amount: float,
        kind: OrderKind = OrderKind.MARKET,
        limit_price: Optional[float] = None,
    ) -> SettlementResult:
        kind = OrderKind(kind)
        amount = float(amount)
        if amount <= 0:
            raise ValueError(f"amount must be > 0, got {amount}")
        if kind == OrderKind.LIMIT and (limit_price is None or float(limit_price) <= 0):
            raise ValueError("limit orders require a positive limit_price")

        route = resolve_route(source_currency, destination_currency)
        trade_id = make_trade_id()
        started_at = datetime.now(tz=timezone.utc)

        self.logger.info("[ROUTER] %s executing %s for %s %s", trade_id, route.label, amount, route.source.upper())

        self._check_balance(route.source, amount)

        # 1️⃣ leg 1: source -> bridge
        leg1_order, leg1_fills = self._run_leg(1, route.leg1, kind, amount, limit_price)
        bridge_amount = amount_received(leg1_fills, route.bridge)
        if bridge_amount <= 0:
            raise LegFailedError(
                1, leg1_order.status.value,
                order_id=leg1_order.order_id,
                reason=f"no {route.bridge.upper()} received",
            )

        self.logger.info(
            "[ROUTER] %s leg 1 completed: %s %s -> %s %s",
            trade_id, amount, route.source.upper(), bridge_amount, route.bridge.upper(),
        )

        # 2️⃣ leg 2: bridge -> destination, sized by the actual leg 1 fill
        leg2_order, leg2_fills = self._run_second_leg(route, bridge_amount)

        result = build_settlement(
            trade_id=trade_id,
            source_currency=route.source,
            destination_currency=route.destination,
            source_amount=amount,
            legs=[(leg1_order, leg1_fills), (leg2_order, leg2_fills)],
            destination_fills=leg2_fills,
            started_at=started_at,
        )

        if result.destination_amount <= 0:
            raise LegFailedError(
                2, leg2_order.status.value,
                order_id=leg2_order.order_id,
                reason=f"no {route.destination.upper()} received",
                stranded_amount=bridge_amount,
                stranded_currency=route.bridge,
            )

        self.logger.info(
            "[ROUTER] %s done: %s %s -> %s %s rate=%.8f fee=%s (%dms)",
            trade_id, result.source_amount, result.source_currency,
            result.destination_amount, result.destination_currency,
            result.executed_rate, result.total_fee, result.execution_ms,
        )
        return result

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------
    def _check_balance(self, currency: str, amount: float) -> None:
        bal = self.exchange.get_balance(currency)
        available = bal.available if bal is not None else 0.0
        if available < amount:
            raise InsufficientFundsError(currency, available, amount)

    def _run_leg(
        self,
        leg: int,
        spec: LegSpec,
        kind: OrderKind,
        amount: float,
        price: Optional[float],
    ) -> tuple[Order, list[Fill]]:
        placed = self.exchange.place_order(
            spec.book,
            spec.side,
            kind,
            amount,
            spec.denomination,
            price if kind == OrderKind.LIMIT else None,
        )
        self.logger.info(
            "[ROUTER] leg %d placed oid=%s book=%s side=%s %s=%s",
            leg, placed.order_id, spec.book, spec.side.value, spec.denomination.value, amount,
        )

        done = self.poller.await_order_completion(placed.order_id, self.limits.order_max_wait_sec)
        if not done.is_completed:
            raise LegFailedError(leg, done.status.value, order_id=done.order_id)

        fills = self.poller.await_order_fills(
            done.order_id,
            self.limits.fills_max_wait_sec,
            self.limits.fills_max_retries,
        )

        # lookup payload does not echo what we asked for
        done.requested_amount = float(amount)
        done.denomination = Denomination(spec.denomination)
        return done, fills

    def _run_second_leg(self, route: Route, bridge_amount: float) -> tuple[Order, list[Fill]]:
        try:
            return self._run_leg(2, route.leg2, OrderKind.MARKET, bridge_amount, None)
        except LegFailedError as e:
            self.logger.error(
                "[ROUTER] leg 2 failed, %s %s stranded in custody | %s",
                bridge_amount, route.bridge.upper(), e,
            )
            raise LegFailedError(
                2, e.status,
                order_id=e.order_id,
                reason=e.reason,
                stranded_amount=bridge_amount,
                stranded_currency=route.bridge,
            ) from e
        except Exception as e:
            self.logger.error(
                "[ROUTER] leg 2 failed, %s %s stranded in custody | %r",
                bridge_amount, route.bridge.upper(), e,
            )
            raise LegFailedError(
                2, None,
                reason=f"{type(e).__name__}: {e}",
                stranded_amount=bridge_amount,
                stranded_currency=route.bridge,
            ) from e
