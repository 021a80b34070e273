# src/remit/core/errors.py
from __future__ import annotations

from typing import Any


class SettlementError(Exception):
    """Base class for every error raised by the settlement pipeline."""


# ----------------------------------------------------------------------
# upstream (exchange / rail transport)
# ----------------------------------------------------------------------
class UpstreamApiError(SettlementError):
    """
    HTTP-level failure from the exchange or the payout rail.

    status is None for transport errors (connection reset, DNS, timeout).
    """

    def __init__(self, status: int | None, body: Any, *, source: str = "bitso", message: str | None = None):
        self.status = status
        self.body = body
        self.source = source
        text = body if isinstance(body, str) else repr(body)
        super().__init__(message or f"{source} HTTP {status}: {text[:500]}")

    @property
    def is_transient(self) -> bool:
        if self.status is None:
            return True
        return self.status == 429 or self.status >= 500


# ----------------------------------------------------------------------
# trading
# ----------------------------------------------------------------------
class UnsupportedPairError(SettlementError):
    def __init__(self, source_currency: str, destination_currency: str):
        self.source_currency = source_currency
        self.destination_currency = destination_currency
        super().__init__(f"unsupported currency pair: {source_currency} -> {destination_currency}")


class LegFailedError(SettlementError):
    """
    One leg of a bridged trade did not produce a usable result.

    When leg 2 fails, stranded_amount / stranded_currency describe the bridge
    balance that leg 1 left in the custody account.
    """

    def __init__(
        self,
        leg: int,
        status: str | None,
        *,
        order_id: str | None = None,
        reason: str = "",
        stranded_amount: float = 0.0,
        stranded_currency: str | None = None,
    ):
        self.leg = int(leg)
        self.status = status
        self.order_id = order_id
        self.reason = reason
        self.stranded_amount = float(stranded_amount or 0.0)
        self.stranded_currency = stranded_currency

        msg = f"leg {self.leg} failed (status={status}, order_id={order_id})"
        if reason:
            msg += f": {reason}"
        if self.stranded_amount > 0:
            msg += f" | stranded {self.stranded_amount} {stranded_currency}"
        super().__init__(msg)


class OrderTimeoutError(SettlementError, TimeoutError):
    def __init__(self, subject: str, max_wait: float):
        self.subject = subject
        self.max_wait = float(max_wait)
        super().__init__(f"{subject} did not reach a terminal status within {self.max_wait:.1f}s")


class FillsUnavailableError(SettlementError):
    def __init__(self, order_id: str, *, retries: int, elapsed: float, last_error: Exception | None = None):
        self.order_id = order_id
        self.retries = int(retries)
        self.elapsed = float(elapsed)
        self.last_error = last_error
        msg = f"fills for order {order_id} not available after {self.retries} retries ({self.elapsed:.1f}s)"
        if last_error is not None:
            msg += f" | last_err={last_error!r}"
        super().__init__(msg)


class PollCancelledError(SettlementError):
    pass


# ----------------------------------------------------------------------
# payouts
# ----------------------------------------------------------------------
class UnsupportedCurrencyError(SettlementError):
    def __init__(self, currency: str, account_type: str | None = None):
        self.currency = currency
        self.account_type = account_type
        suffix = f" (account_type={account_type})" if account_type else ""
        super().__init__(f"unsupported withdrawal currency: {currency}{suffix}")


class InvalidAccountFormatError(SettlementError):
    def __init__(self, currency: str, protocol: str, expected: str):
        self.currency = currency
        self.protocol = protocol
        self.expected = expected
        super().__init__(f"invalid {protocol.upper()} format for {currency.upper()}: must be {expected}")


class InsufficientFundsError(SettlementError):
    def __init__(self, currency: str, available: float, requested: float):
        self.currency = currency
        self.available = float(available)
        self.requested = float(requested)
        super().__init__(
            f"insufficient {currency.upper()} balance: available={self.available} requested={self.requested}"
        )


class WithdrawalFailedError(SettlementError):
    def __init__(self, withdrawal_id: str, status: str):
        self.withdrawal_id = withdrawal_id
        self.status = status
        super().__init__(f"withdrawal {withdrawal_id} ended with status={status}")


# ----------------------------------------------------------------------
# claims
# ----------------------------------------------------------------------
class ClaimNotFoundError(SettlementError):
    def __init__(self, claim_id: str):
        self.claim_id = claim_id
        super().__init__(f"claim not found: {claim_id}")


class ActionNotAllowedError(SettlementError):
    def __init__(self, role: str, status: str, action: str = ""):
        self.role = role
        self.status = status
        self.action = action
        super().__init__(f"role={role} may not {action or 'act'} while status={status}")


class InvalidTransitionError(SettlementError):
    def __init__(self, current: str | None, target: str, reason: str = ""):
        self.current = current
        self.target = target
        self.reason = reason
        super().__init__(f"transition blocked: {current} -> {target}" + (f" ({reason})" if reason else ""))


def error_to_metadata(exc: BaseException) -> dict[str, Any]:
    """Flatten an exception into the dict stored under metadata['error']."""
    out: dict[str, Any] = {"type": type(exc).__name__, "message": str(exc)}
    for attr in (
        "leg", "status", "order_id", "stranded_amount", "stranded_currency",
        "currency", "available", "requested", "withdrawal_id", "body",
    ):
        if hasattr(exc, attr):
            v = getattr(exc, attr)
            if v is None or isinstance(v, (str, int, float, bool)):
                out[attr] = v
            else:
                out[attr] = repr(v)[:500]
    return out
