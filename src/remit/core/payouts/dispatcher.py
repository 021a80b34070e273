# src/remit/core/payouts/dispatcher.py
from __future__ import annotations

import logging
from typing import Optional

from src.remit.core.errors import InsufficientFundsError, InvalidAccountFormatError
from src.remit.core.models.claim import BankDetails
from src.remit.core.models.enums import AccountType
from src.remit.core.models.withdrawal import Withdrawal, WithdrawalRequest
from src.remit.core.payouts.rails import RailSpec, resolve_rail
from src.remit.core.utils.amounts import fmt_amount
from src.remit.core.utils.idempotency import make_origin_id
from src.remit.exchanges.base.exchange import ExchangeAdapter
from src.remit.exchanges.base.rail import RailAdapter


class WithdrawalDispatcher:
    """
    Routes a payout to its rail.

    Order of checks (all before any network write):
      1) rail lookup by (currency, account_type)
      2) destination identifier format
      3) available balance
    Then one submission with a fresh origin_id. No retries here.
    """

    def __init__(
        self,
        *,
        rail: RailAdapter,
        balances: ExchangeAdapter | None = None,
        origin_prefix: str = "claim",
        logger: logging.Logger | None = None,
    ) -> None:
        self.rail = rail
        self.balances = balances
        self.origin_prefix = origin_prefix
        self.logger = logger or logging.getLogger(__name__)

    # ------------------------------------------------------------------
    # validation
    # ------------------------------------------------------------------
    def validate_identifier(
        self,
        currency: str,
        identifier: str,
        account_type: str | AccountType | None = None,
    ) -> RailSpec:
        spec = resolve_rail(currency, account_type)
        if not spec.matches(str(identifier or "")):
            raise InvalidAccountFormatError(spec.currency, spec.account_type.value, spec.expected)
        return spec

    def check_balance(self, currency: str, amount: float) -> None:
        if self.balances is None:
            return
        bal = self.balances.get_balance(currency)
        available = bal.available if bal is not None else 0.0
        if available < amount:
            raise InsufficientFundsError(currency, available, amount)

    # ------------------------------------------------------------------
    # submit
    # ------------------------------------------------------------------
    def dispatch(
        self,
        currency: str,
        amount: float,
        destination: str,
        *,
        account_type: str | AccountType | None = None,
        recipient_name: Optional[str] = None,
        description: Optional[str] = None,
        max_fee: Optional[float] = None,
    ) -> Withdrawal:
        amount = float(amount)
        if amount <= 0:
            raise ValueError(f"withdrawal amount must be > 0, got {amount}")

        spec = self.validate_identifier(currency, destination, account_type)
        if not spec.crypto and not (recipient_name or "").strip():
            raise ValueError(f"account holder name is required for {spec.currency.upper()} withdrawals")

        self.check_balance(spec.currency, amount)

        request = WithdrawalRequest(
            currency=spec.currency,
            asset=spec.asset,
            amount=fmt_amount(amount),
            method=spec.method,
            network=spec.network,
            protocol=spec.protocol,
            origin_id=make_origin_id(self.origin_prefix),
            destination_field=spec.destination_field,
            destination=destination,
            recipient_field=spec.recipient_field,
            recipient_name=recipient_name,
            integration=spec.integration,
            max_fee=fmt_amount(max_fee) if max_fee is not None else None,
            description=description or f"{spec.currency.upper()} withdrawal to {destination[:8]}...",
        )

        try:
            w = self.rail.submit_withdrawal(request)
        except Exception:
            self.logger.exception(
                "[WITHDRAW] submit failed currency=%s amount=%s origin_id=%s",
                spec.currency, request.amount, request.origin_id,
            )
            raise

        self.logger.info(
            "[WITHDRAW] accepted wid=%s status=%s currency=%s amount=%s origin_id=%s",
            w.withdrawal_id, w.status.value, spec.currency, request.amount, request.origin_id,
        )
        return w

    def dispatch_to_bank(
        self,
        currency: str,
        amount: float,
        bank_details: BankDetails | None,
        *,
        description: Optional[str] = None,
    ) -> Withdrawal:
        """Resolve the identifier from claim bank details, then dispatch()."""
        if bank_details is None:
            raise ValueError(f"bank details are required for {currency.upper()} withdrawal")

        account_type = known_account_type(bank_details.account_type)
        spec = resolve_rail(currency, account_type)
        identifier = bank_details.identifier_for(spec.account_type.value)

        return self.dispatch(
            currency,
            amount,
            identifier,
            account_type=spec.account_type,
            recipient_name=bank_details.account_holder_name,
            description=description,
        )


def known_account_type(raw: str | None) -> AccountType | None:
    # free-form values such as "savings" fall back to the currency default
    if not raw:
        return None
    try:
        return AccountType(str(raw).lower())
    except ValueError:
        return None
