# src/remit/exchanges/bitso/rail.py
from __future__ import annotations

import logging

from src.remit.core.models.withdrawal import MethodDescriptor, Withdrawal, WithdrawalRequest
from src.remit.exchanges.base.rail import RailAdapter
from src.remit.exchanges.bitso.normalize import norm_method, norm_withdrawal
from src.remit.exchanges.bitso.rest import BitsoREST


class BitsoRail(RailAdapter):
    """
    Bitso withdrawals (BIND/COELSA for ARS, SPEI for MXN, on-chain for MXNB).
    Shares the REST client with BitsoExchange.
    """

    name = "bitso"

    def __init__(self, rest: BitsoREST):
        self.rest = rest
        self.logger = logging.getLogger("bitso.rail")

    def submit_withdrawal(self, request: WithdrawalRequest) -> Withdrawal:
        body = request.to_payload()
        self.logger.info(
            "[WITHDRAW] submit currency=%s amount=%s method=%s network=%s protocol=%s origin_id=%s",
            request.currency, request.amount, request.method, request.network, request.protocol, request.origin_id,
        )
        raw = self.rest.withdraw(**body) or {}

        w = norm_withdrawal(raw)
        if not w.origin_id:
            w.origin_id = request.origin_id
        if not w.destination:
            w.destination = request.destination
        return w

    def get_withdrawal_status(self, withdrawal_id: str) -> Withdrawal:
        payload = self.rest.lookup_withdrawal(withdrawal_id)
        if isinstance(payload, list):
            if not payload:
                raise ValueError(f"withdrawal {withdrawal_id} not found")
            payload = payload[0]
        return norm_withdrawal(payload)

    def get_withdrawal_methods(self, currency: str) -> list[MethodDescriptor]:
        return [norm_method(r) for r in (self.rest.withdrawal_methods(currency) or [])]
