# src/remit/exchanges/base/rail.py
from __future__ import annotations

from abc import ABC, abstractmethod

from src.remit.core.models.withdrawal import MethodDescriptor, Withdrawal, WithdrawalRequest


class RailAdapter(ABC):
    """
    Base payout-rail adapter (fiat bank transfers and crypto withdrawals).
    """

    name: str

    @abstractmethod
    def submit_withdrawal(self, request: WithdrawalRequest) -> Withdrawal:
        ...

    @abstractmethod
    def get_withdrawal_status(self, withdrawal_id: str) -> Withdrawal:
        ...

    @abstractmethod
    def get_withdrawal_methods(self, currency: str) -> list[MethodDescriptor]:
        ...
