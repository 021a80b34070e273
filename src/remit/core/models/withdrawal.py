# src/remit/core/models/withdrawal.py
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from src.remit.core.models.enums import WithdrawalStatus


_TERMINAL_WITHDRAWAL_STATUSES = {WithdrawalStatus.COMPLETE, WithdrawalStatus.FAILED}


@dataclass(slots=True)
class WithdrawalRequest:
    """Payload submitted to the payout rail."""

    currency: str
    asset: str
    amount: str
    method: str
    network: str
    protocol: str
    origin_id: str

    destination_field: str
    destination: str

    recipient_field: Optional[str] = None
    recipient_name: Optional[str] = None
    integration: Optional[str] = None
    max_fee: Optional[str] = None
    description: Optional[str] = None

    def to_payload(self) -> dict[str, Any]:
        body: dict[str, Any] = {
            "currency": self.currency,
            "asset": self.asset,
            "amount": self.amount,
            "method": self.method,
            "network": self.network,
            "protocol": self.protocol,
            "origin_id": self.origin_id,
            self.destination_field: self.destination,
        }
        if self.recipient_field and self.recipient_name:
            body[self.recipient_field] = self.recipient_name
        if self.integration:
            body["integration"] = self.integration
        if self.max_fee is not None:
            body["max_fee"] = self.max_fee
        if self.description:
            body["description"] = self.description
        return body


@dataclass(slots=True)
class Withdrawal:
    withdrawal_id: str
    currency: str
    amount: float
    status: WithdrawalStatus

    asset: Optional[str] = None
    method: Optional[str] = None
    network: Optional[str] = None
    protocol: Optional[str] = None
    destination: Optional[str] = None
    origin_id: Optional[str] = None
    created_at: Optional[datetime] = None

    raw_json: dict[str, Any] | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status in _TERMINAL_WITHDRAWAL_STATUSES

    def to_dict(self) -> dict[str, Any]:
        return {
            "wid": self.withdrawal_id,
            "currency": self.currency,
            "asset": self.asset,
            "amount": self.amount,
            "status": self.status.value,
            "method": self.method,
            "network": self.network,
            "protocol": self.protocol,
            "origin_id": self.origin_id,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


@dataclass(frozen=True, slots=True)
class MethodDescriptor:
    method: str
    network: str
    protocol: str
    integration: Optional[str] = None
    name: Optional[str] = None
    required_fields: tuple[str, ...] = field(default_factory=tuple)
    optional_fields: tuple[str, ...] = field(default_factory=tuple)
