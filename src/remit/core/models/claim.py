# src/remit/core/models/claim.py
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from src.remit.core.models.enums import AccountType, ClaimStatus


@dataclass(slots=True)
class BankDetails:
    """
    Destination supplied by the recipient when claiming.

    Shape depends on currency: ARS uses cvu/cbu, MXN uses clabe (older rows
    carry it in account_number), MXNB payouts use wallet_address.
    """

    account_holder_name: str = ""
    account_type: Optional[str] = None

    cvu: Optional[str] = None
    cbu: Optional[str] = None
    clabe: Optional[str] = None
    account_number: Optional[str] = None
    wallet_address: Optional[str] = None
    bank_code: Optional[str] = None

    @classmethod
    def from_dict(cls, raw: dict[str, Any] | None) -> "BankDetails | None":
        if not raw:
            return None
        return cls(
            account_holder_name=str(raw.get("accountHolderName") or raw.get("account_holder_name") or ""),
            account_type=raw.get("account_type") or raw.get("accountType"),
            cvu=raw.get("cvu"),
            cbu=raw.get("cbu"),
            clabe=raw.get("clabe"),
            account_number=raw.get("accountNumber") or raw.get("account_number"),
            wallet_address=raw.get("wallet_address") or raw.get("walletAddress"),
            bank_code=raw.get("bank_code"),
        )

    def to_dict(self) -> dict[str, Any]:
        out = {
            "accountHolderName": self.account_holder_name,
            "account_type": self.account_type,
            "cvu": self.cvu,
            "cbu": self.cbu,
            "clabe": self.clabe,
            "accountNumber": self.account_number,
            "wallet_address": self.wallet_address,
            "bank_code": self.bank_code,
        }
        return {k: v for k, v in out.items() if v not in (None, "")}

    def identifier_for(self, account_type: str) -> str:
        t = str(account_type).lower()
        if t == AccountType.CVU.value:
            return self.cvu or self.cbu or ""
        if t == AccountType.CBU.value:
            return self.cbu or self.cvu or ""
        if t == AccountType.CLABE.value:
            return self.clabe or self.account_number or ""
        if t == AccountType.WALLET.value:
            return self.wallet_address or ""
        return ""


@dataclass(slots=True)
class ClaimTransaction:
    id: str
    user_id: str
    amount: float
    currency: str
    status: ClaimStatus

    recipient_id: Optional[str] = None
    bank_details: Optional[BankDetails] = None
    metadata: dict[str, Any] = field(default_factory=dict)

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_terminal(self) -> bool:
        return self.status in (ClaimStatus.COMPLETED, ClaimStatus.FAILED)

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "ClaimTransaction":
        bank = row.get("bank_details")
        return cls(
            id=str(row["id"]),
            user_id=str(row.get("user_id") or ""),
            recipient_id=str(row["recipient_id"]) if row.get("recipient_id") else None,
            amount=float(row.get("amount") or 0.0),
            currency=str(row.get("currency") or "").upper(),
            status=ClaimStatus(str(row.get("status"))),
            bank_details=bank if isinstance(bank, BankDetails) else BankDetails.from_dict(bank),
            metadata=dict(row.get("metadata") or {}),
            created_at=row.get("created_at"),
            updated_at=row.get("updated_at"),
        )

    def to_row(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "recipient_id": self.recipient_id,
            "amount": float(self.amount),
            "currency": self.currency.upper(),
            "status": self.status.value,
            "bank_details": self.bank_details.to_dict() if self.bank_details else None,
            "metadata": dict(self.metadata or {}),
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }
