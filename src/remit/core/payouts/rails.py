# src/remit/core/payouts/rails.py
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

from src.remit.core.errors import UnsupportedCurrencyError
from src.remit.core.models.enums import AccountType


@dataclass(frozen=True, slots=True)
class RailSpec:
    currency: str
    account_type: AccountType
    asset: str
    method: str
    network: str
    protocol: str
    pattern: str
    expected: str
    destination_field: str
    recipient_field: Optional[str] = None
    integration: Optional[str] = None
    crypto: bool = False

    def matches(self, identifier: str) -> bool:
        return re.fullmatch(self.pattern, identifier or "") is not None


_ARS_BIND = dict(currency="ars", asset="ars", method="bind", network="coelsa", protocol="cvu",
                 pattern=r"[0-9]{22}", expected="22 digits", destination_field="cvu",
                 recipient_field="recipient_name")

# (currency, account_type) -> rail; add a currency by adding rows
RAILS: dict[tuple[str, AccountType], RailSpec] = {
    ("ars", AccountType.CVU): RailSpec(account_type=AccountType.CVU, **_ARS_BIND),
    ("ars", AccountType.CBU): RailSpec(account_type=AccountType.CBU, **_ARS_BIND),
    ("mxn", AccountType.CLABE): RailSpec(
        currency="mxn",
        account_type=AccountType.CLABE,
        asset="mxn",
        method="spei",
        network="spei",
        protocol="clabe",
        pattern=r"[0-9]{18}",
        expected="18 digits",
        destination_field="clabe",
        recipient_field="beneficiary",
        integration="praxis",
    ),
    ("mxnb", AccountType.WALLET): RailSpec(
        currency="mxnb",
        account_type=AccountType.WALLET,
        asset="mxnbj",
        method="crypto",
        network="arbitrum",
        protocol="erc20",
        pattern=r"0x[0-9a-fA-F]{40}",
        expected="0x followed by 40 hex characters",
        destination_field="address",
        crypto=True,
    ),
}

DEFAULT_ACCOUNT_TYPE: dict[str, AccountType] = {
    "ars": AccountType.CVU,
    "mxn": AccountType.CLABE,
    "mxnb": AccountType.WALLET,
}


def resolve_rail(currency: str, account_type: str | AccountType | None = None) -> RailSpec:
    cur = str(currency or "").lower()
    if account_type is None:
        acct = DEFAULT_ACCOUNT_TYPE.get(cur)
        if acct is None:
            raise UnsupportedCurrencyError(currency)
    else:
        try:
            acct = AccountType(str(getattr(account_type, "value", account_type)).lower())
        except ValueError:
            raise UnsupportedCurrencyError(currency, str(account_type))

    spec = RAILS.get((cur, acct))
    if spec is None:
        raise UnsupportedCurrencyError(currency, acct.value)
    return spec
