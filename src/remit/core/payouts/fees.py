# src/remit/core/payouts/fees.py
from __future__ import annotations

from src.remit.core.payouts.rails import resolve_rail

# flat fee in the withdrawn asset
CRYPTO_FLAT_FEE = {"mxnb": 10.0}

# (percentage, minimum) per fiat currency
FIAT_FEE_SCHEDULE = {
    "ars": (0.005, 50.0),
    "mxn": (0.003, 20.0),
}


def estimate_withdrawal_fee(currency: str, amount: float) -> tuple[float, str]:
    """Indicative payout fee, returned as (fee, fee_currency). Not a rail quote."""
    spec = resolve_rail(currency)
    if spec.crypto:
        return CRYPTO_FLAT_FEE.get(spec.currency, 0.0), spec.currency
    pct, minimum = FIAT_FEE_SCHEDULE.get(spec.currency, (0.0, 0.0))
    return max(float(amount) * pct, minimum), "usd"
