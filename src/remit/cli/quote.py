# src/remit/cli/quote.py
from __future__ import annotations

import argparse
import json
import logging

from dotenv import load_dotenv

from src.remit.core.errors import SettlementError
from src.remit.core.payouts.fees import estimate_withdrawal_fee
from src.remit.core.trading.quote import quote_cross_rate
from src.remit.core.trading.routes import supported_currencies
from src.remit.exchanges.bitso.exchange import BitsoExchange
from src.remit.exchanges.bitso.rest import BASE_URL, STAGING_URL, BitsoREST


def main(argv: list[str] | None = None) -> int:
    ap = argparse.ArgumentParser(description="Indicative cross-currency quote (places nothing)")
    ap.add_argument("source", help=f"source currency ({', '.join(supported_currencies())})")
    ap.add_argument("destination", help="destination currency")
    ap.add_argument("amount", type=float)
    ap.add_argument("--production", action="store_true", help="use api.bitso.com instead of staging")
    args = ap.parse_args(argv)

    load_dotenv()
    logging.basicConfig(
        level=logging.WARNING,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )

    # ticker is public, no keys needed
    rest = BitsoREST("", "", base_url=BASE_URL if args.production else STAGING_URL, max_retries=3)

    try:
        q = quote_cross_rate(BitsoExchange(rest), args.source, args.destination, args.amount)
    except (SettlementError, ValueError) as e:
        print(f"quote failed: {e}")
        return 1

    out = q.to_dict()
    fee, fee_ccy = estimate_withdrawal_fee(q.destination_currency, q.destination_amount)
    out["estimated_withdrawal_fee"] = {"amount": fee, "currency": fee_ccy}
    print(json.dumps(out, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
