# src/remit/cli/withdrawal_status.py
from __future__ import annotations

import argparse
import json
import logging
import os
from dataclasses import asdict

from dotenv import load_dotenv

from src.remit.core.errors import SettlementError
from src.remit.core.trading.poller import CompletionPoller
from src.remit.exchanges.bitso.exchange import BitsoExchange
from src.remit.exchanges.bitso.rail import BitsoRail
from src.remit.exchanges.bitso.rest import BASE_URL, STAGING_URL, BitsoREST


def main(argv: list[str] | None = None) -> int:
    ap = argparse.ArgumentParser(description="Show (or wait for) a withdrawal's status")
    ap.add_argument("wid", nargs="?", help="withdrawal id")
    ap.add_argument("--wait", type=float, default=0.0, help="poll until terminal, up to N seconds")
    ap.add_argument("--methods", metavar="CURRENCY", help="list the rail's withdrawal methods instead")
    ap.add_argument("--production", action="store_true")
    args = ap.parse_args(argv)

    if not args.wid and not args.methods:
        ap.error("wid or --methods is required")

    load_dotenv()
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )

    key, secret = os.getenv("BITSO_API_KEY", ""), os.getenv("BITSO_API_SECRET", "")
    if not key or not secret:
        raise SystemExit("BITSO_API_KEY / BITSO_API_SECRET env vars are required")

    rest = BitsoREST(key, secret, base_url=BASE_URL if args.production else STAGING_URL)
    rail = BitsoRail(rest)

    try:
        if args.methods:
            out = [asdict(m) for m in rail.get_withdrawal_methods(args.methods)]
        elif args.wait > 0:
            poller = CompletionPoller(BitsoExchange(rest), rail=rail, interval_sec=5.0)
            out = poller.await_withdrawal(args.wid, args.wait).to_dict()
        else:
            out = rail.get_withdrawal_status(args.wid).to_dict()
    except SettlementError as e:
        print(f"lookup failed: {e}")
        return 1

    print(json.dumps(out, indent=2, default=str))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
