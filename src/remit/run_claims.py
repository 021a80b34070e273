# src/remit/run_claims.py
from __future__ import annotations

import logging
import os
import signal
import threading
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from src.remit.core.claims.processor import ClaimProcessor
from src.remit.core.engine.listener import ClaimListener
from src.remit.core.engine.runner import ClaimRunner
from src.remit.core.payouts.dispatcher import WithdrawalDispatcher
from src.remit.core.trading.poller import CompletionPoller
from src.remit.core.trading.router import RouterLimits, TradeRouter
from src.remit.data.storage.postgres.pool import create_pool
from src.remit.data.storage.postgres.storage import PostgreSQLClaimStore
from src.remit.exchanges.bitso.exchange import BitsoExchange
from src.remit.exchanges.bitso.rail import BitsoRail
from src.remit.exchanges.bitso.rest import BASE_URL, STAGING_URL, BitsoREST
from src.remit.notifications.telegram import TelegramNotifier, target_from_env


# -----------------------------------------------------------------------------
# helpers
# -----------------------------------------------------------------------------
def _load_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        raise SystemExit(f"Config file not found: {path}")
    data = yaml.safe_load(path.read_text(encoding="utf-8"))
    return data or {}


def _config_path() -> Path:
    env_path = os.getenv("REMIT_CONFIG")
    if env_path:
        return Path(env_path)
    root = Path(__file__).resolve().parents[2]  # src/remit/ -> repo root
    return root / "config" / "remit.yaml"


def build_rest(ex_cfg: dict[str, Any], *, dry_run: bool) -> BitsoREST:
    api_key = os.getenv("BITSO_API_KEY", "")
    api_secret = os.getenv("BITSO_API_SECRET", "")
    if not api_key or not api_secret:
        raise SystemExit("BITSO_API_KEY / BITSO_API_SECRET env vars are required")

    # DRY_RUN never talks to the production exchange
    if dry_run or bool(ex_cfg.get("staging", True)):
        base_url = STAGING_URL
    else:
        base_url = str(ex_cfg.get("base_url") or BASE_URL)

    return BitsoREST(
        api_key,
        api_secret,
        base_url=base_url,
        timeout=float(ex_cfg.get("timeout", 10)),
        max_retries=int(ex_cfg.get("max_retries", 5)),
        backoff_base=float(ex_cfg.get("backoff_base", 1.5)),
    )


def build_processor(
    cfg: dict[str, Any],
    *,
    rest: BitsoREST,
    store: PostgreSQLClaimStore,
    stop_event: threading.Event,
) -> ClaimProcessor:
    p = cfg.get("pipeline") or {}
    n = cfg.get("notifications") or {}

    exchange = BitsoExchange(rest)
    rail = BitsoRail(rest)

    poller = CompletionPoller(
        exchange,
        rail=rail,
        interval_sec=float(p.get("poll_interval_sec", 1.0)),
        backoff_base_sec=float(p.get("fills_backoff_base_sec", 1.0)),
        backoff_cap_sec=float(p.get("fills_backoff_cap_sec", 5.0)),
        stop_event=stop_event,
    )
    router = TradeRouter(
        exchange=exchange,
        poller=poller,
        limits=RouterLimits(
            order_max_wait_sec=float(p.get("order_max_wait_sec", 30)),
            fills_max_wait_sec=float(p.get("fills_max_wait_sec", 30)),
            fills_max_retries=int(p.get("fills_max_retries", 10)),
        ),
    )
    dispatcher = WithdrawalDispatcher(rail=rail, balances=exchange)

    notifier = TelegramNotifier(
        target_from_env(),
        enabled=bool((n.get("telegram") or {}).get("enabled", False)),
    )

    return ClaimProcessor(
        store=store,
        router=router,
        dispatcher=dispatcher,
        poller=poller,
        custody_currency=str(p.get("custody_currency", "MXN")),
        held_currencies=p.get("held_currencies") or (),
        await_withdrawal=bool(p.get("await_withdrawal", False)),
        withdrawal_max_wait_sec=float(p.get("withdrawal_max_wait_sec", 300)),
        notifier=notifier,
    )


def main() -> None:
    # -------------------------------------------------------------------------
    # ENV (.env first) + DRY_RUN
    # -------------------------------------------------------------------------
    load_dotenv()

    dry_run: bool = os.getenv("DRY_RUN", "1") == "1"

    # -------------------------------------------------------------------------
    # LOGGING
    # -------------------------------------------------------------------------
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )
    logger = logging.getLogger("remit.run_claims")

    logger.info("=== RUN CLAIMS START ===")
    logger.warning("DRY_RUN=%s (%s)", dry_run, "STAGING EXCHANGE" if dry_run else "PRODUCTION EXCHANGE")

    # -------------------------------------------------------------------------
    # CONFIG
    # -------------------------------------------------------------------------
    dsn = os.getenv("PG_DSN")
    if not dsn:
        raise SystemExit("PG_DSN env var is required")

    cfg = _load_yaml(_config_path())
    w = cfg.get("workers") or {}

    # -------------------------------------------------------------------------
    # CLIENTS (one per process)
    # -------------------------------------------------------------------------
    pool = create_pool(dsn, max_size=int(w.get("max_workers", 4)) + 2)
    store = PostgreSQLClaimStore(pool)
    rest = build_rest(cfg.get("exchange") or {}, dry_run=dry_run)

    stop_event = threading.Event()
    processor = build_processor(cfg, rest=rest, store=store, stop_event=stop_event)
    runner = ClaimRunner(processor, max_workers=int(w.get("max_workers", 4)))
    listener = ClaimListener(
        store=store,
        runner=runner,
        dsn=dsn,
        sweep_sec=float(w.get("sweep_sec", 30)),
    )

    def _shutdown(signum, _frame) -> None:
        logger.warning("signal %s received, stopping", signum)
        stop_event.set()
        listener.stop()

    signal.signal(signal.SIGINT, _shutdown)
    signal.signal(signal.SIGTERM, _shutdown)

    listener.start()
    logger.info("listening for claims (workers=%s)", w.get("max_workers", 4))

    # main thread waits until a signal arrives
    while listener.is_alive():
        listener.join(timeout=1.0)

    runner.shutdown(wait=True)
    pool.close()
    logger.info("=== RUN CLAIMS STOP ===")


if __name__ == "__main__":
    main()
