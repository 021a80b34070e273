# src/remit/core/claims/processor.py
from __future__ import annotations

import logging
import time
from typing import Any, Iterable, Optional, Protocol

from src.remit.core.errors import WithdrawalFailedError, error_to_metadata
from src.remit.core.models.claim import ClaimTransaction
from src.remit.core.models.enums import ClaimStatus, WithdrawalStatus
from src.remit.core.models.order import SettlementResult
from src.remit.core.models.withdrawal import Withdrawal
from src.remit.core.payouts.dispatcher import WithdrawalDispatcher
from src.remit.core.trading.poller import CompletionPoller
from src.remit.core.trading.router import TradeRouter
from src.remit.core.utils.timeutils import now_iso
from src.remit.data.storage.base import ClaimStore


class ClaimNotifier(Protocol):
    def notify_claim_failed(self, claim: ClaimTransaction, error: dict[str, Any]) -> bool: ...


class ClaimProcessor:
    """
    Executes one claim once it entered `claiming`.

    Pipeline:
      1) claim the work: compare-and-set claiming -> processing
      2) convert through the router when the claim currency is not held in custody
      3) dispatch the withdrawal with the resolved amount
      4) (optional) wait for the withdrawal to reach a terminal status
      5) persist completed

    Any error after step 1 persists `failed` with the error in metadata,
    alerts operators and propagates. Nothing is retried here.
    """

    def __init__(
        self,
        *,
        store: ClaimStore,
        router: TradeRouter,
        dispatcher: WithdrawalDispatcher,
        poller: CompletionPoller | None = None,
        custody_currency: str = "MXN",
        held_currencies: Iterable[str] | None = None,
        await_withdrawal: bool = False,
        withdrawal_max_wait_sec: float = 300.0,
        notifier: ClaimNotifier | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.store = store
        self.router = router
        self.dispatcher = dispatcher
        self.poller = poller
        self.custody_currency = custody_currency.upper()
        self.held_currencies = {c.upper() for c in (held_currencies or ())} | {self.custody_currency}
        self.await_withdrawal = bool(await_withdrawal)
        self.withdrawal_max_wait_sec = float(withdrawal_max_wait_sec)
        self.notifier = notifier
        self.logger = logger or logging.getLogger(__name__)

        if self.await_withdrawal and self.poller is None:
            raise ValueError("await_withdrawal requires a poller")

    # ------------------------------------------------------------------
    # trigger
    # ------------------------------------------------------------------
    def on_claim_requested(self, claim: ClaimTransaction | str) -> bool:
        """
        Entry point for the `claiming` trigger. Safe to call more than once per
        claim: only the caller that wins claiming -> processing executes.
        Returns True when this call ran the pipeline.
        """
        claim_id = claim if isinstance(claim, str) else claim.id

        # the delivered payload may be stale, re-read before acting
        current = self.store.get(claim_id)
        if current is None:
            self.logger.warning("[CLAIM] trigger for unknown claim %s ignored", claim_id)
            return False
        if current.status != ClaimStatus.CLAIMING:
            self.logger.info("[CLAIM] %s already %s, trigger ignored", claim_id, current.status.value)
            return False

        if not self.store.compare_and_set_status(
            claim_id,
            ClaimStatus.CLAIMING,
            ClaimStatus.PROCESSING,
            {"processing_started_at": now_iso()},
        ):
            self.logger.info("[CLAIM] %s picked up by another worker", claim_id)
            return False

        current.status = ClaimStatus.PROCESSING
        self.execute(current)
        return True

    # ------------------------------------------------------------------
    # pipeline
    # ------------------------------------------------------------------
    def needs_conversion(self, claim: ClaimTransaction) -> bool:
        return claim.currency.upper() not in self.held_currencies

    def execute(self, claim: ClaimTransaction) -> dict[str, Any]:
        """Run steps 2..5 for a claim already in `processing`."""
        t0 = time.monotonic()
        self.logger.info("[CLAIM] %s processing %s %s", claim.id, claim.amount, claim.currency)

        try:
            settlement: Optional[SettlementResult] = None
            payout_amount = float(claim.amount)

            if self.needs_conversion(claim):
                settlement = self.router.execute(self.custody_currency, claim.currency, claim.amount)
                payout_amount = settlement.destination_amount
                self.logger.info(
                    "[CLAIM] %s converted %s %s -> %s %s",
                    claim.id, claim.amount, self.custody_currency, payout_amount, claim.currency,
                )

            withdrawal = self.dispatcher.dispatch_to_bank(
                claim.currency,
                payout_amount,
                claim.bank_details,
                description=f"{claim.currency.upper()} withdrawal for claim",
            )

            if self.await_withdrawal:
                withdrawal = self._await_withdrawal(withdrawal)

        except Exception as e:
            self._fail(claim, e)
            raise

        patch: dict[str, Any] = {
            "final_amount": payout_amount,
            "withdrawal": withdrawal.to_dict(),
            "processing_ms": int((time.monotonic() - t0) * 1000),
        }
        if settlement is not None:
            patch["settlement"] = settlement.to_dict()

        self._persist(claim, ClaimStatus.COMPLETED, patch)
        self.logger.info(
            "[CLAIM] %s completed: %s %s wid=%s",
            claim.id, payout_amount, claim.currency, withdrawal.withdrawal_id,
        )
        return patch

    def _await_withdrawal(self, withdrawal: Withdrawal) -> Withdrawal:
        assert self.poller is not None
        final = self.poller.await_withdrawal(withdrawal.withdrawal_id, self.withdrawal_max_wait_sec)
        if final.status != WithdrawalStatus.COMPLETE:
            raise WithdrawalFailedError(final.withdrawal_id, final.status.value)
        return final

    # ------------------------------------------------------------------
    # persistence
    # ------------------------------------------------------------------
    def _persist(self, claim: ClaimTransaction, status: ClaimStatus, patch: dict[str, Any]) -> None:
        ok = self.store.compare_and_set_status(claim.id, ClaimStatus.PROCESSING, status, patch)
        if not ok:
            # someone moved the claim out of processing (operator fail); keep their status
            self.logger.warning("[CLAIM] %s left processing concurrently, %s not persisted", claim.id, status.value)
            return
        claim.status = status
        claim.metadata.update(patch)

    def _fail(self, claim: ClaimTransaction, exc: BaseException) -> None:
        error = error_to_metadata(exc)
        self.logger.error("[CLAIM] %s failed | %s: %s", claim.id, error["type"], error["message"])
        self._persist(claim, ClaimStatus.FAILED, {"error": error, "failed_at": now_iso()})

        if self.notifier is not None:
            self.notifier.notify_claim_failed(claim, error)
