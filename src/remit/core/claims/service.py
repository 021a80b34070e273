# src/remit/core/claims/service.py
from __future__ import annotations

import logging
import uuid
from typing import Any

from src.remit.core.claims.state_machine import (
    can_user_take_action,
    initial_status,
    next_status_for_user_action,
    should_transition,
)
from src.remit.core.errors import (
    ActionNotAllowedError,
    ClaimNotFoundError,
    InvalidTransitionError,
)
from src.remit.core.models.claim import BankDetails, ClaimTransaction
from src.remit.core.models.enums import ClaimStatus, Role
from src.remit.core.payouts.dispatcher import WithdrawalDispatcher, known_account_type
from src.remit.core.payouts.rails import resolve_rail
from src.remit.core.utils.timeutils import now_iso, utc_now
from src.remit.data.storage.base import ClaimStore


class ClaimService:
    """
    User-facing and system-driven transitions of a claim, except the
    settlement pipeline itself (see ClaimProcessor).

    Every write is a compare-and-set on the status we validated against, so a
    concurrent writer makes this call fail instead of being overwritten.
    """

    def __init__(
        self,
        *,
        store: ClaimStore,
        dispatcher: WithdrawalDispatcher | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.store = store
        self.dispatcher = dispatcher
        self.logger = logger or logging.getLogger(__name__)

    # ------------------------------------------------------------------
    # creation
    # ------------------------------------------------------------------
    def create(
        self,
        *,
        user_id: str,
        amount: float,
        currency: str,
        recipient_known: bool,
        recipient_id: str | None = None,
        claim_id: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> ClaimTransaction:
        if float(amount) <= 0:
            raise ValueError("amount must be greater than 0")

        claim = ClaimTransaction(
            id=claim_id or str(uuid.uuid4()),
            user_id=str(user_id),
            recipient_id=recipient_id,
            amount=float(amount),
            currency=currency.upper(),
            status=initial_status(recipient_known),
            metadata=dict(metadata or {}),
            created_at=utc_now(),
        )
        self.store.insert(claim)
        self.logger.info(
            "[CLAIM] created id=%s amount=%s %s status=%s",
            claim.id, claim.amount, claim.currency, claim.status.value,
        )
        return claim

    # ------------------------------------------------------------------
    # user actions (role gated)
    # ------------------------------------------------------------------
    def confirm_deposit(self, claim_id: str, role: Role | str) -> ClaimTransaction:
        """Sender confirms the funding transfer: pending_deposit -> pending_claim."""
        return self._user_action(
            claim_id, role, action="confirm_deposit",
            metadata={"deposit_confirmed_at": now_iso()},
        )

    def submit_claim(self, claim_id: str, role: Role | str, bank_details: BankDetails) -> ClaimTransaction:
        """Recipient submits destination details: pending_claim -> claiming."""
        claim = self._load(claim_id)
        self._require_action(claim, role, "submit_claim")

        # reject malformed destinations here, before the pipeline ever runs
        if self.dispatcher is not None:
            spec = resolve_rail(claim.currency, known_account_type(bank_details.account_type))
            self.dispatcher.validate_identifier(
                claim.currency, bank_details.identifier_for(spec.account_type.value), spec.account_type,
            )

        return self._user_action(
            claim_id, role, action="submit_claim",
            metadata={"claim_submitted_at": now_iso()},
            bank_details=bank_details,
            claim=claim,
        )

    def _require_action(self, claim: ClaimTransaction, role: Role | str, action: str) -> None:
        if not can_user_take_action(claim.status, role):
            self.logger.warning(
                "[CLAIM] rejected action=%s role=%s id=%s status=%s",
                action, getattr(role, "value", role), claim.id, claim.status.value,
            )
            raise ActionNotAllowedError(str(getattr(role, "value", role)), claim.status.value, action)

    def _user_action(
        self,
        claim_id: str,
        role: Role | str,
        *,
        action: str,
        metadata: dict[str, Any],
        bank_details: BankDetails | None = None,
        claim: ClaimTransaction | None = None,
    ) -> ClaimTransaction:
        claim = claim or self._load(claim_id)
        self._require_action(claim, role, action)

        target = next_status_for_user_action(claim.status, role)
        if target is None:
            raise ActionNotAllowedError(str(getattr(role, "value", role)), claim.status.value, action)

        ok = self.store.compare_and_set_status(
            claim.id,
            claim.status,
            target,
            metadata,
            bank_details=bank_details.to_dict() if bank_details else None,
        )
        if not ok:
            raise InvalidTransitionError(claim.status.value, target.value, "status changed concurrently")

        self.logger.info(
            "[CLAIM] %s by %s: %s -> %s id=%s",
            action, getattr(role, "value", role), claim.status.value, target.value, claim.id,
        )
        claim.status = target
        claim.metadata.update(metadata)
        if bank_details is not None:
            claim.bank_details = bank_details
        return claim

    # ------------------------------------------------------------------
    # system transitions
    # ------------------------------------------------------------------
    def advance(self, claim_id: str, target: ClaimStatus, metadata: dict[str, Any] | None = None) -> ClaimTransaction:
        """
        System-driven edge (invite sent, recipient registered, deposit required).
        User-gated edges must go through confirm_deposit / submit_claim.
        """
        claim = self._load(claim_id)
        target = ClaimStatus(target)

        if claim.status in (ClaimStatus.PENDING_DEPOSIT, ClaimStatus.PENDING_CLAIM) and target != ClaimStatus.FAILED:
            raise ActionNotAllowedError(Role.SYSTEM.value, claim.status.value, f"advance to {target.value}")

        decision = should_transition(claim.status, target)
        if not decision.allow:
            raise InvalidTransitionError(claim.status.value, target.value, decision.reason)

        patch = dict(metadata or {})
        if not self.store.compare_and_set_status(claim.id, claim.status, target, patch):
            raise InvalidTransitionError(claim.status.value, target.value, "status changed concurrently")

        self.logger.info("[CLAIM] system: %s -> %s id=%s", claim.status.value, target.value, claim.id)
        claim.status = target
        claim.metadata.update(patch)
        return claim

    def invite_sent(self, claim_id: str) -> ClaimTransaction:
        return self.advance(claim_id, ClaimStatus.PENDING_INVITE, {"invite_sent_at": now_iso()})

    def recipient_registered(self, claim_id: str) -> ClaimTransaction:
        return self.advance(claim_id, ClaimStatus.PENDING_DEPOSIT, {"recipient_registered_at": now_iso()})

    def fail(self, claim_id: str, reason: str) -> ClaimTransaction:
        return self.advance(claim_id, ClaimStatus.FAILED, {"error": {"type": "OperatorFailed", "message": reason}})

    # ------------------------------------------------------------------
    def _load(self, claim_id: str) -> ClaimTransaction:
        claim = self.store.get(claim_id)
        if claim is None:
            raise ClaimNotFoundError(claim_id)
        return claim
