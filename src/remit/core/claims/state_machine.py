# src/remit/core/claims/state_machine.py
from __future__ import annotations

from dataclasses import dataclass

from src.remit.core.models.enums import ClaimStatus, Role


TERMINAL: set[ClaimStatus] = {ClaimStatus.COMPLETED, ClaimStatus.FAILED}

# success-path edges; failure edges (any non-terminal -> failed) are implicit
TRANSITIONS: dict[ClaimStatus, set[ClaimStatus]] = {
    ClaimStatus.PENDING_USER_START: {ClaimStatus.PENDING_INVITE, ClaimStatus.PENDING_DEPOSIT},
    ClaimStatus.PENDING_INVITE: {ClaimStatus.PENDING_DEPOSIT},
    ClaimStatus.PENDING_DEPOSIT: {ClaimStatus.PENDING_CLAIM},
    ClaimStatus.PENDING_CLAIM: {ClaimStatus.CLAIMING},
    ClaimStatus.CLAIMING: {ClaimStatus.PROCESSING},
    ClaimStatus.PROCESSING: {ClaimStatus.COMPLETED},
    ClaimStatus.COMPLETED: set(),
    ClaimStatus.FAILED: set(),
}

# the only states where a user (not the system) may act, and who
USER_ACTION_ROLE: dict[ClaimStatus, Role] = {
    ClaimStatus.PENDING_DEPOSIT: Role.SENDER,
    ClaimStatus.PENDING_CLAIM: Role.RECIPIENT,
}


def status_rank(status: ClaimStatus | str | None) -> int:
    """Monotonic rank for claim status."""
    if not status:
        return 0
    mapping = {
        ClaimStatus.PENDING_USER_START: 10,
        ClaimStatus.PENDING_INVITE: 20,
        ClaimStatus.PENDING_DEPOSIT: 30,
        ClaimStatus.PENDING_CLAIM: 40,
        ClaimStatus.CLAIMING: 50,
        ClaimStatus.PROCESSING: 60,
        ClaimStatus.COMPLETED: 90,
        ClaimStatus.FAILED: 90,
    }
    try:
        return mapping.get(ClaimStatus(str(getattr(status, "value", status))), 0)
    except ValueError:
        return 0


@dataclass(frozen=True)
class Decision:
    allow: bool
    reason: str = ""


def initial_status(recipient_known: bool) -> ClaimStatus:
    return ClaimStatus.PENDING_USER_START if recipient_known else ClaimStatus.PENDING_INVITE


def should_transition(current: ClaimStatus | None, target: ClaimStatus) -> Decision:
    """
    Allow only edges of the claim graph.
    - terminal status never moves
    - any non-terminal status may fail
    - otherwise the edge must be in TRANSITIONS (no skipping)
    """
    if current is None:
        return Decision(False, "current status is empty")

    cur = ClaimStatus(current)
    tgt = ClaimStatus(target)

    if cur in TERMINAL:
        return Decision(False, f"terminal status is final: {cur.value} -> {tgt.value}")

    if tgt == ClaimStatus.FAILED:
        return Decision(True, "ok")

    if status_rank(tgt) <= status_rank(cur):
        return Decision(False, f"status regression: {cur.value} -> {tgt.value}")

    if tgt not in TRANSITIONS[cur]:
        return Decision(False, f"no edge {cur.value} -> {tgt.value}")

    return Decision(True, "ok")


def can_user_take_action(status: ClaimStatus, role: Role | str) -> bool:
    try:
        r = Role(str(getattr(role, "value", role)).lower())
    except ValueError:
        return False
    return USER_ACTION_ROLE.get(ClaimStatus(status)) == r


def next_status_for_user_action(status: ClaimStatus, role: Role | str) -> ClaimStatus | None:
    """Status reached when `role` acts in `status`; None when the action is not allowed."""
    if not can_user_take_action(status, role):
        return None
    nxt = TRANSITIONS[ClaimStatus(status)]
    return next(iter(nxt)) if len(nxt) == 1 else None
