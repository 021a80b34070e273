# src/remit/data/storage/base.py
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from src.remit.core.models.claim import ClaimTransaction
from src.remit.core.models.enums import ClaimStatus


class ClaimStore(ABC):
    """
    Persisted claim records.

    Metadata patches are merged into the stored metadata, never replacing it.
    """

    @abstractmethod
    def exec_ddl(self, ddl_sql: str) -> None: ...

    @abstractmethod
    def insert(self, claim: ClaimTransaction) -> None: ...

    @abstractmethod
    def get(self, claim_id: str) -> ClaimTransaction | None: ...

    @abstractmethod
    def list_by_status(self, status: ClaimStatus, *, limit: int = 100) -> list[ClaimTransaction]: ...

    @abstractmethod
    def update_status(
        self,
        claim_id: str,
        status: ClaimStatus,
        metadata_patch: dict[str, Any] | None = None,
    ) -> None: ...

    @abstractmethod
    def compare_and_set_status(
        self,
        claim_id: str,
        expected: ClaimStatus,
        status: ClaimStatus,
        metadata_patch: dict[str, Any] | None = None,
        *,
        bank_details: dict[str, Any] | None = None,
    ) -> bool:
        """
        Move claim_id to `status` only if it is still `expected`.
        Returns True when this call performed the transition.
        """
