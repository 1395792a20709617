"""SubmissionJournal protocol - persistence of submissions and outcomes."""

from __future__ import annotations

from typing import Protocol

from chainprobe.models.records import SubmissionRecord


class SubmissionJournal(Protocol):
    """Records what was submitted and how each submission resolved."""

    async def record_submitted(self, record: SubmissionRecord) -> None:
        ...

    async def record_outcome(
        self,
        tx_hash: str,
        state: str,
        block_hash: str | None = None,
        error: str | None = None,
    ) -> None:
        ...

    async def get_submission(self, tx_hash: str) -> SubmissionRecord | None:
        ...

    async def get_recent(self, limit: int = 20) -> list[SubmissionRecord]:
        ...
