"""SQLite implementation of the SubmissionJournal protocol."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

import aiosqlite

from chainprobe.models.records import SubmissionRecord

SCHEMA = """
-- One row per broadcast extrinsic
CREATE TABLE IF NOT EXISTS submissions (
    tx_hash TEXT PRIMARY KEY,
    call TEXT NOT NULL,
    signer TEXT NOT NULL,
    policy TEXT NOT NULL,
    state TEXT NOT NULL DEFAULT 'submitted',
    block_hash TEXT,
    error TEXT,
    submitted_at TEXT NOT NULL DEFAULT (datetime('now')),
    resolved_at TEXT
);
CREATE INDEX IF NOT EXISTS idx_submissions_submitted ON submissions(submitted_at);
CREATE INDEX IF NOT EXISTS idx_submissions_state ON submissions(state);
"""


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _row_to_record(row: aiosqlite.Row) -> SubmissionRecord:
    return SubmissionRecord(
        tx_hash=row["tx_hash"],
        call=row["call"],
        signer=row["signer"],
        policy=row["policy"],
        state=row["state"],
        block_hash=row["block_hash"],
        error=row["error"],
        submitted_at=row["submitted_at"],
        resolved_at=row["resolved_at"],
    )


class SQLiteSubmissionJournal:
    """SQLite-backed journal of submissions and their outcomes."""

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path
        self._db: aiosqlite.Connection | None = None

    async def initialize(self) -> None:
        if self._db_path != ":memory:":
            Path(self._db_path).parent.mkdir(parents=True, exist_ok=True)
        self._db = await aiosqlite.connect(self._db_path)
        self._db.row_factory = aiosqlite.Row
        await self._db.executescript(SCHEMA)
        await self._db.commit()

    async def close(self) -> None:
        if self._db:
            await self._db.close()
            self._db = None

    @property
    def db(self) -> aiosqlite.Connection:
        assert self._db is not None, "Journal not initialized. Call initialize() first."
        return self._db

    async def record_submitted(self, record: SubmissionRecord) -> None:
        await self.db.execute(
            "INSERT OR REPLACE INTO submissions"
            " (tx_hash, call, signer, policy, state, submitted_at)"
            " VALUES (?, ?, ?, ?, ?, ?)",
            (
                record.tx_hash, record.call, record.signer, record.policy,
                record.state, record.submitted_at or _now(),
            ),
        )
        await self.db.commit()

    async def record_outcome(
        self,
        tx_hash: str,
        state: str,
        block_hash: str | None = None,
        error: str | None = None,
    ) -> None:
        await self.db.execute(
            "UPDATE submissions SET state=?, block_hash=?, error=?, resolved_at=?"
            " WHERE tx_hash=?",
            (state, block_hash, error, _now(), tx_hash),
        )
        await self.db.commit()

    async def get_submission(self, tx_hash: str) -> SubmissionRecord | None:
        async with self.db.execute(
            "SELECT * FROM submissions WHERE tx_hash=?", (tx_hash,)
        ) as cur:
            row = await cur.fetchone()
            return _row_to_record(row) if row else None

    async def get_recent(self, limit: int = 20) -> list[SubmissionRecord]:
        async with self.db.execute(
            "SELECT * FROM submissions ORDER BY submitted_at DESC, rowid DESC LIMIT ?",
            (limit,),
        ) as cur:
            return [_row_to_record(row) async for row in cur]

    async def get_by_state(self, state: str) -> list[SubmissionRecord]:
        async with self.db.execute(
            "SELECT * FROM submissions WHERE state=? ORDER BY submitted_at", (state,)
        ) as cur:
            return [_row_to_record(row) async for row in cur]
