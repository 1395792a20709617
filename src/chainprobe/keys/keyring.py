"""In-memory keyring indexed by SS58 address."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Iterator

from chainprobe.errors import KeyNotFound
from chainprobe.keys.parser import KeyRecordParser
from chainprobe.models.keys import KeyRecord

log = logging.getLogger(__name__)


class KeyringIndex:
    """Append-only collection of KeyRecords with address lookup.

    Iteration keeps import order and retains every record, including
    duplicates; lookup resolves an address to the most recently imported
    record carrying it.
    """

    def __init__(self, records: Iterable[KeyRecord] = ()) -> None:
        self._records: list[KeyRecord] = []
        self._by_address: dict[str, KeyRecord] = {}
        self.import_records(records)

    @classmethod
    def from_file(
        cls, path: str | Path, parser: KeyRecordParser | None = None,
    ) -> KeyringIndex:
        parser = parser or KeyRecordParser()
        return cls(parser.parse_file(path))

    def import_records(self, records: Iterable[KeyRecord]) -> int:
        """Append records and index them by address. Returns how many were added."""
        added = 0
        for record in records:
            self._records.append(record)
            added += 1
            if not record.ss58_address:
                continue
            if record.ss58_address in self._by_address:
                log.warning(
                    "Address %s imported again, newer record replaces it in the index",
                    record.ss58_address,
                )
            self._by_address[record.ss58_address] = record
        return added

    def lookup(self, address: str) -> KeyRecord | None:
        return self._by_address.get(address)

    def get(self, address: str) -> KeyRecord:
        record = self._by_address.get(address)
        if record is None:
            raise KeyNotFound(address)
        return record

    def all(self) -> list[KeyRecord]:
        return list(self._records)

    def valid(self) -> list[KeyRecord]:
        return [r for r in self._records if r.is_valid()]

    def addresses(self) -> list[str]:
        return list(self._by_address)

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[KeyRecord]:
        return iter(list(self._records))

    def __contains__(self, address: object) -> bool:
        return address in self._by_address
