"""Key dump parser - turns key-tool output into KeyRecords.

A dump is a sequence of six-line groups, one per key::

    Secret phrase:       bottom drive obey lake curtain smoke ...
    Secret seed:         0xfac7959dbfe72f052e5a0c3c8d6530f202b02fd8...
    Public key (hex):    0x46ebddef8cd9bb167dc30878d7113b7e168e6f06...
    Account ID:          0x46ebddef8cd9bb167dc30878d7113b7e168e6f06...
    Public key (SS58):   5DfhGyQdFobKM8NsWvEeAKk5EQQgYe9AydgJ7rMB6E1EqRzV
    SS58 Address:        5DfhGyQdFobKM8NsWvEeAKk5EQQgYe9AydgJ7rMB6E1EqRzV

Each line is a fixed-width label column followed by the value.
"""

from __future__ import annotations

import logging
from pathlib import Path

from chainprobe.errors import ParseError
from chainprobe.models.keys import KEY_FIELDS, KeyRecord

log = logging.getLogger(__name__)

LABEL_WIDTH = 21
GROUP_SIZE = len(KEY_FIELDS)

# Expected label for each line offset within a group
LABELS = (
    "Secret phrase",
    "Secret seed",
    "Public key (hex)",
    "Account ID",
    "Public key (SS58)",
    "SS58 Address",
)


def chunk(lines: list[str], size: int = GROUP_SIZE) -> list[list[str]]:
    """Split lines into complete groups of ``size``; a short tail is dropped."""
    complete = len(lines) - len(lines) % size
    return [lines[i:i + size] for i in range(0, complete, size)]


class KeyRecordParser:
    """Parses key dumps into an ordered list of KeyRecords.

    Malformed content never raises: a group with empty values or, when
    ``check_labels`` is on, a wrong label yields an invalid record that the
    caller can filter with ``KeyRecord.is_valid()``.
    """

    def __init__(self, label_width: int = LABEL_WIDTH, check_labels: bool = True) -> None:
        self._label_width = label_width
        self._check_labels = check_labels

    def parse(self, text: str) -> list[KeyRecord]:
        lines = text.splitlines()
        groups = chunk(lines)
        leftover = len(lines) - len(groups) * GROUP_SIZE
        if leftover:
            log.debug("Ignoring %d trailing line(s) after the last full key", leftover)

        records = [self._build(group) for group in groups]
        invalid = sum(1 for r in records if not r.is_valid())
        if invalid:
            log.warning("%d of %d key record(s) are incomplete", invalid, len(records))
        return records

    def parse_file(self, path: str | Path) -> list[KeyRecord]:
        """Read and parse a dump file. Raises ParseError if it can't be read."""
        p = Path(path).expanduser()
        try:
            text = p.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise ParseError(f"Cannot read key dump {p}: {exc}") from exc
        records = self.parse(text)
        log.info("Parsed %d key record(s) from %s", len(records), p)
        return records

    def _build(self, group: list[str]) -> KeyRecord:
        values = [line[self._label_width:].rstrip() for line in group]
        labels_ok = True
        if self._check_labels:
            labels_ok = all(
                expected in line[:self._label_width]
                for expected, line in zip(LABELS, group)
            )
        return KeyRecord(*values, labels_ok=labels_ok)
