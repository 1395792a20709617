"""Peer identity discovery from node logs.

A starting node prints a line such as::

    2021-03-02 10:11:12  Local node identity is: 12D3KooWEyoppNCUx8Yx66oV9fJnriXwCcXwDDUA2kj6vnc6iDEp

Launch tooling greps that line to wire further nodes to the first one as a
bootnode. The helpers here read it and produce the bootnode multiaddr and
the ``Name: <peer id>`` listing used by that tooling.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path

from chainprobe.errors import ParseError

log = logging.getLogger(__name__)

IDENTITY_MARKER = "Local node identity is"

_ANSI = re.compile(r"\x1b\[[0-9;]*m")
_IDENTITY = re.compile(IDENTITY_MARKER + r":?\s+([1-9A-HJ-NP-Za-km-z]+)")


def find_peer_id(text: str) -> str | None:
    """Return the peer id from the first identity line in ``text``."""
    match = _IDENTITY.search(_ANSI.sub("", text))
    return match.group(1) if match else None


def read_peer_id(log_path: str | Path) -> str | None:
    p = Path(log_path).expanduser()
    try:
        text = p.read_text(encoding="utf-8", errors="replace")
    except OSError as exc:
        raise ParseError(f"Cannot read node log {p}: {exc}") from exc
    peer_id = find_peer_id(text)
    if peer_id is None:
        log.warning("No '%s' line in %s", IDENTITY_MARKER, p)
    return peer_id


def bootnode_address(peer_id: str, host: str = "127.0.0.1", port: int = 30333) -> str:
    """Multiaddr other nodes pass to ``--bootnodes``."""
    return f"/ip4/{host}/tcp/{port}/p2p/{peer_id}"


def collect_peer_ids(logs: dict[str, str | Path]) -> dict[str, str | None]:
    """Read the peer id of every named node log. Unreadable logs map to None."""
    ids: dict[str, str | None] = {}
    for name, path in logs.items():
        try:
            ids[name] = read_peer_id(path)
        except ParseError as exc:
            log.warning("%s: %s", name, exc)
            ids[name] = None
    return ids


def format_peer_ids(ids: dict[str, str | None]) -> str:
    return "".join(f"{name}: {peer_id or ''}\n" for name, peer_id in ids.items())
