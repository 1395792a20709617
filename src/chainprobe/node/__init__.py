"""Node process helpers."""

from chainprobe.node.identity import (
    bootnode_address,
    collect_peer_ids,
    find_peer_id,
    format_peer_ids,
    read_peer_id,
)

__all__ = [
    "bootnode_address", "collect_peer_ids", "find_peer_id",
    "format_peer_ids", "read_peer_id",
]
