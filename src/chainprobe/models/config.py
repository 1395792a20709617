"""Configuration models."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ResolvePolicy(str, Enum):
    """Which status resolves a submission successfully."""

    IN_BLOCK = "in_block"  # resolve at first inclusion
    FINALIZED = "finalized"  # wait for the finality gadget


@dataclass
class ProbeConfig:
    """Complete chainprobe configuration."""

    # Node
    ws_url: str = "ws://127.0.0.1:9944"
    http_url: str = "http://127.0.0.1:9933"
    ss58_format: int = 42
    crypto_type: str = "sr25519"

    # Keys
    keys_path: str = "keys.data"
    label_width: int = 21
    check_labels: bool = True

    # Transactions
    policy: ResolvePolicy = ResolvePolicy.IN_BLOCK
    confirmation_timeout: float = 60.0  # seconds

    # Storage
    db_path: str = "~/.chainprobe/submissions.db"
    journal: bool = True

    # Peers
    bootnode_host: str = "127.0.0.1"
    p2p_port: int = 30333

    log_level: str = "info"
