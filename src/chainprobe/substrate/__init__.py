"""Substrate node integration components."""

from chainprobe.substrate.client import SubstrateChainClient, parse_status
from chainprobe.substrate.probe import NodeProbe

__all__ = ["SubstrateChainClient", "parse_status", "NodeProbe"]
