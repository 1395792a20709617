"""Data models for chainprobe."""

from chainprobe.models.config import ProbeConfig, ResolvePolicy
from chainprobe.models.events import (
    Dropped,
    Finalized,
    InBlock,
    Invalid,
    Ready,
    StatusEvent,
    TransportError,
    Usurped,
)
from chainprobe.models.keys import KeyRecord
from chainprobe.models.records import (
    InclusionResult,
    NodeInfo,
    SignedPayload,
    SubmissionRecord,
    TransactionRequest,
    TxState,
)

__all__ = [
    "ProbeConfig", "ResolvePolicy",
    "StatusEvent", "Ready", "InBlock", "Finalized",
    "Dropped", "Invalid", "Usurped", "TransportError",
    "KeyRecord",
    "TransactionRequest", "SignedPayload", "InclusionResult",
    "SubmissionRecord", "NodeInfo", "TxState",
]
