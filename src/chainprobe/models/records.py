"""Transaction request, result, and journal record types."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union

from chainprobe.models.events import StatusEvent
from chainprobe.models.keys import KeyRecord


class TxState(str, Enum):
    """Lifecycle of one watched submission."""

    SUBMITTED = "submitted"
    READY = "ready"
    IN_BLOCK = "in_block"
    FINALIZED = "finalized"
    DROPPED = "dropped"
    INVALID = "invalid"
    USURPED = "usurped"
    ERROR = "error"
    TIMED_OUT = "timed_out"
    CANCELLED = "cancelled"


# Signer reference: a keyring record, or an address looked up in the keyring.
Signer = Union[KeyRecord, str]


@dataclass
class TransactionRequest:
    """A runtime call to sign and submit.

    ``args`` keeps the call arguments in declaration order as (name, value)
    pairs. Either ``signer`` or ``keypair`` (an externally derived key pair,
    e.g. a dev account) must be set.
    """

    module: str
    function: str
    args: list[tuple[str, Any]] = field(default_factory=list)
    signer: Signer | None = None
    keypair: Any = None

    @property
    def call_name(self) -> str:
        return f"{self.module}.{self.function}"


@dataclass(frozen=True)
class SignedPayload:
    """A signed extrinsic ready for broadcast."""

    tx_hash: str
    signer_address: str
    data: Any = field(default=None, repr=False)  # library extrinsic object


@dataclass
class InclusionResult:
    """Successful resolution of a submission."""

    tx_hash: str
    state: TxState
    block_hash: str
    events: list[StatusEvent] = field(default_factory=list)


@dataclass
class SubmissionRecord:
    """A submission as persisted in the journal."""

    tx_hash: str
    call: str
    signer: str
    policy: str
    state: str = TxState.SUBMITTED.value
    block_hash: str | None = None
    error: str | None = None
    submitted_at: str = ""
    resolved_at: str | None = None


@dataclass
class NodeInfo:
    """Node identity and health as reported over JSON-RPC."""

    chain: str
    name: str
    version: str
    peers: int = 0
    is_syncing: bool = False
    should_have_peers: bool = True
    local_peer_id: str | None = None

    def describe(self) -> str:
        return f"You are connected to chain {self.chain} using {self.name} v{self.version}"
