"""ChainClient protocol - the node-facing capability used by the submitter."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, Sequence

from chainprobe.models.keys import KeyRecord
from chainprobe.models.records import SignedPayload

if TYPE_CHECKING:
    from chainprobe.tx.subscription import StatusSubscription


class ChainClient(Protocol):
    """Encodes, signs, and broadcasts extrinsics; streams their status.

    One client may serve many in-flight submissions at once.
    """

    async def connect(self) -> None:
        """Open the connection to the node."""
        ...

    async def encode_call(
        self, module: str, function: str, args: Sequence[tuple[str, Any]],
    ) -> Any:
        """Encode a runtime call against the node's metadata."""
        ...

    async def sign(self, call: Any, signer: KeyRecord | Any) -> SignedPayload:
        """Sign a call with nonce and era filled in by the client."""
        ...

    async def submit(self, payload: SignedPayload) -> StatusSubscription:
        """Broadcast and watch. Returns once the node accepted the extrinsic."""
        ...

    async def cancel(self, subscription: StatusSubscription) -> None:
        """Stop watching. The extrinsic itself may still be included."""
        ...

    async def close(self) -> None:
        ...
