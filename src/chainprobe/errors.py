"""Exception hierarchy for chainprobe."""

from __future__ import annotations

from chainprobe.models.records import TxState


class ChainProbeError(Exception):
    """Base exception for chainprobe errors."""
    pass


class ParseError(ChainProbeError):
    """Raised when a key dump cannot be read."""
    pass


class KeyNotFound(ChainProbeError, LookupError):
    """Raised when an address is not in the keyring."""

    def __init__(self, address: str) -> None:
        super().__init__(f"No key for address {address}")
        self.address = address


class SubmissionError(ChainProbeError):
    """Raised when encoding, signing, or the initial broadcast fails.

    No handle exists for a submission that raised this.
    """
    pass


class ProbeError(ChainProbeError):
    """Raised when a node JSON-RPC probe fails."""
    pass


class ConfirmationError(ChainProbeError):
    """Terminal failure of a broadcast transaction."""

    state: TxState = TxState.ERROR

    def __init__(self, tx_hash: str, detail: str = "") -> None:
        message = f"{tx_hash}: {self.state.value}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)
        self.tx_hash = tx_hash
        self.detail = detail


class TransactionDropped(ConfirmationError):
    state = TxState.DROPPED


class TransactionInvalid(ConfirmationError):
    state = TxState.INVALID


class TransactionUsurped(ConfirmationError):
    state = TxState.USURPED


class TransactionFailed(ConfirmationError):
    state = TxState.ERROR


class ConfirmationTimedOut(ConfirmationError):
    state = TxState.TIMED_OUT


CONFIRMATION_ERRORS: dict[TxState, type[ConfirmationError]] = {
    cls.state: cls
    for cls in (
        TransactionDropped,
        TransactionInvalid,
        TransactionUsurped,
        TransactionFailed,
        ConfirmationTimedOut,
    )
}
