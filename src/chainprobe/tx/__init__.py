"""Transaction submission and status tracking."""

from chainprobe.tx.subscription import StatusSubscription
from chainprobe.tx.submitter import TransactionSubmitter, balance_transfer
from chainprobe.tx.tracker import StatusTracker, SubmissionHandle

__all__ = [
    "StatusSubscription",
    "TransactionSubmitter", "balance_transfer",
    "StatusTracker", "SubmissionHandle",
]
