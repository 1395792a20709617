"""Protocol interfaces for chainprobe components."""

from chainprobe.interfaces.chain import ChainClient
from chainprobe.interfaces.store import SubmissionJournal

__all__ = ["ChainClient", "SubmissionJournal"]
