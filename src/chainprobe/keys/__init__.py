"""Key dump import and keyring."""

from chainprobe.keys.keyring import KeyringIndex
from chainprobe.keys.parser import KeyRecordParser

__all__ = ["KeyRecordParser", "KeyringIndex"]
