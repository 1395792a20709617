"""chainprobe - key import and transaction tracking for Substrate nodes."""

__version__ = "0.3.0"
