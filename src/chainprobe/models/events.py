"""Transaction status events pushed by the node for a watched extrinsic."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union


@dataclass(frozen=True)
class Ready:
    """The transaction pool accepted the extrinsic and it is ready for inclusion."""


@dataclass(frozen=True)
class InBlock:
    """The extrinsic was included in a produced block."""

    block_hash: str


@dataclass(frozen=True)
class Finalized:
    """The including block was finalized."""

    block_hash: str


@dataclass(frozen=True)
class Dropped:
    """The pool dropped the extrinsic (usually because it was full)."""


@dataclass(frozen=True)
class Invalid:
    """The extrinsic failed validity checks, e.g. a stale nonce."""


@dataclass(frozen=True)
class Usurped:
    """Another extrinsic with the same sender and nonce replaced this one."""

    by: str = ""


@dataclass(frozen=True)
class TransportError:
    """The watch failed below the pool: connection loss, finality timeout."""

    detail: str


StatusEvent = Union[Ready, InBlock, Finalized, Dropped, Invalid, Usurped, TransportError]
