"""Mapping of node extrinsic status updates to status events."""

from __future__ import annotations

import pytest

from chainprobe.models.events import (
    Dropped,
    Finalized,
    InBlock,
    Invalid,
    Ready,
    TransportError,
    Usurped,
)
from chainprobe.substrate.client import SubstrateChainClient, parse_status

from tests.conftest import BLOCK_1


@pytest.mark.parametrize("result, event", [
    ("ready", Ready()),
    ("dropped", Dropped()),
    ("invalid", Invalid()),
    ({"inBlock": BLOCK_1}, InBlock(BLOCK_1)),
    ({"finalized": BLOCK_1}, Finalized(BLOCK_1)),
    ({"usurped": "0x01"}, Usurped(by="0x01")),
])
def test_outcome_statuses(result, event):
    assert parse_status(result) == event


@pytest.mark.parametrize("result", [
    "future",
    {"broadcast": ["12D3KooWEyoppNCUx8Yx66oV9fJnriXwCcXwDDUA2kj6vnc6iDEp"]},
    {"retracted": BLOCK_1},
    None,
    {},
])
def test_statuses_without_outcome(result):
    assert parse_status(result) is None


def test_finality_timeout_is_a_transport_error():
    event = parse_status({"finalityTimeout": BLOCK_1})
    assert isinstance(event, TransportError)
    assert BLOCK_1 in event.detail


def test_unknown_crypto_type():
    with pytest.raises(ValueError, match="bls"):
        SubstrateChainClient(crypto_type="bls")
