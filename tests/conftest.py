"""Shared fixtures for chainprobe tests."""

from __future__ import annotations

import asyncio

import pytest

from chainprobe.keys.keyring import KeyringIndex
from chainprobe.keys.parser import KeyRecordParser
from chainprobe.models.config import ProbeConfig, ResolvePolicy
from chainprobe.storage.sqlite import SQLiteSubmissionJournal
from chainprobe.tx.submitter import TransactionSubmitter

from tests.factories import make_key_dump
from tests.mocks import FakeChainClient

DEST = "5FLSigC9HGRKVhB9FiEo4Y3koPsNmBmLJbpXg2mp1hXcS59Y"
BLOCK_1 = "0xc84e9d6e1f6f1f7c7d5ad9d2e7e1f4a1c0b3b2a1908070605040302010000001"
BLOCK_2 = "0xc84e9d6e1f6f1f7c7d5ad9d2e7e1f4a1c0b3b2a1908070605040302010000002"


def make_test_config(**overrides) -> ProbeConfig:
    """Build a ProbeConfig suitable for testing."""
    defaults = dict(
        ws_url="ws://127.0.0.1:9944",
        http_url="http://127.0.0.1:9933",
        keys_path="keys.data",
        policy=ResolvePolicy.IN_BLOCK,
        confirmation_timeout=5.0,
        db_path=":memory:",
    )
    defaults.update(overrides)
    return ProbeConfig(**defaults)


async def settle(rounds: int = 50) -> None:
    """Let background tracker tasks run."""
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture
def test_config():
    return make_test_config()


@pytest.fixture
def keyring():
    """Keyring with three complete keys."""
    return KeyringIndex(KeyRecordParser().parse(make_key_dump(3)))


@pytest.fixture
def fake_client():
    return FakeChainClient()


@pytest.fixture
async def journal():
    """Initialized in-memory SQLiteSubmissionJournal."""
    j = SQLiteSubmissionJournal(":memory:")
    await j.initialize()
    yield j
    await j.close()


@pytest.fixture
def submitter(fake_client, keyring):
    return TransactionSubmitter(fake_client, keyring, timeout=5.0)
