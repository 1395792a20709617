"""Tier 2 fixtures: a real development node (e.g. ``substrate --dev``)."""

from __future__ import annotations

import os

import httpx
import pytest

from chainprobe.substrate.client import SubstrateChainClient
from chainprobe.tx.submitter import TransactionSubmitter

from tests.conftest import make_test_config

WS_URL = os.environ.get("CHAINPROBE_WS_URL", "ws://127.0.0.1:9944")
HTTP_URL = os.environ.get("CHAINPROBE_HTTP_URL", "http://127.0.0.1:9933")


@pytest.fixture(scope="session")
def node_available():
    """Check if a node answers JSON-RPC. Skip tier2 tests if not."""
    try:
        r = httpx.post(
            HTTP_URL,
            json={"jsonrpc": "2.0", "id": 1, "method": "system_chain", "params": []},
            timeout=3,
        )
        if r.status_code == 200:
            return True
        pytest.skip(f"Node not available at {HTTP_URL}")
    except (httpx.ConnectError, httpx.TimeoutException):
        pytest.skip(f"Node not available at {HTTP_URL}")


@pytest.fixture
def live_config(node_available):
    return make_test_config(ws_url=WS_URL, http_url=HTTP_URL, confirmation_timeout=60.0)


@pytest.fixture
async def chain_client(live_config):
    client = SubstrateChainClient(live_config.ws_url, live_config.ss58_format)
    await client.connect()
    yield client
    await client.close()


@pytest.fixture
def live_submitter(chain_client, live_config):
    return TransactionSubmitter(
        chain_client, policy=live_config.policy, timeout=live_config.confirmation_timeout,
    )
