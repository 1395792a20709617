"""Status tracker: resolve policies, exactly-once resolution, timeout, cancel."""

from __future__ import annotations

import asyncio

import pytest

from chainprobe.errors import (
    ConfirmationTimedOut,
    TransactionDropped,
    TransactionFailed,
    TransactionInvalid,
    TransactionUsurped,
)
from chainprobe.models.config import ResolvePolicy
from chainprobe.models.events import (
    Dropped,
    Finalized,
    InBlock,
    Invalid,
    Ready,
    TransportError,
    Usurped,
)
from chainprobe.models.records import TxState
from chainprobe.tx.subscription import StatusSubscription
from chainprobe.tx.tracker import StatusTracker

from tests.conftest import BLOCK_1, BLOCK_2, settle
from tests.mocks import FakeChainClient

TX = "0x" + "ab" * 32


async def make_tracker(client, policy=ResolvePolicy.IN_BLOCK, timeout=5.0, hook=None):
    sub = StatusSubscription(TX, subscription_id="sub-1")
    client.subscriptions.append(sub)
    tracker = StatusTracker(client, sub, policy=policy, timeout=timeout, on_resolved=hook)
    return tracker


class Hook:
    """Counts outcome notifications."""

    def __init__(self) -> None:
        self.calls: list[TxState] = []

    async def __call__(self, tracker: StatusTracker) -> None:
        self.calls.append(tracker.state)


# ── Resolve policies ─────────────────────────────────────────────


async def test_in_block_policy_resolves_at_inclusion(fake_client):
    hook = Hook()
    tracker = await make_tracker(fake_client, hook=hook)
    tracker.start()

    fake_client.push(Ready(), InBlock(BLOCK_1))
    result = await tracker.result()
    await tracker.join()

    assert result.block_hash == BLOCK_1
    assert result.state is TxState.IN_BLOCK
    assert result.events == [Ready(), InBlock(BLOCK_1)]
    assert hook.calls == [TxState.IN_BLOCK]
    assert fake_client.cancel_calls == ["sub-1"]


async def test_finalized_policy_waits_past_inclusion(fake_client):
    hook = Hook()
    tracker = await make_tracker(fake_client, policy=ResolvePolicy.FINALIZED, hook=hook)
    tracker.start()

    fake_client.push(Ready(), InBlock(BLOCK_1))
    await settle()
    assert not tracker.done()
    assert tracker.state is TxState.IN_BLOCK
    assert fake_client.cancel_calls == []

    fake_client.push(Finalized(BLOCK_1))
    result = await tracker.result()
    await tracker.join()

    assert result.state is TxState.FINALIZED
    assert result.block_hash == BLOCK_1
    assert hook.calls == [TxState.FINALIZED]
    assert fake_client.cancel_calls == ["sub-1"]


async def test_in_block_policy_accepts_finalized_without_in_block(fake_client):
    tracker = await make_tracker(fake_client)
    tracker.start()

    fake_client.push(Finalized(BLOCK_2))
    result = await tracker.result()

    assert result.state is TxState.FINALIZED
    assert result.block_hash == BLOCK_2


async def test_duplicate_and_stale_events_do_not_regress(fake_client):
    tracker = await make_tracker(fake_client, policy=ResolvePolicy.FINALIZED)

    assert tracker.handle(Ready()) is False
    assert tracker.handle(InBlock(BLOCK_1)) is False
    assert tracker.handle(Ready()) is False
    assert tracker.handle(InBlock(BLOCK_2)) is False
    assert tracker.state is TxState.IN_BLOCK
    assert tracker.block_hash == BLOCK_1


# ── Failures ─────────────────────────────────────────────────────


@pytest.mark.parametrize("event, error, state", [
    (Dropped(), TransactionDropped, TxState.DROPPED),
    (Invalid(), TransactionInvalid, TxState.INVALID),
    (Usurped(by="0x99"), TransactionUsurped, TxState.USURPED),
    (TransportError("connection closed"), TransactionFailed, TxState.ERROR),
])
@pytest.mark.parametrize("policy", list(ResolvePolicy))
async def test_failure_events_resolve_regardless_of_policy(fake_client, event, error, state, policy):
    tracker = await make_tracker(fake_client, policy=policy)
    tracker.start()

    fake_client.push(Ready(), event)
    with pytest.raises(error) as exc_info:
        await tracker.result()
    await tracker.join()

    assert exc_info.value.state is state
    assert exc_info.value.tx_hash == TX
    assert tracker.state is state
    assert tracker.error is exc_info.value
    assert fake_client.cancel_calls == ["sub-1"]


async def test_transport_error_detail_is_kept(fake_client):
    tracker = await make_tracker(fake_client)
    tracker.start()

    fake_client.push(TransportError("finality timeout at block 0x12"))
    with pytest.raises(TransactionFailed) as exc_info:
        await tracker.result()

    assert exc_info.value.detail == "finality timeout at block 0x12"


# ── Exactly once ─────────────────────────────────────────────────


async def test_events_after_terminal_are_ignored(fake_client):
    hook = Hook()
    tracker = await make_tracker(fake_client, hook=hook)
    tracker.start()

    fake_client.push(Dropped(), Ready(), InBlock(BLOCK_1), Finalized(BLOCK_1))
    with pytest.raises(TransactionDropped):
        await tracker.result()
    await tracker.join()

    fake_client.push(InBlock(BLOCK_2))
    await settle()

    assert tracker.handle(InBlock(BLOCK_2)) is False
    assert tracker.state is TxState.DROPPED
    assert tracker.events == [Dropped()]
    assert hook.calls == [TxState.DROPPED]
    assert fake_client.cancel_calls == ["sub-1"]


async def test_second_resolution_never_fires(fake_client):
    tracker = await make_tracker(fake_client)

    assert tracker.handle(InBlock(BLOCK_1)) is True
    assert tracker.handle(InBlock(BLOCK_2)) is False
    assert tracker.handle(Invalid()) is False

    result = await tracker.result()
    assert result.block_hash == BLOCK_1
    assert tracker.state is TxState.IN_BLOCK

    await tracker.join()
    assert tracker.released
    assert fake_client.cancel_calls == ["sub-1"]
    assert fake_client.subscriptions[0].closed


async def test_result_can_be_awaited_repeatedly(fake_client):
    tracker = await make_tracker(fake_client)
    tracker.start()
    fake_client.push(InBlock(BLOCK_1))

    first = await tracker.result()
    second = await tracker.result()

    assert first is second


# ── Timeout ──────────────────────────────────────────────────────


async def test_timeout_resolves_once_and_cancels_once(fake_client):
    hook = Hook()
    tracker = await make_tracker(
        fake_client, policy=ResolvePolicy.FINALIZED, timeout=0.05, hook=hook,
    )
    tracker.start()
    fake_client.push(Ready(), InBlock(BLOCK_1))

    with pytest.raises(ConfirmationTimedOut) as exc_info:
        await tracker.result()
    await tracker.join()

    assert tracker.state is TxState.TIMED_OUT
    assert "finalized" in exc_info.value.detail
    assert hook.calls == [TxState.TIMED_OUT]
    assert fake_client.cancel_calls == ["sub-1"]

    fake_client.push(Finalized(BLOCK_1))
    await settle()
    assert tracker.state is TxState.TIMED_OUT
    assert fake_client.cancel_calls == ["sub-1"]


# ── Cancellation ─────────────────────────────────────────────────


async def test_cancel_before_resolution(fake_client):
    hook = Hook()
    tracker = await make_tracker(fake_client, hook=hook)
    tracker.start()
    fake_client.push(Ready())
    await settle()

    assert await tracker.cancel() is True
    assert tracker.state is TxState.CANCELLED
    assert tracker.released
    assert fake_client.cancel_calls == ["sub-1"]
    assert hook.calls == [TxState.CANCELLED]

    with pytest.raises(asyncio.CancelledError):
        await tracker.result()

    fake_client.push(InBlock(BLOCK_1))
    await settle()
    assert tracker.state is TxState.CANCELLED
    assert await tracker.cancel() is False
    assert fake_client.cancel_calls == ["sub-1"]


async def test_cancel_after_resolution_is_a_no_op(fake_client):
    tracker = await make_tracker(fake_client)
    tracker.start()
    fake_client.push(InBlock(BLOCK_1))
    await tracker.result()
    await tracker.join()

    assert await tracker.cancel() is False
    assert tracker.state is TxState.IN_BLOCK
    assert fake_client.cancel_calls == ["sub-1"]


async def test_release_failure_is_logged_not_raised(caplog):
    class BrokenCancel(FakeChainClient):
        async def cancel(self, subscription):
            raise ConnectionError("socket gone")

    client = BrokenCancel()
    tracker = await make_tracker(client)
    tracker.start()
    client.push(InBlock(BLOCK_1))

    result = await tracker.result()
    await tracker.join()

    assert result.block_hash == BLOCK_1
    assert tracker.released
    assert "Failed to release subscription" in caplog.text


async def test_direct_events_release_once_even_if_started_later(fake_client):
    hook = Hook()
    tracker = await make_tracker(fake_client, hook=hook)

    assert tracker.handle(Invalid()) is True
    tracker.start()
    await tracker.join()

    with pytest.raises(TransactionInvalid):
        await tracker.result()
    assert fake_client.cancel_calls == ["sub-1"]
    assert hook.calls == [TxState.INVALID]
