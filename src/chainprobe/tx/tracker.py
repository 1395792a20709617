"""Status tracker - resolves one submission exactly once from its status stream.

The tracker consumes the node's status events for a single extrinsic and
advances a monotonic state (submitted -> ready -> in_block -> finalized).
Its result resolves at the first event that satisfies the resolve policy, or
at the first failure event, or when the confirmation timeout expires. After
resolution the subscription is released and later events are ignored.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

from chainprobe.errors import CONFIRMATION_ERRORS, ConfirmationError
from chainprobe.interfaces.chain import ChainClient
from chainprobe.models.config import ResolvePolicy
from chainprobe.models.events import (
    Dropped,
    Finalized,
    InBlock,
    Invalid,
    Ready,
    StatusEvent,
    TransportError,
    Usurped,
)
from chainprobe.models.records import InclusionResult, TransactionRequest, TxState
from chainprobe.tx.subscription import StatusSubscription

log = logging.getLogger(__name__)

_RANK = {
    TxState.SUBMITTED: 0,
    TxState.READY: 1,
    TxState.IN_BLOCK: 2,
    TxState.FINALIZED: 3,
}

_TARGET = {
    ResolvePolicy.IN_BLOCK: TxState.IN_BLOCK,
    ResolvePolicy.FINALIZED: TxState.FINALIZED,
}

OnResolved = Callable[["StatusTracker"], Awaitable[None]]


def _short(tx_hash: str) -> str:
    return tx_hash[:18] if tx_hash else "?"


class StatusTracker:
    """Per-submission state machine with a single-resolution result."""

    def __init__(
        self,
        client: ChainClient,
        subscription: StatusSubscription,
        policy: ResolvePolicy = ResolvePolicy.IN_BLOCK,
        timeout: float = 60.0,
        on_resolved: OnResolved | None = None,
    ) -> None:
        self._client = client
        self._subscription = subscription
        self._policy = policy
        self._target = _TARGET[policy]
        self._timeout = timeout
        self._on_resolved = on_resolved

        self._state = TxState.SUBMITTED
        self._block_hash: str | None = None
        self._events: list[StatusEvent] = []
        self._result: asyncio.Future[InclusionResult] = (
            asyncio.get_running_loop().create_future()
        )
        self._released = False
        self._task: asyncio.Task | None = None

    @property
    def tx_hash(self) -> str:
        return self._subscription.tx_hash

    @property
    def state(self) -> TxState:
        return self._state

    @property
    def policy(self) -> ResolvePolicy:
        return self._policy

    @property
    def block_hash(self) -> str | None:
        return self._block_hash

    @property
    def events(self) -> list[StatusEvent]:
        return list(self._events)

    @property
    def error(self) -> ConfirmationError | None:
        if self._result.done() and not self._result.cancelled():
            exc = self._result.exception()
            if isinstance(exc, ConfirmationError):
                return exc
        return None

    @property
    def released(self) -> bool:
        return self._released

    def done(self) -> bool:
        return self._result.done()

    def start(self) -> None:
        """Begin consuming the subscription in a background task."""
        if self._task is None:
            self._task = asyncio.create_task(
                self._run(), name=f"track-{_short(self.tx_hash)}",
            )

    async def result(self) -> InclusionResult:
        """Wait for resolution. Raises ConfirmationError on terminal failure."""
        return await asyncio.shield(self._result)

    async def join(self) -> None:
        """Wait until the subscription is released and the outcome hook ran."""
        if self._task is not None:
            await asyncio.gather(self._task, return_exceptions=True)

    async def cancel(self) -> bool:
        """Stop tracking before resolution. Returns False if already resolved."""
        if self._result.done():
            return False
        self._state = TxState.CANCELLED
        self._result.cancel()
        log.info("Stopped watching %s, it may still be included", _short(self.tx_hash))

        if self._task is not None and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        await self._release()
        await self._notify()
        return True

    # ── Event handling ─────────────────────────────────────

    def handle(self, event: StatusEvent) -> bool:
        """Apply one status event. Returns True if it resolved the result.

        Events fed here while no consuming task runs still release the
        subscription on resolution.
        """
        resolved = self._apply(event)
        if resolved and self._task is None:
            self._task = asyncio.get_running_loop().create_task(
                self._finish(), name=f"finish-{_short(self.tx_hash)}",
            )
        return resolved

    def _apply(self, event: StatusEvent) -> bool:
        if self._result.done():
            log.debug("Ignoring %s for resolved %s", event, _short(self.tx_hash))
            return False

        self._events.append(event)

        if isinstance(event, Ready):
            return self._advance(TxState.READY)
        if isinstance(event, InBlock):
            return self._advance(TxState.IN_BLOCK, event.block_hash)
        if isinstance(event, Finalized):
            return self._advance(TxState.FINALIZED, event.block_hash)
        if isinstance(event, Dropped):
            return self._fail(TxState.DROPPED, "dropped from the transaction pool")
        if isinstance(event, Invalid):
            return self._fail(TxState.INVALID, "rejected as invalid")
        if isinstance(event, Usurped):
            return self._fail(TxState.USURPED, f"replaced by {event.by}" if event.by else "")
        if isinstance(event, TransportError):
            return self._fail(TxState.ERROR, event.detail)

        log.warning("Unknown status event %r for %s", event, _short(self.tx_hash))
        return False

    def _advance(self, state: TxState, block_hash: str | None = None) -> bool:
        if _RANK[state] <= _RANK[self._state]:
            log.debug(
                "%s for %s does not advance %s",
                state.value, _short(self.tx_hash), self._state.value,
            )
            return False

        self._state = state
        if block_hash:
            self._block_hash = block_hash

        if state is TxState.READY:
            log.info("%s accepted by the node, waiting on chain", _short(self.tx_hash))
        elif state is TxState.IN_BLOCK:
            log.info("%s included at block %s", _short(self.tx_hash), block_hash)
        else:
            log.info("%s finalized at block %s", _short(self.tx_hash), block_hash)

        if _RANK[state] < _RANK[self._target]:
            return False

        self._result.set_result(InclusionResult(
            tx_hash=self.tx_hash,
            state=state,
            block_hash=self._block_hash or "",
            events=list(self._events),
        ))
        return True

    def _fail(self, state: TxState, detail: str = "") -> bool:
        self._state = state
        self._result.set_exception(CONFIRMATION_ERRORS[state](self.tx_hash, detail))
        log.warning(
            "%s resolved as %s%s",
            _short(self.tx_hash), state.value, f": {detail}" if detail else "",
        )
        return True

    # ── Consumption loop ───────────────────────────────────

    async def _run(self) -> None:
        try:
            await self._consume()
        finally:
            await self._release()
        await self._notify()

    async def _consume(self) -> None:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self._timeout

        while not self._result.done():
            remaining = deadline - loop.time()
            try:
                if remaining <= 0:
                    raise asyncio.TimeoutError
                event = await asyncio.wait_for(self._subscription.next_event(), remaining)
            except asyncio.TimeoutError:
                self._fail(
                    TxState.TIMED_OUT,
                    f"no {self._target.value} status within {self._timeout:g}s",
                )
                return
            self._apply(event)

    async def _finish(self) -> None:
        await self._release()
        await self._notify()

    async def _release(self) -> None:
        if self._released:
            return
        self._released = True
        try:
            await self._client.cancel(self._subscription)
        except Exception as exc:
            log.error(
                "Failed to release subscription for %s: %s",
                _short(self.tx_hash), exc, exc_info=True,
            )

    async def _notify(self) -> None:
        if self._on_resolved is None:
            return
        try:
            await self._on_resolved(self)
        except Exception as exc:
            log.error("Outcome hook failed for %s: %s", _short(self.tx_hash), exc)


class SubmissionHandle:
    """Caller-owned handle on one broadcast transaction."""

    def __init__(self, request: TransactionRequest, tracker: StatusTracker) -> None:
        self.request = request
        self._tracker = tracker

    @property
    def tx_hash(self) -> str:
        return self._tracker.tx_hash

    @property
    def state(self) -> TxState:
        return self._tracker.state

    @property
    def tracker(self) -> StatusTracker:
        return self._tracker

    def done(self) -> bool:
        return self._tracker.done()

    async def result(self) -> InclusionResult:
        return await self._tracker.result()

    async def join(self) -> None:
        await self._tracker.join()

    async def cancel(self) -> bool:
        return await self._tracker.cancel()

    def __repr__(self) -> str:
        return (
            f"SubmissionHandle({self.request.call_name}, tx={_short(self.tx_hash)},"
            f" state={self.state.value})"
        )
