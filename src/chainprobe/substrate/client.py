"""Substrate chain client - ChainClient over py-substrate-interface.

Encoding, nonce/era lookup and signing are delegated to the library. The
library is blocking, so calls run in worker threads: metadata and signing
calls share one connection behind a lock, and every watched extrinsic gets
its own websocket, since a watch blocks its connection until it ends.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from typing import Any, Sequence

from substrateinterface import Keypair, KeypairType, SubstrateInterface
from substrateinterface.exceptions import SubstrateRequestException

from chainprobe.errors import SubmissionError
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
from chainprobe.models.keys import KeyRecord
from chainprobe.models.records import SignedPayload
from chainprobe.tx.subscription import StatusSubscription

log = logging.getLogger(__name__)

CRYPTO_TYPES = {
    "sr25519": KeypairType.SR25519,
    "ed25519": KeypairType.ED25519,
    "ecdsa": KeypairType.ECDSA,
}

# Statuses after which the node sends nothing more for the extrinsic
_FINAL_STATUSES = {"finalized", "usurped", "dropped", "invalid", "finalitytimeout"}

# Seconds to wait for a watch thread after aborting its connection
WATCH_JOIN_TIMEOUT = 5.0


def _status_key(result: object) -> str | None:
    if isinstance(result, str):
        return result.lower()
    if isinstance(result, dict) and result:
        return next(iter(result)).lower()
    return None


def parse_status(result: object) -> StatusEvent | None:
    """Map an ``author_extrinsicUpdate`` result to a StatusEvent.

    Returns None for statuses that carry no outcome (future, broadcast,
    retracted).
    """
    if isinstance(result, str):
        status = result.lower()
        if status == "ready":
            return Ready()
        if status == "dropped":
            return Dropped()
        if status == "invalid":
            return Invalid()
        log.debug("Ignoring extrinsic status %s", result)
        return None

    if isinstance(result, dict) and result:
        values = {k.lower(): v for k, v in result.items()}
        if "inblock" in values:
            return InBlock(block_hash=str(values["inblock"]))
        if "finalized" in values:
            return Finalized(block_hash=str(values["finalized"]))
        if "usurped" in values:
            return Usurped(by=str(values["usurped"]))
        if "finalitytimeout" in values:
            return TransportError(detail=f"finality timeout at block {values['finalitytimeout']}")
        log.debug("Ignoring extrinsic status %s", next(iter(result)))
        return None

    log.warning("Unrecognized extrinsic status %r", result)
    return None


def _abort(substrate: SubstrateInterface) -> None:
    """Shut down a watch connection so a thread blocked reading it wakes up."""
    try:
        substrate.websocket.abort()
    except Exception as exc:
        log.debug("Aborting watch connection: %s", exc)


def _settle(future: asyncio.Future, result: Any = None, exc: BaseException | None = None) -> None:
    if future.done():
        return
    if exc is not None:
        future.set_exception(exc)
    else:
        future.set_result(result)


class SubstrateChainClient:
    """ChainClient for a Substrate node's websocket RPC endpoint."""

    def __init__(
        self,
        url: str = "ws://127.0.0.1:9944",
        ss58_format: int = 42,
        crypto_type: str = "sr25519",
    ) -> None:
        self._url = url
        self._ss58_format = ss58_format
        try:
            self._crypto_type = CRYPTO_TYPES[crypto_type.lower()]
        except KeyError:
            raise ValueError(f"Unknown crypto type: {crypto_type}") from None
        self._substrate: SubstrateInterface | None = None
        self._lock = asyncio.Lock()

        # Watch connections and threads by subscription, guarded by _watch_lock
        self._watch_lock = threading.Lock()
        self._watches: dict[StatusSubscription, SubstrateInterface] = {}
        self._threads: dict[StatusSubscription, threading.Thread] = {}

    def _open(self) -> SubstrateInterface:
        return SubstrateInterface(url=self._url, ss58_format=self._ss58_format)

    @property
    def substrate(self) -> SubstrateInterface:
        assert self._substrate is not None, "Client not connected. Call connect() first."
        return self._substrate

    async def connect(self) -> None:
        if self._substrate is None:
            self._substrate = await asyncio.to_thread(self._open)
            log.info(
                "Connected to %s (%s, runtime %s)",
                self._url, self._substrate.chain, self._substrate.runtime_version,
            )

    async def close(self) -> None:
        with self._watch_lock:
            pending = list(self._threads)
        for subscription in pending:
            await self.cancel(subscription)
        if self._substrate is not None:
            await asyncio.to_thread(self._substrate.close)
            self._substrate = None

    # ── Keys ───────────────────────────────────────────────

    def keypair_for(self, signer: KeyRecord | Keypair) -> Keypair:
        """Derive a Keypair from a keyring record, checking it matches the dump."""
        if isinstance(signer, Keypair):
            return signer
        try:
            keypair = Keypair.create_from_seed(
                seed_hex=signer.secret_seed,
                ss58_format=self._ss58_format,
                crypto_type=self._crypto_type,
            )
        except Exception as exc:
            raise SubmissionError(f"Bad secret seed for {signer.ss58_address}: {exc}") from exc

        expected = signer.public_key_hex.lower().removeprefix("0x")
        if keypair.public_key.hex() != expected:
            raise SubmissionError(
                f"Seed for {signer.ss58_address} does not match its public key"
            )
        return keypair

    def keypair_from_uri(self, uri: str) -> Keypair:
        """Dev accounts and derivation paths, e.g. ``//Alice``."""
        return Keypair.create_from_uri(
            uri, ss58_format=self._ss58_format, crypto_type=self._crypto_type,
        )

    # ── Encoding and signing ───────────────────────────────

    async def encode_call(
        self, module: str, function: str, args: Sequence[tuple[str, Any]],
    ) -> Any:
        async with self._lock:
            return await asyncio.to_thread(
                self.substrate.compose_call,
                call_module=module,
                call_function=function,
                call_params=dict(args),
            )

    async def sign(self, call: Any, signer: KeyRecord | Keypair) -> SignedPayload:
        keypair = self.keypair_for(signer)
        async with self._lock:
            extrinsic = await asyncio.to_thread(
                self.substrate.create_signed_extrinsic, call=call, keypair=keypair,
            )
        return SignedPayload(
            tx_hash=f"0x{extrinsic.extrinsic_hash.hex()}",
            signer_address=keypair.ss58_address,
            data=extrinsic,
        )

    # ── Submission ─────────────────────────────────────────

    async def submit(self, payload: SignedPayload) -> StatusSubscription:
        """Broadcast via ``author_submitAndWatchExtrinsic``.

        Returns once the node has answered with the first status update;
        a rejection before that raises SubmissionError.
        """
        loop = asyncio.get_running_loop()
        subscription = StatusSubscription(payload.tx_hash)
        accepted: asyncio.Future[str] = loop.create_future()

        thread = threading.Thread(
            target=self._watch,
            args=(payload, subscription, loop, accepted),
            name=f"watch-{payload.tx_hash[:10]}",
            daemon=True,
        )
        with self._watch_lock:
            self._threads[subscription] = thread
        thread.start()

        try:
            subscription.id = await accepted
        except SubstrateRequestException as exc:
            self._forget(subscription)
            raise SubmissionError(f"Node rejected {payload.tx_hash}: {exc}") from exc
        except BaseException:
            self._forget(subscription)
            raise
        log.debug("Watching %s as subscription %s", payload.tx_hash, subscription.id)
        return subscription

    async def cancel(self, subscription: StatusSubscription) -> None:
        """Detach the subscription and end its watch.

        The watch connection is aborted, which unblocks the watch thread and
        drops the node-side subscription with it.
        """
        if subscription.close():
            log.debug("Cancelled subscription %s", subscription.id)

        with self._watch_lock:
            substrate = self._watches.pop(subscription, None)
            thread = self._threads.pop(subscription, None)
        if substrate is not None:
            await asyncio.to_thread(_abort, substrate)
        if thread is not None:
            await asyncio.to_thread(thread.join, WATCH_JOIN_TIMEOUT)
            if thread.is_alive():
                log.warning("Watch thread for %s did not stop", subscription.tx_hash)

    def _forget(self, subscription: StatusSubscription) -> None:
        subscription.close()
        with self._watch_lock:
            self._threads.pop(subscription, None)

    def _watch(
        self,
        payload: SignedPayload,
        subscription: StatusSubscription,
        loop: asyncio.AbstractEventLoop,
        accepted: asyncio.Future,
    ) -> None:
        """Worker thread: run one watch to completion on a dedicated connection."""
        substrate: SubstrateInterface | None = None
        started = threading.Event()

        def handler(message: dict, update_nr: int, subscription_id: str) -> Any:
            if not started.is_set():
                started.set()
                loop.call_soon_threadsafe(_settle, accepted, subscription_id)

            result = message.get("params", {}).get("result")
            event = parse_status(result)
            if event is not None:
                subscription.publish_threadsafe(event)

            if _status_key(result) in _FINAL_STATUSES:
                # The node has already ended the subscription
                return {"subscription": subscription_id, "status": result}
            if subscription.closed:
                substrate.rpc_request("author_unwatchExtrinsic", [subscription_id])
                return {"subscription": subscription_id, "status": result}
            return None

        try:
            substrate = self._open()
            with self._watch_lock:
                self._watches[subscription] = substrate
            substrate.rpc_request(
                "author_submitAndWatchExtrinsic",
                [str(payload.data.data)],
                result_handler=handler,
            )
        except Exception as exc:
            if not started.is_set():
                loop.call_soon_threadsafe(_settle, accepted, None, exc)
            elif subscription.closed:
                log.debug("Watch for %s stopped: %s", payload.tx_hash, exc)
            else:
                log.warning("Watch for %s ended with error: %s", payload.tx_hash, exc)
                subscription.publish_threadsafe(TransportError(detail=str(exc)))
        finally:
            if substrate is not None:
                with self._watch_lock:
                    self._watches.pop(subscription, None)
                try:
                    substrate.close()
                except Exception as exc:
                    log.debug("Closing watch connection for %s: %s", payload.tx_hash, exc)
