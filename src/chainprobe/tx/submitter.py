"""Transaction submitter - signs, broadcasts, and hands back a tracked handle."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from chainprobe.errors import SubmissionError
from chainprobe.interfaces.chain import ChainClient
from chainprobe.interfaces.store import SubmissionJournal
from chainprobe.keys.keyring import KeyringIndex
from chainprobe.models.config import ResolvePolicy
from chainprobe.models.keys import KeyRecord
from chainprobe.models.records import SubmissionRecord, TransactionRequest
from chainprobe.tx.tracker import StatusTracker, SubmissionHandle

log = logging.getLogger(__name__)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _signer_address(signer: Any) -> str:
    if isinstance(signer, KeyRecord):
        return signer.ss58_address
    return str(getattr(signer, "ss58_address", "") or "?")


def balance_transfer(
    dest: str,
    amount: int,
    signer: KeyRecord | str | None = None,
    keypair: Any = None,
    function: str = "transfer",
) -> TransactionRequest:
    """Build a Balances transfer request.

    Newer runtimes name the call ``transfer_allow_death`` or
    ``transfer_keep_alive``; pass it as ``function``.
    """
    return TransactionRequest(
        module="Balances",
        function=function,
        args=[("dest", dest), ("value", amount)],
        signer=signer,
        keypair=keypair,
    )


class TransactionSubmitter:
    """Submits TransactionRequests through a ChainClient.

    ``submit`` returns as soon as the node accepts the extrinsic; inclusion
    is tracked by the returned handle. Nothing is retried.
    """

    def __init__(
        self,
        client: ChainClient,
        keyring: KeyringIndex | None = None,
        policy: ResolvePolicy = ResolvePolicy.IN_BLOCK,
        timeout: float = 60.0,
        journal: SubmissionJournal | None = None,
    ) -> None:
        self._client = client
        self._keyring = keyring
        self._policy = policy
        self._timeout = timeout
        self._journal = journal

    def resolve_signer(self, request: TransactionRequest) -> Any:
        """Return the key material that will sign ``request``.

        Raises KeyNotFound for an unknown address and SubmissionError for a
        missing or incomplete signer.
        """
        if request.keypair is not None:
            return request.keypair

        signer = request.signer
        if isinstance(signer, str):
            if self._keyring is None:
                raise SubmissionError(f"No keyring loaded to resolve signer {signer}")
            signer = self._keyring.get(signer)

        if isinstance(signer, KeyRecord):
            if not signer.is_valid():
                missing = ", ".join(signer.missing_fields()) or "labels"
                raise SubmissionError(
                    f"Key {signer.ss58_address or '?'} is incomplete ({missing})"
                )
            return signer

        raise SubmissionError(f"{request.call_name} has no signer")

    async def submit(
        self,
        request: TransactionRequest,
        policy: ResolvePolicy | None = None,
        timeout: float | None = None,
    ) -> SubmissionHandle:
        """Encode, sign, and broadcast ``request``; return its handle."""
        signer = self.resolve_signer(request)
        policy = policy or self._policy
        timeout = self._timeout if timeout is None else timeout

        log.info("Submitting %s signed by %s", request.call_name, _signer_address(signer))

        try:
            call = await self._client.encode_call(request.module, request.function, request.args)
            payload = await self._client.sign(call, signer)
            subscription = await self._client.submit(payload)
        except SubmissionError:
            raise
        except Exception as exc:
            log.error("%s submission failed: %s", request.call_name, exc)
            raise SubmissionError(f"{request.call_name} submission failed: {exc}") from exc

        log.info("%s broadcast as %s", request.call_name, payload.tx_hash)

        tracker = StatusTracker(
            self._client,
            subscription,
            policy=policy,
            timeout=timeout,
            on_resolved=self._record_outcome if self._journal is not None else None,
        )

        if self._journal is not None:
            try:
                await self._journal.record_submitted(SubmissionRecord(
                    tx_hash=payload.tx_hash,
                    call=request.call_name,
                    signer=payload.signer_address,
                    policy=policy.value,
                    submitted_at=_now(),
                ))
            except Exception as exc:
                log.error("Could not journal %s: %s", payload.tx_hash, exc)

        tracker.start()
        return SubmissionHandle(request, tracker)

    async def _record_outcome(self, tracker: StatusTracker) -> None:
        error = tracker.error
        await self._journal.record_outcome(
            tracker.tx_hash,
            tracker.state.value,
            block_hash=tracker.block_hash,
            error=(error.detail or str(error)) if error else None,
        )
