"""Node probe - JSON-RPC queries over the node's HTTP endpoint."""

from __future__ import annotations

import asyncio
import itertools
import logging
from typing import Any

import httpx

from chainprobe.errors import ProbeError
from chainprobe.models.records import NodeInfo

log = logging.getLogger(__name__)


class NodeProbe:
    """Read-only ``system_*`` queries against a running node.

    Pass ``transport`` to route requests elsewhere (tests use
    ``httpx.MockTransport``).
    """

    def __init__(
        self,
        http_url: str = "http://127.0.0.1:9933",
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._url = http_url
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport)
        self._ids = itertools.count(1)

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> NodeProbe:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def call(self, method: str, params: list | None = None) -> Any:
        body = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": params or [],
        }
        try:
            resp = await self._client.post(self._url, json=body)
            resp.raise_for_status()
            data = resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise ProbeError(f"{method} failed: {exc}") from exc

        if "error" in data:
            err = data["error"]
            raise ProbeError(f"{method} failed: {err.get('message', err)}")
        return data.get("result")

    async def chain(self) -> str:
        return await self.call("system_chain")

    async def name(self) -> str:
        return await self.call("system_name")

    async def version(self) -> str:
        return await self.call("system_version")

    async def health(self) -> dict:
        return await self.call("system_health")

    async def local_peer_id(self) -> str:
        return await self.call("system_localPeerId")

    async def info(self) -> NodeInfo:
        """Chain, node name, version, and health in one round of queries."""
        chain, name, version, health = await asyncio.gather(
            self.chain(), self.name(), self.version(), self.health(),
        )
        try:
            peer_id = await self.local_peer_id()
        except ProbeError as exc:
            # Unsafe RPC methods may be disabled on public nodes
            log.debug("system_localPeerId unavailable: %s", exc)
            peer_id = None

        info = NodeInfo(
            chain=chain,
            name=name,
            version=version,
            peers=int(health.get("peers", 0)),
            is_syncing=bool(health.get("isSyncing", False)),
            should_have_peers=bool(health.get("shouldHavePeers", True)),
            local_peer_id=peer_id,
        )
        log.info(info.describe())
        return info
