"""CLI entry point for chainprobe."""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from pathlib import Path

import click

from chainprobe.config import load_config
from chainprobe.errors import ChainProbeError, ConfirmationError
from chainprobe.keys.keyring import KeyringIndex
from chainprobe.keys.parser import KeyRecordParser
from chainprobe.models.config import ProbeConfig, ResolvePolicy
from chainprobe.models.records import TransactionRequest
from chainprobe.node.identity import (
    bootnode_address,
    collect_peer_ids,
    format_peer_ids,
    read_peer_id,
)
from chainprobe.storage.sqlite import SQLiteSubmissionJournal
from chainprobe.substrate.client import SubstrateChainClient
from chainprobe.substrate.probe import NodeProbe
from chainprobe.tx.submitter import TransactionSubmitter, balance_transfer


def _load_keyring(cfg: ProbeConfig) -> KeyringIndex:
    """Exit with error if the key dump can't be read."""
    parser = KeyRecordParser(label_width=cfg.label_width, check_labels=cfg.check_labels)
    try:
        return KeyringIndex.from_file(cfg.keys_path, parser)
    except ChainProbeError as exc:
        click.echo(f"Error: {exc}", err=True)
        click.echo("Set CHAINPROBE_KEYS or [keys] path in config.", err=True)
        sys.exit(1)


def _require_signer(from_address: str | None, uri: str | None) -> None:
    if bool(from_address) == bool(uri):
        click.echo("Error: give exactly one of --from or --uri.", err=True)
        sys.exit(1)


def _parse_arg(raw: str) -> tuple[str, object]:
    """``name=value`` with JSON values; anything that isn't JSON stays a string."""
    name, sep, value = raw.partition("=")
    if not sep or not name:
        raise click.BadParameter(f"expected name=value, got {raw!r}")
    try:
        return name, json.loads(value)
    except ValueError:
        return name, value


@click.group()
@click.option("-c", "--config", "config_path", default=None, help="Path to config TOML file")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, config_path: str | None, verbose: bool) -> None:
    """chainprobe - operate and probe a running Substrate node."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    try:
        cfg = load_config(config_path)
    except ValueError as exc:
        click.echo(f"Error: invalid configuration: {exc}", err=True)
        sys.exit(1)
    ctx.obj["config"] = cfg

    level = logging.DEBUG if verbose else getattr(logging, cfg.log_level.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


# ── Info ───────────────────────────────────────────────


@cli.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show configuration."""
    cfg: ProbeConfig = ctx.obj["config"]
    click.echo(f"WS URL:     {cfg.ws_url}")
    click.echo(f"HTTP URL:   {cfg.http_url}")
    click.echo(f"SS58:       {cfg.ss58_format} ({cfg.crypto_type})")
    click.echo(f"Keys:       {cfg.keys_path}")
    click.echo(f"Policy:     {cfg.policy.value} (timeout {cfg.confirmation_timeout:g}s)")
    click.echo(f"Journal:    {cfg.db_path if cfg.journal else '(disabled)'}")


@cli.command("node-info")
@click.pass_context
def node_info(ctx: click.Context) -> None:
    """Query chain name, node version, and health."""
    cfg: ProbeConfig = ctx.obj["config"]

    async def _info():
        async with NodeProbe(cfg.http_url) as probe:
            return await probe.info()

    try:
        info = asyncio.run(_info())
    except ChainProbeError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)

    click.echo(info.describe())
    click.echo(f"  Peers:    {info.peers}")
    click.echo(f"  Syncing:  {info.is_syncing}")
    if info.local_peer_id:
        click.echo(f"  Peer ID:  {info.local_peer_id}")


# ── Keys ───────────────────────────────────────────────


@cli.group()
def keys() -> None:
    """Inspect the imported key dump."""


@keys.command("list")
@click.option("--all", "show_all", is_flag=True, help="Include incomplete records")
@click.pass_context
def keys_list(ctx: click.Context, show_all: bool) -> None:
    """List keys in file order."""
    keyring = _load_keyring(ctx.obj["config"])
    records = keyring.all() if show_all else keyring.valid()
    click.echo(f"{len(keyring.valid())} usable of {len(keyring)} key record(s)")
    for i, record in enumerate(records):
        marker = "" if record.is_valid() else "  [incomplete]"
        click.echo(f"{i:>3}  {record.ss58_address or '(no address)'}{marker}")


@keys.command("show")
@click.argument("address")
@click.pass_context
def keys_show(ctx: click.Context, address: str) -> None:
    """Show the public fields of one key."""
    keyring = _load_keyring(ctx.obj["config"])
    record = keyring.lookup(address)
    if record is None:
        click.echo(f"No key for address {address}", err=True)
        sys.exit(1)
    click.echo(f"SS58 Address:       {record.ss58_address}")
    click.echo(f"Public key (SS58):  {record.public_key_ss58}")
    click.echo(f"Public key (hex):   {record.public_key_hex}")
    click.echo(f"Account ID:         {record.account_id}")
    click.echo(f"Usable:             {record.is_valid()}")


# ── Peers ──────────────────────────────────────────────


@cli.command("peer-id")
@click.argument("logs", nargs=-1, required=True)
@click.option("-o", "--output", type=click.Path(dir_okay=False), help="Also write the listing here")
def peer_id(logs: tuple[str, ...], output: str | None) -> None:
    """Print node peer ids found in LOGS (NAME=PATH or PATH)."""
    named = {}
    for entry in logs:
        name, sep, path = entry.partition("=")
        if not sep:
            name, path = Path(entry).name, entry
        named[name] = path

    listing = format_peer_ids(collect_peer_ids(named))
    click.echo(listing, nl=False)
    if output:
        Path(output).write_text(listing)


@cli.command()
@click.argument("log_path")
@click.option("--host", default=None, help="IP the node listens on")
@click.option("--port", type=int, default=None, help="p2p port of the node")
@click.pass_context
def bootnode(ctx: click.Context, log_path: str, host: str | None, port: int | None) -> None:
    """Print the --bootnodes multiaddr for the node that wrote LOG_PATH."""
    cfg: ProbeConfig = ctx.obj["config"]
    try:
        found = read_peer_id(log_path)
    except ChainProbeError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)
    if found is None:
        click.echo(f"No peer id in {log_path}", err=True)
        sys.exit(1)
    click.echo(bootnode_address(found, host or cfg.bootnode_host, port or cfg.p2p_port))


# ── Transactions ───────────────────────────────────────


_signer_options = [
    click.option("--from", "from_address", default=None, help="Signer address from the key dump"),
    click.option("--uri", default=None, help="Derive the signer from a URI, e.g. //Alice"),
    click.option("--finalized", is_flag=True, default=None, help="Wait for finality instead of inclusion"),
    click.option("--timeout", type=float, default=None, help="Seconds to wait for confirmation"),
]


def signer_options(func):
    for option in reversed(_signer_options):
        func = option(func)
    return func


async def _submit_and_wait(
    cfg: ProbeConfig,
    request: TransactionRequest,
    uri: str | None,
    finalized: bool | None,
    timeout: float | None,
) -> None:
    keyring = _load_keyring(cfg) if request.signer is not None else None
    policy = ResolvePolicy.FINALIZED if finalized else None

    client = SubstrateChainClient(cfg.ws_url, cfg.ss58_format, cfg.crypto_type)
    journal = None
    if cfg.journal:
        journal = SQLiteSubmissionJournal(cfg.db_path)
        await journal.initialize()

    try:
        await client.connect()
        if uri:
            request.keypair = client.keypair_from_uri(uri)

        submitter = TransactionSubmitter(
            client, keyring, cfg.policy, cfg.confirmation_timeout, journal,
        )
        try:
            handle = await submitter.submit(request, policy=policy, timeout=timeout)
        except ChainProbeError as exc:
            click.echo(f"Error: {exc}", err=True)
            sys.exit(1)

        click.echo(f"Submitted {request.call_name}: {handle.tx_hash}")
        try:
            result = await handle.result()
        except ConfirmationError as exc:
            click.echo(f"Transaction failed: {exc}", err=True)
            sys.exit(1)
        finally:
            await handle.join()

        click.echo(f"Transaction {result.state.value} at block {result.block_hash}")
    finally:
        await client.close()
        if journal:
            await journal.close()


@cli.command()
@click.argument("dest")
@click.argument("amount", type=int)
@click.option("--function", default="transfer", help="Balances call name")
@signer_options
@click.pass_context
def transfer(
    ctx: click.Context,
    dest: str,
    amount: int,
    function: str,
    from_address: str | None,
    uri: str | None,
    finalized: bool | None,
    timeout: float | None,
) -> None:
    """Transfer AMOUNT to DEST and wait for confirmation."""
    _require_signer(from_address, uri)
    request = balance_transfer(dest, amount, signer=from_address, function=function)
    asyncio.run(_submit_and_wait(ctx.obj["config"], request, uri, finalized, timeout))


@cli.command()
@click.argument("module")
@click.argument("function")
@click.argument("args", nargs=-1)
@signer_options
@click.pass_context
def call(
    ctx: click.Context,
    module: str,
    function: str,
    args: tuple[str, ...],
    from_address: str | None,
    uri: str | None,
    finalized: bool | None,
    timeout: float | None,
) -> None:
    """Submit MODULE.FUNCTION with ARGS given as name=value."""
    _require_signer(from_address, uri)
    request = TransactionRequest(
        module=module,
        function=function,
        args=[_parse_arg(a) for a in args],
        signer=from_address,
    )
    asyncio.run(_submit_and_wait(ctx.obj["config"], request, uri, finalized, timeout))


@cli.command()
@click.option("--limit", type=int, default=20, help="Number of entries")
@click.pass_context
def history(ctx: click.Context, limit: int) -> None:
    """Show recent submissions and their outcomes."""
    cfg: ProbeConfig = ctx.obj["config"]

    async def _history():
        journal = SQLiteSubmissionJournal(cfg.db_path)
        await journal.initialize()
        try:
            return await journal.get_recent(limit)
        finally:
            await journal.close()

    records = asyncio.run(_history())
    if not records:
        click.echo("No submissions recorded.")
        return
    for r in records:
        outcome = r.block_hash or r.error or ""
        click.echo(f"{r.submitted_at[:19]}  {r.state:<10} {r.call:<24} {r.tx_hash[:18]}  {outcome}")
