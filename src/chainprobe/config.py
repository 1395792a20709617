"""Configuration loading: TOML file + environment variables."""

from __future__ import annotations

import os
from pathlib import Path

try:
    import tomllib  # Python 3.11+
except ModuleNotFoundError:
    import tomli as tomllib  # type: ignore[no-redef]

from chainprobe.models.config import ProbeConfig, ResolvePolicy


def load_config(
    config_path: str | Path | None = None,
    env_prefix: str = "CHAINPROBE_",
) -> ProbeConfig:
    """Load configuration from a TOML file and env vars.

    Priority (highest wins):
        1. Environment variables (CHAINPROBE_WS_URL, etc.)
        2. TOML config file
        3. Defaults from ProbeConfig
    """
    raw: dict = {}
    if config_path is not None:
        p = Path(config_path).expanduser()
        if p.exists():
            with open(p, "rb") as f:
                raw = tomllib.load(f)

    cfg = ProbeConfig()

    # ── Node section ───────────────────────────────────────
    node = raw.get("node", {})
    if v := node.get("ws_url"):
        cfg.ws_url = str(v)
    if v := node.get("http_url"):
        cfg.http_url = str(v)
    if (v := node.get("ss58_format")) is not None:
        cfg.ss58_format = int(v)
    if v := node.get("crypto_type"):
        cfg.crypto_type = str(v)

    # ── Keys section ───────────────────────────────────────
    keys = raw.get("keys", {})
    if v := keys.get("path"):
        cfg.keys_path = str(v)
    if v := keys.get("label_width"):
        cfg.label_width = int(v)
    if (v := keys.get("check_labels")) is not None:
        cfg.check_labels = bool(v)

    # ── Transaction section ────────────────────────────────
    tx = raw.get("tx", {})
    if v := tx.get("policy"):
        cfg.policy = ResolvePolicy(v)
    if (v := tx.get("confirmation_timeout")) is not None:
        cfg.confirmation_timeout = float(v)

    # ── Storage section ────────────────────────────────────
    storage = raw.get("storage", {})
    if v := storage.get("db_path"):
        cfg.db_path = str(v)
    if (v := storage.get("journal")) is not None:
        cfg.journal = bool(v)

    # ── Peers section ──────────────────────────────────────
    peers = raw.get("peers", {})
    if v := peers.get("bootnode_host"):
        cfg.bootnode_host = str(v)
    if v := peers.get("p2p_port"):
        cfg.p2p_port = int(v)

    if v := raw.get("logging", {}).get("level"):
        cfg.log_level = str(v)

    # ── Environment variable overrides (highest priority) ──
    if ws := os.environ.get(f"{env_prefix}WS_URL"):
        cfg.ws_url = ws
    if http := os.environ.get(f"{env_prefix}HTTP_URL"):
        cfg.http_url = http
    if keys_env := os.environ.get(f"{env_prefix}KEYS"):
        cfg.keys_path = keys_env
    if policy_env := os.environ.get(f"{env_prefix}POLICY"):
        cfg.policy = ResolvePolicy(policy_env)
    if timeout_env := os.environ.get(f"{env_prefix}TIMEOUT"):
        cfg.confirmation_timeout = float(timeout_env)
    if db := os.environ.get(f"{env_prefix}DB_PATH"):
        cfg.db_path = db

    # Expand ~ in paths
    cfg.keys_path = str(Path(cfg.keys_path).expanduser())
    if cfg.db_path != ":memory:":
        cfg.db_path = str(Path(cfg.db_path).expanduser())

    return cfg
