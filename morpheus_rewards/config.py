"""Runtime settings from the environment (and an optional ``.env`` file)."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from morpheus_rewards.data.networks import MAINNET, NETWORK_ENVIRONMENTS, get_chains
from morpheus_rewards.protocol.editions import EDITION_V2, PowerFactorEdition, get_edition

DEFAULT_ENV_PATH = Path(__file__).resolve().parents[1] / ".env"

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def load_dotenv(path: Path = DEFAULT_ENV_PATH) -> None:
    """Copy ``KEY=value`` lines into ``os.environ`` without overriding set keys."""
    if not path.exists():
        return
    for line in path.read_text().splitlines():
        line = line.strip()
        if line and not line.startswith("#") and "=" in line:
            key, _, value = line.partition("=")
            os.environ.setdefault(key.strip(), value.strip())


def _float_env(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number, got {raw!r}") from exc
    if value <= 0:
        raise ValueError(f"{name} must be positive, got {raw!r}")
    return value


@dataclass(frozen=True)
class Settings:
    network_env: str = MAINNET
    edition: PowerFactorEdition = EDITION_V2
    rpc_urls: dict[int, str] = field(default_factory=dict)
    pool_refresh_seconds: float = 30.0
    bridge_poll_seconds: float = 60.0
    bridge_timeout_seconds: float = 600.0
    cache_ttl_seconds: float = 60.0
    log_level: str = "INFO"


def load_settings(env_path: Path | None = DEFAULT_ENV_PATH) -> Settings:
    """Build :class:`Settings`; ``env_path=None`` skips the ``.env`` file.

    Raises:
        ValueError: On an unknown network or edition, or a non-positive interval.
    """
    if env_path is not None:
        load_dotenv(env_path)

    network_env = (os.environ.get("MORPHEUS_NETWORK_ENV") or MAINNET).strip().lower()
    if network_env not in NETWORK_ENVIRONMENTS:
        raise ValueError(f"Unknown network environment: {network_env}")

    rpc_urls = {}
    for env in NETWORK_ENVIRONMENTS:
        for chain in get_chains(env):
            url = os.environ.get(chain.rpc_env_var)
            if url:
                rpc_urls[chain.chain_id] = url

    return Settings(
        network_env=network_env,
        edition=get_edition(os.environ.get("MORPHEUS_POWER_FACTOR_EDITION") or EDITION_V2.name),
        rpc_urls=rpc_urls,
        pool_refresh_seconds=_float_env("MORPHEUS_POOL_REFRESH_SECONDS", 30.0),
        bridge_poll_seconds=_float_env("MORPHEUS_BRIDGE_POLL_SECONDS", 60.0),
        bridge_timeout_seconds=_float_env("MORPHEUS_BRIDGE_TIMEOUT_SECONDS", 600.0),
        cache_ttl_seconds=_float_env("MORPHEUS_CACHE_TTL_SECONDS", 60.0),
        log_level=(os.environ.get("LOG_LEVEL") or "INFO").strip().upper(),
    )


def configure_logging(level: str | int = "INFO") -> None:
    """Root logging setup for the CLI; library modules only create loggers."""
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    logging.basicConfig(level=level, format=LOG_FORMAT)
