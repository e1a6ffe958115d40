"""Configuration loader — reads config.yaml, interpolates env vars, validates."""
from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Frozen config dataclasses
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CampaignConfig:
    start_block: int = 0
    end_block: int = 0


@dataclass(frozen=True)
class SubgraphConfig:
    geb_url: str = ""
    uniswap_url: str = ""
    lp_geb_url: str = ""
    minter_geb_url: str = ""
    timeout: int = 30
    page_size: int = 1000


@dataclass(frozen=True)
class ChainConfig:
    rpc_endpoints: tuple[str, ...] = ()
    rpc_timeout: int = 30


@dataclass(frozen=True)
class PoolConfig:
    address: str = ""


@dataclass(frozen=True)
class LpRewardsConfig:
    enabled: bool = True
    start_block: int = 0
    end_block: int = 0
    collateral_types: tuple[str, ...] = ()
    rewards: dict[str, Decimal] = field(default_factory=dict)


@dataclass(frozen=True)
class MinterRewardsConfig:
    enabled: bool = True
    start_block: int = 0
    end_block: int = 0
    collateral_types: tuple[str, ...] = ()
    with_bridge: bool = False
    # token -> collateral type -> amount
    rewards: dict[str, dict[str, Decimal]] = field(default_factory=dict)


@dataclass(frozen=True)
class BridgeConfig:
    data_file: str = ""


@dataclass(frozen=True)
class OutputConfig:
    path: str = "rewards.json"


@dataclass(frozen=True)
class AppConfig:
    campaign: CampaignConfig = field(default_factory=CampaignConfig)
    subgraphs: SubgraphConfig = field(default_factory=SubgraphConfig)
    chain: ChainConfig = field(default_factory=ChainConfig)
    pool: PoolConfig = field(default_factory=PoolConfig)
    lp: LpRewardsConfig = field(default_factory=LpRewardsConfig)
    minter: MinterRewardsConfig = field(default_factory=MinterRewardsConfig)
    bridge: BridgeConfig = field(default_factory=BridgeConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    exclusion_list_file: str = ""


# ---------------------------------------------------------------------------
# Env interpolation
# ---------------------------------------------------------------------------

_ENV_VAR_RE = re.compile(r"\$\{([^}]+)}")


def _interpolate_env(value: Any) -> Any:
    """Recursively replace ${VAR} references with environment variable values."""
    if isinstance(value, str):
        return _ENV_VAR_RE.sub(lambda m: os.environ.get(m.group(1), ""), value)
    if isinstance(value, dict):
        return {k: _interpolate_env(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_interpolate_env(item) for item in value]
    return value


# ---------------------------------------------------------------------------
# YAML → dataclass builders
# ---------------------------------------------------------------------------


def _as_int(value: Any, name: str) -> int:
    if value in (None, ""):
        return 0
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValueError(f"'{name}' must be an integer, got {value!r}") from None


def _as_amount(value: Any, name: str) -> Decimal:
    try:
        amount = Decimal(str(value))
    except InvalidOperation:
        raise ValueError(f"Reward amount for '{name}' is not a number: {value!r}") from None
    if not amount.is_finite() or amount <= 0:
        raise ValueError(f"Reward amount for '{name}' must be positive, got {value!r}")
    return amount


def _build_campaign(raw: dict[str, Any]) -> CampaignConfig:
    return CampaignConfig(
        start_block=_as_int(raw.get("start_block"), "campaign.start_block"),
        end_block=_as_int(raw.get("end_block"), "campaign.end_block"),
    )


def _build_subgraphs(raw: dict[str, Any]) -> SubgraphConfig:
    geb_url = raw.get("geb_url", "")
    return SubgraphConfig(
        geb_url=geb_url,
        uniswap_url=raw.get("uniswap_url", ""),
        lp_geb_url=raw.get("lp_geb_url") or geb_url,
        minter_geb_url=raw.get("minter_geb_url") or geb_url,
        timeout=int(raw.get("timeout", 30)),
        page_size=int(raw.get("page_size", 1000)),
    )


def _build_chain(raw: dict[str, Any]) -> ChainConfig:
    return ChainConfig(
        rpc_endpoints=tuple(raw.get("rpc_endpoints", [])),
        rpc_timeout=int(raw.get("rpc_timeout", 30)),
    )


def _build_lp(raw: dict[str, Any], campaign: CampaignConfig) -> LpRewardsConfig:
    rewards = {
        str(token): _as_amount(amount, f"lp.{token}")
        for token, amount in (raw.get("rewards") or {}).items()
    }
    return LpRewardsConfig(
        enabled=bool(raw.get("enabled", True)),
        start_block=_as_int(raw.get("start_block"), "lp.start_block") or campaign.start_block,
        end_block=_as_int(raw.get("end_block"), "lp.end_block") or campaign.end_block,
        collateral_types=tuple(raw.get("collateral_types", [])),
        rewards=rewards,
    )


def _build_minter(raw: dict[str, Any], campaign: CampaignConfig) -> MinterRewardsConfig:
    rewards: dict[str, dict[str, Decimal]] = {}
    for token, per_c_type in (raw.get("rewards") or {}).items():
        if not isinstance(per_c_type, dict):
            raise ValueError(
                f"Minter rewards for '{token}' must map collateral types to amounts"
            )
        rewards[str(token)] = {
            str(c_type): _as_amount(amount, f"minter.{token}.{c_type}")
            for c_type, amount in per_c_type.items()
        }
    return MinterRewardsConfig(
        enabled=bool(raw.get("enabled", True)),
        start_block=_as_int(raw.get("start_block"), "minter.start_block") or campaign.start_block,
        end_block=_as_int(raw.get("end_block"), "minter.end_block") or campaign.end_block,
        collateral_types=tuple(raw.get("collateral_types", [])),
        with_bridge=bool(raw.get("with_bridge", False)),
        rewards=rewards,
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(config_path: str | Path | None = None) -> AppConfig:
    """Load and validate application configuration from YAML + .env.

    Args:
        config_path: Path to config.yaml. Defaults to ``config.yaml`` in the
            project root (one level up from this package).
    """
    load_dotenv()

    if config_path is None:
        config_path = Path(__file__).resolve().parent.parent / "config.yaml"
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path) as f:
        raw = yaml.safe_load(f) or {}

    raw = _interpolate_env(raw)

    campaign = _build_campaign(raw.get("campaign", {}))
    rewards_raw = raw.get("rewards", {})
    cfg = AppConfig(
        campaign=campaign,
        subgraphs=_build_subgraphs(raw.get("subgraphs", {})),
        chain=_build_chain(raw.get("chain", {})),
        pool=PoolConfig(address=str(raw.get("pool", {}).get("address", "")).lower()),
        lp=_build_lp(rewards_raw.get("lp", {}), campaign),
        minter=_build_minter(rewards_raw.get("minter", {}), campaign),
        bridge=BridgeConfig(data_file=raw.get("bridge", {}).get("data_file", "")),
        output=OutputConfig(path=raw.get("output", {}).get("path", "rewards.json")),
        exclusion_list_file=raw.get("exclusion_list_file", ""),
    )

    _validate(cfg)
    logger.info("Configuration loaded from %s", config_path)
    return cfg


def _validate_window(name: str, start_block: int, end_block: int) -> None:
    if start_block <= 0 or end_block <= 0:
        raise ValueError(f"{name} start and end blocks must be set")
    if end_block <= start_block:
        raise ValueError(
            f"{name} end block {end_block} must be after start block {start_block}"
        )


def _validate(cfg: AppConfig) -> None:
    """Raise on invalid configuration."""
    if not cfg.lp.rewards and not cfg.minter.rewards:
        raise ValueError("At least one reward token must be configured")

    if not cfg.chain.rpc_endpoints:
        raise ValueError("At least one RPC endpoint must be configured")

    if not cfg.subgraphs.geb_url:
        raise ValueError("subgraphs.geb_url is required")

    if cfg.lp.enabled and cfg.lp.rewards:
        _validate_window("LP campaign", cfg.lp.start_block, cfg.lp.end_block)
        if not cfg.subgraphs.uniswap_url:
            raise ValueError("subgraphs.uniswap_url is required for LP rewards")
        if not cfg.pool.address:
            raise ValueError("pool.address is required for LP rewards")

    if cfg.minter.enabled and cfg.minter.rewards:
        _validate_window("Minter campaign", cfg.minter.start_block, cfg.minter.end_block)
        for token, per_c_type in cfg.minter.rewards.items():
            for c_type in per_c_type:
                if c_type not in cfg.minter.collateral_types:
                    raise ValueError(
                        f"Minter reward '{token}' references unknown collateral type '{c_type}'"
                    )

    if cfg.minter.with_bridge and not cfg.bridge.data_file:
        raise ValueError("bridge.data_file is required when minter.with_bridge is on")
