"""Shared test fixtures and sample data."""
from __future__ import annotations

import textwrap
from decimal import Decimal
from pathlib import Path

import pytest

from incentives.config import (
    AppConfig,
    CampaignConfig,
    ChainConfig,
    LpRewardsConfig,
    MinterRewardsConfig,
    PoolConfig,
    SubgraphConfig,
)

# ---------------------------------------------------------------------------
# Config fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def sample_chain_config() -> ChainConfig:
    return ChainConfig(
        rpc_endpoints=("https://rpc1.example.com", "https://rpc2.example.com"),
        rpc_timeout=10,
    )


@pytest.fixture()
def sample_app_config(sample_chain_config: ChainConfig) -> AppConfig:
    return AppConfig(
        campaign=CampaignConfig(start_block=100, end_block=200),
        subgraphs=SubgraphConfig(
            geb_url="https://geb.example.com",
            uniswap_url="https://uni.example.com",
            lp_geb_url="https://geb.example.com",
            minter_geb_url="https://geb.example.com",
        ),
        chain=sample_chain_config,
        pool=PoolConfig(address="0xpool"),
        lp=LpRewardsConfig(
            start_block=100,
            end_block=200,
            collateral_types=("WETH",),
            rewards={"KITE": Decimal("1000")},
        ),
        minter=MinterRewardsConfig(
            start_block=100,
            end_block=200,
            collateral_types=("WETH", "WSTETH"),
            rewards={"KITE": {"WETH": Decimal("600"), "WSTETH": Decimal("400")}},
        ),
    )


# ---------------------------------------------------------------------------
# Config YAML fixture
# ---------------------------------------------------------------------------

SAMPLE_YAML = textwrap.dedent("""\
    campaign:
      start_block: 100
      end_block: 200
    subgraphs:
      geb_url: "https://geb.example.com"
      uniswap_url: "https://uni.example.com"
      timeout: 10
    chain:
      rpc_endpoints: ["https://rpc.example.com"]
      rpc_timeout: 10
    pool:
      address: "0xPOOL"
    rewards:
      lp:
        collateral_types: [WETH]
        rewards:
          KITE: 1000
      minter:
        collateral_types: [WETH, WSTETH]
        rewards:
          KITE:
            WETH: 600
            WSTETH: "400.5"
    output:
      path: out/rewards.json
""")


@pytest.fixture()
def sample_yaml_path(tmp_path: Path) -> Path:
    cfg_file = tmp_path / "config.yaml"
    cfg_file.write_text(SAMPLE_YAML)
    return cfg_file


# ---------------------------------------------------------------------------
# Sample subgraph rows
# ---------------------------------------------------------------------------


@pytest.fixture()
def sample_modification_row() -> dict:
    return {
        "id": "0xdeadbeef-7",
        "deltaDebt": "150.5",
        "deltaCollateral": "2",
        "safeHandler": "0xHANDLER1",
        "createdAt": "1700000100",
        "createdAtBlock": "150",
        "collateralType": {"id": "WETH"},
    }


@pytest.fixture()
def sample_position_snapshot_row() -> dict:
    return {
        "owner": "0xOwner",
        "timestamp": "1700000200",
        "liquidity": "5000",
        "blockNumber": "160",
        "position": {
            "id": "42",
            "tickLower": {"tickIdx": "-887220"},
            "tickUpper": {"tickIdx": "887220"},
        },
    }
