"""Pure query builders and parsers for the Uniswap v3 subgraph: no I/O."""
from __future__ import annotations

from collections import defaultdict
from typing import Any

from ...errors import AdapterError
from ...models import LpPosition, RewardEvent, RewardEventType
from ...rewards.merger import POSITION_SNAPSHOT_LOG_INDEX


def build_positions_query(block: int, pool_address: str) -> str:
    return f"""{{
      positions(
        block: {{ number: {block} }},
        where: {{ pool: "{pool_address}" }},
        first: 1000,
        skip: [[skip]]
      ) {{
        id
        owner
        liquidity
        tickLower {{ tickIdx }}
        tickUpper {{ tickIdx }}
      }}
    }}"""


def build_pool_query(block: int, pool_address: str) -> str:
    return f"""{{
      pool(id: "{pool_address}", block: {{ number: {block} }}) {{
        sqrtPrice
      }}
    }}"""


def build_position_snapshots_query(
    start_block: int, end_block: int, pool_address: str
) -> str:
    return f"""{{
      positionSnapshots(
        where: {{
          blockNumber_gte: {start_block},
          blockNumber_lte: {end_block},
          pool: "{pool_address}"
        }},
        first: 1000,
        skip: [[skip]]
      ) {{
        owner
        timestamp
        liquidity
        blockNumber
        position {{
          id
          tickLower {{ tickIdx }}
          tickUpper {{ tickIdx }}
        }}
      }}
    }}"""


def build_swaps_query(start_timestamp: int, end_timestamp: int, pool_address: str) -> str:
    return f"""{{
      swaps(
        where: {{
          pool: "{pool_address}",
          timestamp_gte: {start_timestamp},
          timestamp_lte: {end_timestamp}
        }},
        first: 1000,
        skip: [[skip]]
      ) {{
        sqrtPriceX96
        timestamp
        logIndex
        transaction {{ blockNumber }}
      }}
    }}"""


def _position(token_id: Any, tick_lower: dict, tick_upper: dict, liquidity: Any) -> LpPosition:
    return LpPosition(
        token_id=int(token_id),
        lower_tick=int(tick_lower["tickIdx"]),
        upper_tick=int(tick_upper["tickIdx"]),
        liquidity=int(liquidity),
    )


def parse_positions(rows: list[dict[str, Any]]) -> dict[str, list[LpPosition]]:
    """Group positions by lowercased owner address."""
    by_owner: dict[str, list[LpPosition]] = defaultdict(list)
    for row in rows:
        by_owner[row["owner"].lower()].append(
            _position(row["id"], row["tickLower"], row["tickUpper"], row["liquidity"])
        )
    return dict(by_owner)


def parse_sqrt_price(data: dict[str, Any]) -> int:
    pool = data.get("pool")
    if not pool or pool.get("sqrtPrice") is None:
        raise AdapterError("Pool state not found in subgraph response")
    return int(pool["sqrtPrice"])


def parse_position_snapshots(rows: list[dict[str, Any]]) -> list[RewardEvent]:
    """POOL_POSITION_UPDATE events; snapshots sort after same-second log events."""
    return [
        RewardEvent(
            type=RewardEventType.POOL_POSITION_UPDATE,
            value=_position(
                row["position"]["id"],
                row["position"]["tickLower"],
                row["position"]["tickUpper"],
                row["liquidity"],
            ),
            address=row["owner"].lower(),
            log_index=POSITION_SNAPSHOT_LOG_INDEX,
            timestamp=int(row["timestamp"]),
            created_at_block=int(row["blockNumber"]),
        )
        for row in rows
    ]


def parse_swaps(rows: list[dict[str, Any]]) -> list[RewardEvent]:
    return [
        RewardEvent(
            type=RewardEventType.POOL_SWAP,
            value=int(row["sqrtPriceX96"]),
            log_index=int(row["logIndex"]),
            timestamp=int(row["timestamp"]),
            created_at_block=int(row["transaction"]["blockNumber"]),
        )
        for row in rows
    ]
