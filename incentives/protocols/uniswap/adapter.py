"""Uniswap v3 pool adapter: LP positions, pool price and swaps."""
from __future__ import annotations

import logging

from ...models import LpPosition, RewardEvent
from ...subgraph import SubgraphClient
from . import parser

logger = logging.getLogger(__name__)


class UniswapAdapter:
    """Pool-side data source for the LP rewards program."""

    def __init__(self, client: SubgraphClient, pool_address: str) -> None:
        if not pool_address:
            raise ValueError("Pool address not configured")
        self._client = client
        self.pool_address = pool_address.lower()

    async def get_initial_lp_positions(self, block: int) -> dict[str, list[LpPosition]]:
        rows = await self._client.query_paginated(
            parser.build_positions_query(block, self.pool_address), "positions"
        )
        positions = parser.parse_positions(rows)
        logger.info(
            "Fetched %d LP positions held by %d owners at block %d",
            len(rows), len(positions), block,
        )
        return positions

    async def get_pool_sqrt_price(self, block: int) -> int:
        data = await self._client.query(parser.build_pool_query(block, self.pool_address))
        return parser.parse_sqrt_price(data)

    async def get_position_events(
        self, start_block: int, end_block: int
    ) -> list[RewardEvent]:
        rows = await self._client.query_paginated(
            parser.build_position_snapshots_query(start_block, end_block, self.pool_address),
            "positionSnapshots",
        )
        events = parser.parse_position_snapshots(rows)
        logger.info("  Fetched %d position update events", len(events))
        return events

    async def get_swap_events(
        self, start_timestamp: int, end_timestamp: int
    ) -> list[RewardEvent]:
        rows = await self._client.query_paginated(
            parser.build_swaps_query(start_timestamp, end_timestamp, self.pool_address),
            "swaps",
        )
        events = parser.parse_swaps(rows)
        logger.info("  Fetched %d Uniswap swap events", len(events))
        return events
