"""GEB lending adapter: safes, rates and debt events from the GEB subgraph."""
from __future__ import annotations

import asyncio
import logging

from ...models import RewardEvent, SafeDebt
from ...subgraph import SubgraphClient
from . import parser

logger = logging.getLogger(__name__)


class GebAdapter:
    """Lending-side data source for both reward programs."""

    def __init__(self, client: SubgraphClient) -> None:
        self._client = client

    async def get_safe_owner_mapping(self, block: int) -> dict[str, str]:
        rows = await self._client.query_paginated(
            parser.build_owner_mapping_query(block), "safeHandlerOwners"
        )
        owners = parser.parse_owner_mapping(rows)
        logger.info("Fetched %d safe owners at block %d", len(owners), block)
        return owners

    async def get_initial_safes_debt(
        self, block: int, c_type: str | None = None
    ) -> list[SafeDebt]:
        rows = await self._client.query_paginated(
            parser.build_safes_debt_query(block, c_type), "safes"
        )
        return parser.parse_safes(rows)

    async def get_accumulated_rate(self, block: int, c_type: str) -> int:
        data = await self._client.query(
            parser.build_accumulated_rate_query(block, c_type)
        )
        return parser.parse_accumulated_rate(data)

    async def get_redemption_price_at(self, timestamp: int) -> int:
        data = await self._client.query(parser.build_redemption_price_query(timestamp))
        return parser.parse_redemption_price(data)

    async def get_debt_events(
        self, start_block: int, end_block: int, owners: dict[str, str], c_type: str
    ) -> list[RewardEvent]:
        """Modifications, confiscations and both legs of debt transfers."""
        modifications, confiscations, transfers = await asyncio.gather(
            self._client.query_paginated(
                parser.build_safe_modification_query(
                    "modifySAFECollateralizations", start_block, end_block, c_type
                ),
                "modifySAFECollateralizations",
            ),
            self._client.query_paginated(
                parser.build_safe_modification_query(
                    "confiscateSAFECollateralAndDebts", start_block, end_block, c_type
                ),
                "confiscateSAFECollateralAndDebts",
            ),
            self._client.query_paginated(
                parser.build_safe_transfer_query(start_block, end_block, c_type),
                "transferSAFECollateralAndDebts",
            ),
        )

        legs = [leg for row in transfers for leg in parser.split_transfer(row)]
        events = parser.parse_debt_events(
            [*modifications, *confiscations, *legs], owners
        )
        logger.info(
            "  Fetched %d safe modifications events including %d standard safe "
            "modification, %d safe confiscations, %d transfer safe debt",
            len(events), len(modifications), len(confiscations), len(transfers),
        )
        return events

    async def get_accumulated_rate_events(
        self, start_block: int, end_block: int, c_type: str
    ) -> list[RewardEvent]:
        rows = await self._client.query_paginated(
            parser.build_accumulated_rate_events_query(start_block, end_block, c_type),
            "updateAccumulatedRates",
        )
        events = parser.parse_rate_events(rows)
        logger.info("  Fetched %d accumulated rate events", len(events))
        return events
