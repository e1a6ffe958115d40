"""Event and snapshot source protocols: one per indexed protocol."""
from typing import Protocol

from ..models import LpPosition, RewardEvent, SafeDebt


class LendingSource(Protocol):
    """Queries against the lending protocol (safes, rates, redemption price)."""

    async def get_safe_owner_mapping(self, block: int) -> dict[str, str]: ...

    async def get_initial_safes_debt(
        self, block: int, c_type: str | None = None
    ) -> list[SafeDebt]: ...

    async def get_accumulated_rate(self, block: int, c_type: str) -> int: ...

    async def get_redemption_price_at(self, timestamp: int) -> int: ...

    async def get_debt_events(
        self, start_block: int, end_block: int, owners: dict[str, str], c_type: str
    ) -> list[RewardEvent]: ...

    async def get_accumulated_rate_events(
        self, start_block: int, end_block: int, c_type: str
    ) -> list[RewardEvent]: ...


class PoolSource(Protocol):
    """Queries against the liquidity pool (positions, price, swaps)."""

    async def get_initial_lp_positions(self, block: int) -> dict[str, list[LpPosition]]: ...

    async def get_pool_sqrt_price(self, block: int) -> int: ...

    async def get_position_events(
        self, start_block: int, end_block: int
    ) -> list[RewardEvent]: ...

    async def get_swap_events(
        self, start_timestamp: int, end_timestamp: int
    ) -> list[RewardEvent]: ...
