"""Data models for the reward accrual engine."""
from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Union

from .fixed_point import from_wad

# Full-range ticks for a 60-spacing Uniswap v3 pool
FULL_RANGE_LOWER_TICK = -887220
FULL_RANGE_UPPER_TICK = 887220


class Program(str, Enum):
    LP_REWARDS = "LP_REWARDS"
    MINTER_REWARDS = "MINTER_REWARDS"


class RewardEventType(str, Enum):
    DELTA_DEBT = "DELTA_DEBT"
    POOL_POSITION_UPDATE = "POOL_POSITION_UPDATE"
    POOL_SWAP = "POOL_SWAP"
    UPDATE_ACCUMULATED_RATE = "UPDATE_ACCUMULATED_RATE"


# Events that must carry an address; all others are global.
ADDRESSED_EVENT_TYPES = frozenset(
    {RewardEventType.DELTA_DEBT, RewardEventType.POOL_POSITION_UPDATE}
)


@dataclass(frozen=True)
class LpPosition:
    """A Uniswap v3 liquidity position (NFT)."""

    token_id: int
    lower_tick: int
    upper_tick: int
    liquidity: int

    @property
    def is_full_range(self) -> bool:
        return (
            self.lower_tick == FULL_RANGE_LOWER_TICK
            and self.upper_tick == FULL_RANGE_UPPER_TICK
        )


EventValue = Union[int, LpPosition]


@dataclass(frozen=True)
class RewardEvent:
    """A single state-changing event, ordered by (timestamp, log_index).

    ``value`` is a WAD delta (DELTA_DEBT), a WAD rate multiplier
    (UPDATE_ACCUMULATED_RATE), a raw sqrt price (POOL_SWAP) or an
    ``LpPosition`` (POOL_POSITION_UPDATE).
    """

    type: RewardEventType | None
    timestamp: int | None
    log_index: int | None
    value: EventValue | None
    created_at_block: int = 0
    address: str | None = None
    complementary_value: int | None = None
    c_type: str | None = None

    @property
    def is_global(self) -> bool:
        return self.type not in ADDRESSED_EVENT_TYPES


@dataclass
class Account:
    """Mutable per-address replay state. All amounts are WAD integers."""

    address: str
    debt: int = 0
    collateral: int = 0
    lp_positions: list[LpPosition] = field(default_factory=list)
    staking_weight: int = 0
    reward_per_weight_stored: int = 0
    earned: int = 0
    total_bridged_tokens: int = 0
    used_bridged_tokens: int = 0

    @property
    def effective_bridged_tokens(self) -> int:
        return self.total_bridged_tokens - self.used_bridged_tokens


@dataclass(frozen=True)
class Payout:
    """Final reward owed to one address for one token."""

    address: str
    earned: int

    @property
    def amount(self) -> Decimal:
        return from_wad(self.earned)


Rates = dict[str, int]
PayoutTable = dict[str, list[Payout]]


@dataclass(frozen=True)
class SafeDebt:
    """Outstanding normalized debt of one safe handler at a block."""

    safe_handler: str
    c_type: str
    debt: int
    collateral: int = 0
