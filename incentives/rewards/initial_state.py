"""Initial-state builder: account store at the campaign start block."""
from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable

from ..errors import ValidationError
from ..fixed_point import wmul
from ..interfaces import BridgeDataSource, LendingSource, PoolSource
from ..models import LpPosition, Program, Rates, SafeDebt
from .store import AccountStore
from .weights import staking_weight

logger = logging.getLogger(__name__)

_REQUIRED_FIELDS = (
    "debt",
    "earned",
    "lp_positions",
    "reward_per_weight_stored",
    "staking_weight",
)


def add_lp_positions(
    store: AccountStore, positions: dict[str, list[LpPosition]]
) -> None:
    """Attach snapshot LP positions to their owners, verbatim."""
    for owner, owner_positions in positions.items():
        store.get_or_create(owner)
        for position in owner_positions:
            store.upsert_position(owner, position)


def add_safe_debts(
    store: AccountStore,
    safes: Iterable[SafeDebt],
    owners: dict[str, str],
    rates: Rates,
) -> None:
    """Convert normalized safe debt to real debt and accumulate it per owner.

    Several handlers (and collateral types) may resolve to the same owner.
    """
    for safe in safes:
        owner = owners.get(safe.safe_handler)
        if not owner:
            logger.info("Safe handler %s has no owner", safe.safe_handler)
            continue
        if safe.c_type not in rates:
            raise ValidationError(
                f"No accumulated rate for collateral type {safe.c_type!r}"
            )
        account = store.get_or_create(owner)
        account.debt += wmul(safe.debt, rates[safe.c_type])
        account.collateral += safe.collateral


def remove_excluded(store: AccountStore, exclusion_list: Iterable[str]) -> int:
    removed = 0
    for address in exclusion_list:
        if address in store:
            store.discard(address)
            removed += 1
    return removed


def validate_initial_state(store: AccountStore) -> None:
    for account in store:
        if any(getattr(account, name, None) is None for name in _REQUIRED_FIELDS):
            raise ValidationError(f"Inconsistent initial state user {account!r}")


async def fetch_rates(
    lending: LendingSource, block: int, collateral_types: Iterable[str]
) -> Rates:
    """Accumulated rate of every collateral type at ``block``."""
    c_types = list(collateral_types)
    values = await asyncio.gather(
        *(lending.get_accumulated_rate(block, c) for c in c_types)
    )
    return dict(zip(c_types, values))


async def fetch_safes(
    lending: LendingSource,
    block: int,
    collateral_types: Iterable[str],
    c_type: str | None = None,
) -> list[SafeDebt]:
    """Safes with outstanding debt at ``block``, one query per collateral type."""
    if c_type is not None:
        return await lending.get_initial_safes_debt(block, c_type)
    per_c_type = await asyncio.gather(
        *(lending.get_initial_safes_debt(block, c) for c in collateral_types)
    )
    return [safe for safes in per_c_type for safe in safes]


async def build_initial_state(
    start_block: int,
    owners: dict[str, str],
    collateral_types: Iterable[str],
    program: Program,
    *,
    lending: LendingSource | None = None,
    pool: PoolSource | None = None,
    exclusion_list: Iterable[str] = (),
    c_type: str | None = None,
    with_bridge: bool = False,
    bridge_data: BridgeDataSource | None = None,
) -> AccountStore:
    """Build the validated account store a replay starts from.

    Args:
        start_block: Campaign start block; every snapshot is taken here.
        owners: Safe handler → reward-eligible address.
        collateral_types: Collateral types whose rates and safes are loaded.
        program: Which reward program the store is for.
        c_type: Restrict the debt snapshot to one collateral type.
        with_bridge: Seed bridged-collateral snapshots (minter program).
    """
    store = AccountStore()
    collateral_types = list(collateral_types)

    if program is Program.LP_REWARDS:
        if pool is None:
            raise ValueError("LP_REWARDS initial state needs a pool source")
        positions = await pool.get_initial_lp_positions(start_block)
        add_lp_positions(store, positions)
        logger.info("Fetched LP positions for %d owners", len(positions))
    elif lending is None:
        raise ValueError("MINTER_REWARDS initial state needs a lending source")

    # LP stores carry start-block debt too; the LP weight ignores it.
    if lending is not None:
        rates, safes = await asyncio.gather(
            fetch_rates(lending, start_block, collateral_types),
            fetch_safes(lending, start_block, collateral_types, c_type),
        )
        logger.info("Fetched %d debt balances", len(safes))
        add_safe_debts(store, safes, owners, rates)

    if program is Program.MINTER_REWARDS and with_bridge and bridge_data is not None:
        bridged_types = [c_type] if c_type else collateral_types
        for account in store:
            account.total_bridged_tokens = sum(
                bridge_data.bridged_tokens_at_block(account.address, c, start_block)
                for c in bridged_types
            )

    removed = remove_excluded(store, exclusion_list)
    if removed:
        logger.info("Removed %d excluded addresses", removed)

    for account in store:
        account.staking_weight = staking_weight(account, program, with_bridge)

    validate_initial_state(store)
    logger.info("Finished loading initial state for %d users", len(store))
    return store
