"""Invariant checks run during and after a replay."""
from __future__ import annotations

import logging
from collections.abc import Iterable

from ..errors import InvariantViolation
from ..fixed_point import from_wad
from ..models import Account, RewardEvent
from .store import AccountStore

logger = logging.getLogger(__name__)


def _invalid(value: object) -> bool:
    return not isinstance(value, int) or value < 0


def check_account(account: Account, event: RewardEvent | None = None) -> None:
    if (
        _invalid(account.debt)
        or _invalid(account.staking_weight)
        or _invalid(account.earned)
        or _invalid(account.reward_per_weight_stored)
    ):
        raise InvariantViolation("Invalid user", account=account, event=event)

    for position in account.lp_positions:
        if (
            _invalid(position.liquidity)
            or not isinstance(position.lower_tick, int)
            or not isinstance(position.upper_tick, int)
        ):
            raise InvariantViolation(
                f"Invalid position {position.token_id}", account=account, event=event
            )


def check_accounts(accounts: Iterable[Account], event: RewardEvent | None = None) -> None:
    for account in accounts:
        check_account(account, event)


def final_sanity_check(
    final_timestamp: int, end_timestamp: int, store: AccountStore
) -> int:
    """Check the replay stayed inside the campaign; return total allocated."""
    if final_timestamp > end_timestamp:
        raise InvariantViolation(
            f"Impossible final timestamp {final_timestamp} > campaign end {end_timestamp}"
        )

    total = store.total_earned()
    logger.info("All events applied, total allocated reward %s", from_wad(total))
    return total
