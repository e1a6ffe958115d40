"""Pure staking-weight formulas: no I/O."""
from __future__ import annotations

from collections.abc import Iterable

from ..fixed_point import WAD, wdiv, wmul
from ..models import Account, LpPosition, Program


def staking_weight_for_lp_positions(positions: Iterable[LpPosition]) -> int:
    """Sum of liquidity over full-range positions.

    Narrow-range positions contribute nothing, so only liquidity exposed over
    the whole price curve earns rewards.
    """
    return sum(p.liquidity for p in positions if p.is_full_range)


def staking_weight_for_debt(
    debt: int,
    collateral: int | None = None,
    effective_bridged_tokens: int | None = None,
    with_bridge: bool = False,
) -> int:
    """Rewardable debt, optionally capped by the bridged share of collateral.

    weight = min(debt, debt * min(bridged / collateral, 1))

    Returns ``debt`` unchanged when bridging is off or either bridged input is
    unknown. A zero collateral with bridged funds counts as fully bridged.
    """
    if not with_bridge or effective_bridged_tokens is None or collateral is None:
        return debt

    if collateral <= 0:
        bridged_ratio = WAD if effective_bridged_tokens > 0 else 0
    else:
        bridged_ratio = min(wdiv(effective_bridged_tokens, collateral), WAD)

    return min(debt, wmul(debt, bridged_ratio))


def staking_weight(account: Account, program: Program, with_bridge: bool = False) -> int:
    """Current weight of ``account`` under the given reward program."""
    if program is Program.LP_REWARDS:
        return staking_weight_for_lp_positions(account.lp_positions)
    return staking_weight_for_debt(
        account.debt,
        account.collateral,
        account.effective_bridged_tokens,
        with_bridge,
    )
