"""Result aggregation: per-token payout tables from finished runs."""
from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable, Mapping

from ..models import Payout, PayoutTable
from .store import AccountStore


def _sorted_payouts(totals: Mapping[str, int]) -> list[Payout]:
    """Drop non-positive amounts and sort by earned, largest first."""
    payouts = [Payout(address, earned) for address, earned in totals.items() if earned > 0]
    payouts.sort(key=lambda p: (-p.earned, p.address))
    return payouts


def sum_by_address(payouts: Iterable[Payout]) -> dict[str, int]:
    totals: dict[str, int] = defaultdict(int)
    for payout in payouts:
        totals[payout.address] += payout.earned
    return dict(totals)


def program_payouts(store: AccountStore) -> list[Payout]:
    """``(address, earned)`` pairs of one finished run."""
    return _sorted_payouts(sum_by_address(Payout(a.address, a.earned) for a in store))


def aggregate_collateral_types(per_c_type: Mapping[str, Iterable[Payout]]) -> list[Payout]:
    """Sum one token's minter rewards across collateral types."""
    totals: dict[str, int] = defaultdict(int)
    for payouts in per_c_type.values():
        for address, earned in sum_by_address(payouts).items():
            totals[address] += earned
    return _sorted_payouts(totals)


def combine_rewards(*tables: PayoutTable) -> PayoutTable:
    """Merge payout tables token by token, summing amounts per address."""
    tokens: list[str] = []
    for table in tables:
        for token in table:
            if token not in tokens:
                tokens.append(token)

    combined: PayoutTable = {}
    for token in tokens:
        totals: dict[str, int] = defaultdict(int)
        for table in tables:
            for payout in table.get(token, ()):
                totals[payout.address] += payout.earned
        combined[token] = _sorted_payouts(totals)
    return combined
