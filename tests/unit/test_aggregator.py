"""Unit tests for payout aggregation."""
from __future__ import annotations

from builders import ALICE, BOB, CAROL
from incentives.models import Account, Payout
from incentives.rewards.aggregator import (
    aggregate_collateral_types,
    combine_rewards,
    program_payouts,
)
from incentives.rewards.store import AccountStore


class TestProgramPayouts:
    def test_drops_zero_and_sorts_descending(self) -> None:
        store = AccountStore(
            [
                Account(address=ALICE, earned=5),
                Account(address=BOB, earned=0),
                Account(address=CAROL, earned=9),
            ]
        )
        assert program_payouts(store) == [Payout(CAROL, 9), Payout(ALICE, 5)]

    def test_ties_sorted_by_address(self) -> None:
        store = AccountStore([Account(address=BOB, earned=3), Account(address=ALICE, earned=3)])
        assert program_payouts(store) == [Payout(ALICE, 3), Payout(BOB, 3)]


class TestAggregateCollateralTypes:
    def test_sums_across_collateral_types(self) -> None:
        result = aggregate_collateral_types(
            {
                "WETH": [Payout(ALICE, 3), Payout(BOB, 1)],
                "WSTETH": [Payout(BOB, 4)],
            }
        )
        assert result == [Payout(BOB, 5), Payout(ALICE, 3)]


class TestCombineRewards:
    def test_sums_same_token(self) -> None:
        lp = {"KITE": [Payout(ALICE, 10)], "OP": [Payout(BOB, 2)]}
        minter = {"KITE": [Payout(ALICE, 5), Payout(CAROL, 20)]}
        combined = combine_rewards(lp, minter)
        assert combined == {
            "KITE": [Payout(CAROL, 20), Payout(ALICE, 15)],
            "OP": [Payout(BOB, 2)],
        }

    def test_order_independent(self) -> None:
        lp = {"KITE": [Payout(ALICE, 10)]}
        minter = {"KITE": [Payout(BOB, 10)]}
        assert combine_rewards(lp, minter)["KITE"] == combine_rewards(minter, lp)["KITE"]

    def test_empty_tables(self) -> None:
        assert combine_rewards({}, {}) == {}
