"""Unit tests for the account store and its ownership index."""
from __future__ import annotations

import pytest

from builders import ALICE, BOB, full_range
from incentives.errors import ValidationError
from incentives.models import Account, LpPosition
from incentives.rewards.store import AccountStore


class TestAccounts:
    def test_get_or_create_returns_same_handle(self) -> None:
        store = AccountStore()
        account = store.get_or_create(ALICE)
        account.debt = 5
        assert store.get_or_create(ALICE) is account
        assert store.get(ALICE).debt == 5
        assert len(store) == 1

    def test_get_missing(self) -> None:
        assert AccountStore().get(ALICE) is None

    def test_totals(self) -> None:
        store = AccountStore(
            [
                Account(address=ALICE, staking_weight=3, earned=10),
                Account(address=BOB, staking_weight=4, earned=5),
            ]
        )
        assert store.total_staking_weight() == 7
        assert store.total_earned() == 15
        assert [a.address for a in store] == [ALICE, BOB]

    def test_discard_clears_index(self) -> None:
        store = AccountStore()
        store.upsert_position(ALICE, full_range(1, 10))
        store.discard(ALICE)
        assert ALICE not in store
        assert store.owner_of(1) is None

    def test_indexes_initial_accounts(self) -> None:
        store = AccountStore([Account(address=ALICE, lp_positions=[full_range(7, 1)])])
        assert store.owner_of(7) == ALICE


class TestPositions:
    def test_insert_indexes_owner(self) -> None:
        store = AccountStore()
        store.upsert_position(ALICE, full_range(1, 10))
        assert store.owner_of(1) == ALICE
        assert store.get(ALICE).lp_positions == [full_range(1, 10)]

    def test_update_replaces_liquidity(self) -> None:
        store = AccountStore()
        store.upsert_position(ALICE, full_range(1, 10))
        store.upsert_position(ALICE, full_range(1, 0))
        assert store.get(ALICE).lp_positions == [full_range(1, 0)]

    def test_tick_change_rejected(self) -> None:
        store = AccountStore()
        store.upsert_position(ALICE, full_range(1, 10))
        with pytest.raises(ValidationError, match="Tick value can't be updated"):
            store.upsert_position(ALICE, LpPosition(1, -60, 60, 10))

    def test_remove_position(self) -> None:
        store = AccountStore()
        store.upsert_position(ALICE, full_range(1, 10))
        store.upsert_position(ALICE, full_range(2, 20))
        store.remove_position(ALICE, 1)
        assert [p.token_id for p in store.get(ALICE).lp_positions] == [2]
        assert store.owner_of(1) is None
        assert store.owner_of(2) == ALICE

    def test_transfer_moves_index(self) -> None:
        store = AccountStore()
        store.upsert_position(ALICE, full_range(1, 10))
        store.remove_position(ALICE, 1)
        store.upsert_position(BOB, full_range(1, 10))
        assert store.owner_of(1) == BOB
        assert store.get(ALICE).lp_positions == []
