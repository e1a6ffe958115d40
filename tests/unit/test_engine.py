"""Unit tests for the reward accrual engine."""
from __future__ import annotations

import copy

import pytest

from builders import ALICE, BOB, debt_event, full_range, position_event, rate_event, swap_event
from incentives.errors import InvariantViolation, ValidationError
from incentives.fixed_point import WAD, to_wad
from incentives.models import Account, LpPosition, Program
from incentives.rewards.engine import (
    RewardAccrualEngine,
    process_reward_events,
    redemption_refresh_timestamps,
)
from incentives.rewards.merger import merge_events
from incentives.rewards.store import AccountStore

START = 1_700_000_000
END = START + 1000
REWARD = 1000 * WAD
RATES = {"WETH": WAD}


def _debt_store(**debts: int) -> AccountStore:
    address = {"alice": ALICE, "bob": BOB}
    return AccountStore(
        Account(address=address[name], debt=debt, staking_weight=debt)
        for name, debt in debts.items()
    )


def _minter(store: AccountStore, **kwargs) -> RewardAccrualEngine:
    return RewardAccrualEngine(
        store, Program.MINTER_REWARDS, REWARD, START, END, RATES, **kwargs
    )


class TestConstruction:
    def test_end_before_start(self) -> None:
        with pytest.raises(ValueError):
            RewardAccrualEngine(AccountStore(), Program.LP_REWARDS, REWARD, END, START)

    def test_negative_reward(self) -> None:
        with pytest.raises(ValueError):
            RewardAccrualEngine(AccountStore(), Program.LP_REWARDS, -1, START, END)

    def test_initial_total_weight(self) -> None:
        engine = _minter(_debt_store(alice=100, bob=200))
        assert engine.state.total_staking_weight == 300


class TestDistribution:
    def test_proportional_to_weight(self) -> None:
        store = _minter(_debt_store(alice=100, bob=200)).replay([])
        assert store.get(ALICE).earned == 333333333333333333333
        assert store.get(BOB).earned == 666666666666666666666

    def test_nothing_accrues_without_weight(self) -> None:
        store = _minter(AccountStore()).replay([debt_event(ALICE, START + 500, 100 * WAD)])
        assert store.get(ALICE).earned == REWARD // 2

    def test_conservation_with_events(self) -> None:
        store = _minter(_debt_store(alice=100 * WAD)).replay(
            [
                debt_event(BOB, START + 500, 100 * WAD, log_index=1),
                debt_event(ALICE, START + 700, -50 * WAD, log_index=2),
                rate_event(START + 800, WAD // 10),
            ]
        )
        total = store.total_earned()
        assert total <= REWARD
        assert REWARD - total <= 10

    def test_late_joiner_shares_from_join_time(self) -> None:
        store = _minter(_debt_store(alice=100 * WAD)).replay(
            [debt_event(BOB, START + 500, 100 * WAD)]
        )
        assert abs(store.get(ALICE).earned - 750 * WAD) <= 2
        assert abs(store.get(BOB).earned - 250 * WAD) <= 2

    def test_earned_never_decreases(self) -> None:
        engine = _minter(_debt_store(alice=100 * WAD, bob=100 * WAD))
        previous = 0
        for event in [
            debt_event(ALICE, START + 100, 10 * WAD),
            debt_event(ALICE, START + 200, -60 * WAD),
            debt_event(ALICE, START + 300, -50 * WAD),
        ]:
            engine.apply(event)
            earned = engine.store.get(ALICE).earned
            assert earned >= previous
            previous = earned

    def test_deterministic(self) -> None:
        events = [
            debt_event(BOB, START + 300, 40 * WAD),
            rate_event(START + 600, WAD // 20),
        ]
        base = _debt_store(alice=100 * WAD)
        first = _minter(copy.deepcopy(base)).replay(events)
        second = _minter(copy.deepcopy(base)).replay(events)
        assert [(a.address, a.earned) for a in first] == [(a.address, a.earned) for a in second]

    def test_order_sensitive(self) -> None:
        base = _debt_store(alice=100 * WAD, bob=100 * WAD)
        one = _minter(copy.deepcopy(base)).replay(
            [debt_event(ALICE, START + 200, 100 * WAD), debt_event(BOB, START + 600, 100 * WAD)]
        )
        other = _minter(copy.deepcopy(base)).replay(
            [debt_event(BOB, START + 200, 100 * WAD), debt_event(ALICE, START + 600, 100 * WAD)]
        )
        assert one.get(ALICE).earned != other.get(ALICE).earned


class TestDeltaDebt:
    def test_applies_accumulated_rate(self) -> None:
        engine = RewardAccrualEngine(
            AccountStore(), Program.MINTER_REWARDS, REWARD, START, END, {"WETH": 2 * WAD}
        )
        engine.apply(debt_event(ALICE, START + 1, 5 * WAD))
        assert engine.store.get(ALICE).debt == 10 * WAD
        assert engine.store.get(ALICE).staking_weight == 10 * WAD

    def test_tracks_collateral_in_minter_program(self) -> None:
        engine = _minter(AccountStore())
        engine.apply(debt_event(ALICE, START + 1, 5 * WAD, collateral=3 * WAD))
        assert engine.store.get(ALICE).collateral == 3 * WAD

    def test_dust_clamped_to_zero(self) -> None:
        engine = _minter(_debt_store(alice=WAD))
        engine.apply(debt_event(ALICE, START + 10, to_wad("-1.3")))
        assert engine.store.get(ALICE).debt == 0
        assert engine.store.get(ALICE).staking_weight == 0

    def test_negative_debt_beyond_dust_raises(self) -> None:
        engine = _minter(_debt_store(alice=WAD))
        with pytest.raises(InvariantViolation):
            engine.apply(debt_event(ALICE, START + 10, to_wad("-1.5")))

    def test_missing_rate_raises(self) -> None:
        engine = _minter(AccountStore())
        with pytest.raises(ValidationError, match="No accumulated rate"):
            engine.apply(debt_event(ALICE, START + 1, WAD, c_type="RETH"))

    def test_bridge_caps_weight(self) -> None:
        class Bridge:
            def bridged_tokens_at_block(self, address: str, c_type: str, block: int) -> int:
                return 250 * WAD

        engine = _minter(AccountStore(), with_bridge=True, bridge_data=Bridge())
        engine.apply(debt_event(ALICE, START + 1, 1000 * WAD, collateral=500 * WAD))
        account = engine.store.get(ALICE)
        assert account.total_bridged_tokens == 250 * WAD
        assert account.staking_weight == 500 * WAD


class TestAccumulatedRate:
    def test_compounds_every_debt(self) -> None:
        engine = _minter(_debt_store(alice=100 * WAD, bob=200 * WAD))
        engine.apply(rate_event(START + 500, WAD // 10))
        assert engine.store.get(ALICE).debt == 110 * WAD
        assert engine.store.get(BOB).debt == 220 * WAD
        assert engine.state.rates["WETH"] == WAD + WAD // 10
        assert engine.state.total_staking_weight == 330 * WAD

    def test_credits_before_compounding(self) -> None:
        engine = _minter(_debt_store(alice=100 * WAD))
        engine.apply(rate_event(START + 500, WAD))
        assert abs(engine.store.get(ALICE).earned - 500 * WAD) <= 1


class TestLpEvents:
    def _lp_engine(self, store: AccountStore, **kwargs) -> RewardAccrualEngine:
        return RewardAccrualEngine(store, Program.LP_REWARDS, REWARD, START, END, **kwargs)

    def _lp_store(self) -> AccountStore:
        store = AccountStore()
        store.upsert_position(ALICE, full_range(1, 100))
        store.get(ALICE).staking_weight = 100
        return store

    def test_implicit_transfer(self) -> None:
        store = self._lp_engine(self._lp_store()).replay(
            [position_event(BOB, START + 500, full_range(1, 100))]
        )
        assert store.owner_of(1) == BOB
        assert store.get(ALICE).lp_positions == []
        assert store.get(ALICE).staking_weight == 0
        assert store.get(BOB).staking_weight == 100
        assert abs(store.get(ALICE).earned - 500 * WAD) <= 1
        assert abs(store.get(BOB).earned - 500 * WAD) <= 1

    @pytest.mark.parametrize(
        ("alice_log_index", "bob_log_index", "final_owner", "alice_earned", "bob_earned"),
        [
            (1, 2, BOB, 250 * WAD, 750 * WAD),
            (2, 1, ALICE, 500 * WAD, 500 * WAD),
        ],
    )
    def test_same_timestamp_ordered_by_log_index(
        self,
        alice_log_index: int,
        bob_log_index: int,
        final_owner: str,
        alice_earned: int,
        bob_earned: int,
    ) -> None:
        store = self._lp_store()
        store.upsert_position(BOB, full_range(2, 100))
        store.get(BOB).staking_weight = 100
        events = merge_events(
            [position_event(ALICE, START + 500, full_range(1, 100), log_index=alice_log_index)],
            [position_event(BOB, START + 500, full_range(1, 100), log_index=bob_log_index)],
        )

        result = self._lp_engine(store).replay(events)

        assert result.owner_of(1) == final_owner
        assert result.get(ALICE).earned == alice_earned
        assert result.get(BOB).earned == bob_earned
        assert result.total_earned() == REWARD

    def test_liquidity_update_same_owner(self) -> None:
        engine = self._lp_engine(self._lp_store())
        engine.apply(position_event(ALICE, START + 10, full_range(1, 300)))
        assert engine.store.get(ALICE).staking_weight == 300

    def test_narrow_position_has_no_weight(self) -> None:
        engine = self._lp_engine(AccountStore())
        engine.apply(
            position_event(BOB, START + 10, LpPosition(2, -60, 60, 100))
        )
        assert engine.store.get(BOB).staking_weight == 0

    def test_swap_updates_price_not_weight(self) -> None:
        engine = self._lp_engine(self._lp_store())
        engine.apply(swap_event(START + 10, 12345))
        assert engine.state.sqrt_price == 12345
        assert engine.store.get(ALICE).staking_weight == 100

    def test_redemption_price_refresh(self) -> None:
        engine = self._lp_engine(self._lp_store(), redemption_prices={START + 10: 3 * WAD})
        engine.apply(swap_event(START + 10, 1))
        assert engine.state.redemption_price == 3 * WAD
        assert engine.state.redemption_price_last_update == START + 10

    def test_redemption_price_not_loaded(self) -> None:
        engine = self._lp_engine(self._lp_store(), redemption_prices={})
        with pytest.raises(ValidationError, match="No redemption price"):
            engine.apply(swap_event(START + 10, 1))


class TestReplayGuards:
    def test_time_going_backwards(self) -> None:
        engine = _minter(_debt_store(alice=WAD))
        engine.apply(debt_event(ALICE, START + 500, WAD))
        with pytest.raises(ValidationError, match="Time went backwards"):
            engine.apply(debt_event(ALICE, START + 400, WAD))

    def test_event_after_campaign_end(self) -> None:
        engine = _minter(_debt_store(alice=WAD))
        with pytest.raises(InvariantViolation, match="Impossible final timestamp"):
            engine.replay([debt_event(ALICE, END + 1, WAD)])

    def test_process_reward_events_wrapper(self) -> None:
        store = process_reward_events(
            _debt_store(alice=100), [], Program.MINTER_REWARDS, REWARD, START, END, RATES
        )
        assert store.get(ALICE).earned == REWARD


class TestRedemptionRefreshTimestamps:
    def test_daily_refresh_points(self) -> None:
        events = [swap_event(ts, 1) for ts in (START, START + 100, START + 86400, START + 86401)]
        assert redemption_refresh_timestamps(events) == [START, START + 86400]
