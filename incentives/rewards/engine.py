"""Reward accrual engine: replays ordered events into per-account earnings.

The engine keeps a global reward-per-weight accumulator. Between two events
the reward rate is constant, so every unit of staking weight earns
``dt * rate / total_weight``. Before an account's weight changes it is
credited with everything accrued since its last credit, which makes the final
``earned`` values independent of how often accounts are touched.

All amounts are WAD integers; the accumulator carries ``ACC_SCALE`` extra
precision. The engine does no I/O: rates, prices and bridge data are loaded
before :meth:`RewardAccrualEngine.replay` is called.
"""
from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

from ..errors import ValidationError
from ..fixed_point import ACC_SCALE, WAD, from_wad, to_wad, wmul
from ..interfaces import BridgeDataSource
from ..models import Account, LpPosition, Program, Rates, RewardEvent, RewardEventType
from .sanity import check_accounts, final_sanity_check
from .store import AccountStore
from .weights import staking_weight, staking_weight_for_lp_positions

logger = logging.getLogger(__name__)

# Negative debt above this is compounding dust and is clamped to zero.
DUST_DEBT = to_wad("0.4")

REDEMPTION_PRICE_REFRESH_SECONDS = 3600 * 24

PROGRESS_LOG_EVERY = 1000


@dataclass
class RewardState:
    timestamp: int
    total_staking_weight: int = 0
    reward_per_weight: int = 0
    rates: Rates = field(default_factory=dict)
    sqrt_price: int = 0
    redemption_price: int = WAD
    redemption_price_last_update: int = 0


def redemption_refresh_timestamps(
    events: Iterable[RewardEvent],
    interval: int = REDEMPTION_PRICE_REFRESH_SECONDS,
) -> list[int]:
    """Event timestamps at which the engine will refresh the redemption price."""
    refreshes: list[int] = []
    last_update = 0
    for event in events:
        if last_update + interval <= event.timestamp:
            refreshes.append(event.timestamp)
            last_update = event.timestamp
    return refreshes


class RewardAccrualEngine:
    """Single-run, single-threaded replay of one reward program."""

    def __init__(
        self,
        store: AccountStore,
        program: Program,
        reward_amount: int,
        start_timestamp: int,
        end_timestamp: int,
        rates: Mapping[str, int] | None = None,
        *,
        with_bridge: bool = False,
        bridge_data: BridgeDataSource | None = None,
        sqrt_price: int = 0,
        redemption_prices: Mapping[int, int] | None = None,
    ) -> None:
        if end_timestamp <= start_timestamp:
            raise ValueError(
                f"Campaign end {end_timestamp} must be after start {start_timestamp}"
            )
        if reward_amount < 0:
            raise ValueError("Reward amount must be non-negative")

        self.store = store
        self.program = program
        self.reward_amount = reward_amount
        self.start_timestamp = start_timestamp
        self.end_timestamp = end_timestamp
        self.with_bridge = with_bridge and program is Program.MINTER_REWARDS
        self._bridge_data = bridge_data
        self._redemption_prices = redemption_prices
        self.events_applied = 0

        self.state = RewardState(
            timestamp=start_timestamp,
            total_staking_weight=store.total_staking_weight(),
            rates=dict(rates or {}),
            sqrt_price=sqrt_price,
        )

    @property
    def duration(self) -> int:
        return self.end_timestamp - self.start_timestamp

    # ------------------------------------------------------------------
    # Accumulator
    # ------------------------------------------------------------------

    def advance(self, timestamp: int) -> None:
        """Accrue reward density up to ``timestamp`` and move the clock."""
        state = self.state
        if timestamp < state.timestamp:
            raise ValidationError(
                f"Time went backwards: {timestamp} < {state.timestamp}"
            )
        if state.total_staking_weight > 0:
            elapsed = timestamp - state.timestamp
            state.reward_per_weight += (
                elapsed * self.reward_amount * ACC_SCALE
                // (self.duration * state.total_staking_weight)
            )
        state.timestamp = timestamp

    def earn(self, account: Account) -> None:
        """Credit ``account`` with everything accrued since its last credit."""
        rpw = self.state.reward_per_weight
        account.earned += (
            (rpw - account.reward_per_weight_stored) * account.staking_weight
            // ACC_SCALE
        )
        account.reward_per_weight_stored = rpw

    def earn_all(self) -> None:
        for account in self.store:
            self.earn(account)

    def _update_weight(self, account: Account) -> None:
        account.staking_weight = staking_weight(account, self.program, self.with_bridge)

    def _refresh_bridged(self, account: Account, c_type: str, block: int) -> None:
        if self.with_bridge and self._bridge_data is not None:
            account.total_bridged_tokens = self._bridge_data.bridged_tokens_at_block(
                account.address, c_type, block
            )

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def _rate_for(self, event: RewardEvent) -> int:
        rate = self.state.rates.get(event.c_type) if event.c_type else None
        if rate is None:
            raise ValidationError(
                f"No accumulated rate for collateral type {event.c_type!r}: {event!r}"
            )
        return rate

    def _on_delta_debt(self, event: RewardEvent) -> list[Account]:
        account = self.store.get_or_create(event.address)
        self.earn(account)

        account.debt += wmul(event.value, self._rate_for(event))

        if self.program is Program.MINTER_REWARDS:
            account.collateral += event.complementary_value or 0
            self._refresh_bridged(account, event.c_type, event.created_at_block)

        if -DUST_DEBT < account.debt < 0:
            account.debt = 0

        self._update_weight(account)
        return [account]

    def _on_position_update(self, event: RewardEvent) -> list[Account]:
        position = event.value
        if not isinstance(position, LpPosition):
            raise ValidationError(f"Position update without a position: {event!r}")

        account = self.store.get_or_create(event.address)
        self.earn(account)
        touched = [account]

        # A snapshot under a new owner without mint/burn is an NFT transfer
        previous_owner = self.store.owner_of(position.token_id)
        if previous_owner is not None and previous_owner != event.address:
            source = self.store.get_or_create(previous_owner)
            logger.debug(
                "Position %d transferred from %s to %s",
                position.token_id, previous_owner, event.address,
            )
            self.earn(source)
            self.store.remove_position(previous_owner, position.token_id)
            self._update_weight(source)
            touched.append(source)

        self.store.upsert_position(event.address, position)
        self._update_weight(account)
        return touched

    def _on_pool_swap(self, event: RewardEvent) -> list[Account]:
        self.earn_all()
        self.state.sqrt_price = event.value
        # Weight is the raw full-range liquidity; the price does not enter it.
        for account in self.store:
            account.staking_weight = staking_weight_for_lp_positions(account.lp_positions)
        return list(self.store)

    def _on_accumulated_rate(self, event: RewardEvent) -> list[Account]:
        if not event.c_type:
            raise ValidationError(f"Rate update without collateral type: {event!r}")
        rate_multiplier = event.value
        rates = self.state.rates
        rates[event.c_type] = rates.get(event.c_type, 0) + rate_multiplier

        self.earn_all()
        for account in self.store:
            account.debt = wmul(account.debt, WAD + rate_multiplier)
            if self.program is Program.MINTER_REWARDS:
                self._refresh_bridged(account, event.c_type, event.created_at_block)
            self._update_weight(account)
        return list(self.store)

    _HANDLERS = {
        RewardEventType.DELTA_DEBT: _on_delta_debt,
        RewardEventType.POOL_POSITION_UPDATE: _on_position_update,
        RewardEventType.POOL_SWAP: _on_pool_swap,
        RewardEventType.UPDATE_ACCUMULATED_RATE: _on_accumulated_rate,
    }

    # ------------------------------------------------------------------
    # Replay
    # ------------------------------------------------------------------

    def _maybe_refresh_redemption_price(self, event: RewardEvent) -> None:
        if self.program is not Program.LP_REWARDS or self._redemption_prices is None:
            return
        state = self.state
        if state.redemption_price_last_update + REDEMPTION_PRICE_REFRESH_SECONDS > event.timestamp:
            return
        price = self._redemption_prices.get(event.timestamp)
        if price is None:
            raise ValidationError(
                f"No redemption price loaded for timestamp {event.timestamp}"
            )
        state.redemption_price = price
        state.redemption_price_last_update = event.timestamp

    def apply(self, event: RewardEvent) -> None:
        """Apply one event: accrue, credit, transition, check, re-weigh."""
        handler = self._HANDLERS.get(event.type)
        if handler is None:
            raise ValidationError(f"Unknown event: {event!r}")

        self._maybe_refresh_redemption_price(event)
        self.advance(event.timestamp)
        touched = handler(self, event)
        check_accounts(touched, event)
        self.state.total_staking_weight = self.store.total_staking_weight()
        self.events_applied += 1

    def finalize(self) -> AccountStore:
        """Pay out the time between the last event and the campaign end."""
        final_sanity_check(self.state.timestamp, self.end_timestamp, self.store)
        self.advance(self.end_timestamp)
        self.earn_all()
        check_accounts(self.store)
        logger.info(
            "Final crediting done, %s distributed to %d users",
            from_wad(self.store.total_earned()), len(self.store),
        )
        return self.store

    def replay(self, events: Iterable[RewardEvent]) -> AccountStore:
        """Apply every event in order, then credit until the campaign end."""
        logger.info(
            "Distributing %s at a reward rate of %s/sec between %d and %d",
            from_wad(self.reward_amount),
            from_wad(self.reward_amount // self.duration),
            self.start_timestamp,
            self.end_timestamp,
        )
        logger.info("Applying all events...")
        for i, event in enumerate(events):
            if i and i % PROGRESS_LOG_EVERY == 0:
                logger.info("  Processed %d events", i)
            self.apply(event)
        return self.finalize()


def process_reward_events(
    store: AccountStore,
    events: Iterable[RewardEvent],
    program: Program,
    reward_amount: int,
    start_timestamp: int,
    end_timestamp: int,
    rates: Mapping[str, int] | None = None,
    **kwargs,
) -> AccountStore:
    """Convenience wrapper: build an engine and replay ``events`` through it."""
    engine = RewardAccrualEngine(
        store, program, reward_amount, start_timestamp, end_timestamp, rates, **kwargs
    )
    return engine.replay(events)
