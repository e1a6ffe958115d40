"""Reward accrual core: account store, weights, merger, engine, aggregation."""
from .aggregator import aggregate_collateral_types, combine_rewards, program_payouts
from .engine import RewardAccrualEngine, RewardState, process_reward_events
from .initial_state import build_initial_state
from .merger import merge_events
from .store import AccountStore

__all__ = [
    "AccountStore",
    "RewardAccrualEngine",
    "RewardState",
    "aggregate_collateral_types",
    "build_initial_state",
    "combine_rewards",
    "merge_events",
    "process_reward_events",
    "program_payouts",
]
