"""Reward distribution orchestration: one replay per token and collateral type."""
from __future__ import annotations

import asyncio
import copy
import logging
from collections.abc import Iterable
from decimal import Decimal

from ..bridge import FileBridgeData
from ..chains.evm import EvmClient
from ..config import AppConfig
from ..exclusion import load_exclusion_list
from ..fixed_point import to_wad
from ..interfaces import BridgeDataSource, ChainClient, LendingSource, PoolSource
from ..models import Payout, PayoutTable, Program, Rates, RewardEvent
from ..protocols.geb import GebAdapter
from ..protocols.uniswap import UniswapAdapter
from ..rewards import (
    AccountStore,
    RewardAccrualEngine,
    aggregate_collateral_types,
    build_initial_state,
    combine_rewards,
    merge_events,
    program_payouts,
)
from ..rewards.engine import redemption_refresh_timestamps
from ..rewards.initial_state import fetch_rates
from ..subgraph import SubgraphClient

logger = logging.getLogger(__name__)

COMMANDS = ("lp", "minter", "all")


class RewardDistributor:
    """Fetches, replays and aggregates both reward programs."""

    def __init__(
        self,
        config: AppConfig,
        *,
        chain: ChainClient | None = None,
        lp_lending: LendingSource | None = None,
        minter_lending: LendingSource | None = None,
        pool: PoolSource | None = None,
        bridge_data: BridgeDataSource | None = None,
        exclusion_list: Iterable[str] | None = None,
    ) -> None:
        self._config = config
        subgraphs = config.subgraphs

        def subgraph(url: str) -> SubgraphClient:
            return SubgraphClient(url, subgraphs.timeout, subgraphs.page_size)

        self._chain = chain or EvmClient(config.chain)
        self._lp_lending = lp_lending or GebAdapter(subgraph(subgraphs.lp_geb_url))
        self._minter_lending = minter_lending or GebAdapter(
            subgraph(subgraphs.minter_geb_url)
        )

        if pool is None and subgraphs.uniswap_url and config.pool.address:
            pool = UniswapAdapter(subgraph(subgraphs.uniswap_url), config.pool.address)
        self._pool = pool

        self._bridge_data = bridge_data
        self._exclusion_list = (
            list(exclusion_list) if exclusion_list is not None else None
        )

    # ------------------------------------------------------------------
    # Shared inputs
    # ------------------------------------------------------------------

    @property
    def exclusion_list(self) -> list[str]:
        if self._exclusion_list is None:
            self._exclusion_list = load_exclusion_list(self._config.exclusion_list_file)
        return self._exclusion_list

    def _get_bridge_data(self) -> BridgeDataSource:
        if self._bridge_data is None:
            self._bridge_data = FileBridgeData.from_file(self._config.bridge.data_file)
        return self._bridge_data

    async def _window(self, start_block: int, end_block: int) -> tuple[int, int]:
        start_timestamp, end_timestamp = await asyncio.gather(
            self._chain.get_block_timestamp(start_block),
            self._chain.get_block_timestamp(end_block),
        )
        logger.info(
            "Campaign window: blocks %d-%d, timestamps %d-%d",
            start_block, end_block, start_timestamp, end_timestamp,
        )
        return start_timestamp, end_timestamp

    async def _redemption_prices(
        self, lending: LendingSource, events: list[RewardEvent]
    ) -> dict[int, int]:
        """Every redemption price the LP replay will ask for, fetched up front."""
        timestamps = redemption_refresh_timestamps(events)
        prices = await asyncio.gather(
            *(lending.get_redemption_price_at(ts) for ts in timestamps)
        )
        logger.info("Fetched %d redemption prices", len(prices))
        return dict(zip(timestamps, prices))

    @staticmethod
    def _replay(
        store: AccountStore,
        events: list[RewardEvent],
        program: Program,
        token: str,
        amount: Decimal,
        window: tuple[int, int],
        rates: Rates,
        **kwargs,
    ) -> list[Payout]:
        logger.info("Calculating %s for token %s", program.value, token)
        engine = RewardAccrualEngine(
            copy.deepcopy(store),
            program,
            to_wad(amount),
            window[0],
            window[1],
            rates,
            **kwargs,
        )
        return program_payouts(engine.replay(events))

    # ------------------------------------------------------------------
    # LP rewards
    # ------------------------------------------------------------------

    async def calculate_lp_rewards(self) -> PayoutTable:
        """Replay the LP program once per reward token."""
        lp = self._config.lp
        if not lp.enabled or not lp.rewards:
            logger.info("LP rewards disabled")
            return {}
        if self._pool is None:
            raise ValueError("LP rewards need a Uniswap subgraph and pool address")

        lending, pool = self._lp_lending, self._pool
        c_types = list(lp.collateral_types)
        exclusion_list = self.exclusion_list

        owners = await lending.get_safe_owner_mapping(lp.end_block)
        window = await self._window(lp.start_block, lp.end_block)

        store, rates, sqrt_price, *streams = await asyncio.gather(
            build_initial_state(
                lp.start_block,
                owners,
                c_types,
                Program.LP_REWARDS,
                lending=lending,
                pool=pool,
                exclusion_list=exclusion_list,
            ),
            fetch_rates(lending, lp.start_block, c_types),
            pool.get_pool_sqrt_price(lp.start_block),
            pool.get_position_events(lp.start_block, lp.end_block),
            pool.get_swap_events(*window),
            *(
                lending.get_debt_events(lp.start_block, lp.end_block, owners, c)
                for c in c_types
            ),
            *(
                lending.get_accumulated_rate_events(lp.start_block, lp.end_block, c)
                for c in c_types
            ),
        )
        events = merge_events(*streams, exclusion_list=exclusion_list)
        redemption_prices = await self._redemption_prices(lending, events)

        return {
            token: self._replay(
                store,
                events,
                Program.LP_REWARDS,
                token,
                amount,
                window,
                rates,
                sqrt_price=sqrt_price,
                redemption_prices=redemption_prices,
            )
            for token, amount in lp.rewards.items()
        }

    # ------------------------------------------------------------------
    # Minter rewards
    # ------------------------------------------------------------------

    async def _prepare_minter_run(
        self, c_type: str, owners: dict[str, str]
    ) -> tuple[AccountStore, list[RewardEvent], Rates]:
        """Initial store, merged events and start rates for one collateral type."""
        minter = self._config.minter
        lending = self._minter_lending
        bridge_data = self._get_bridge_data() if minter.with_bridge else None

        store, rates, debt_events, rate_events = await asyncio.gather(
            build_initial_state(
                minter.start_block,
                owners,
                [c_type],
                Program.MINTER_REWARDS,
                lending=lending,
                exclusion_list=self.exclusion_list,
                c_type=c_type,
                with_bridge=minter.with_bridge,
                bridge_data=bridge_data,
            ),
            fetch_rates(lending, minter.start_block, [c_type]),
            lending.get_debt_events(minter.start_block, minter.end_block, owners, c_type),
            lending.get_accumulated_rate_events(minter.start_block, minter.end_block, c_type),
        )
        events = merge_events(debt_events, rate_events, exclusion_list=self.exclusion_list)
        return store, events, rates

    async def calculate_minter_rewards(self) -> PayoutTable:
        """Replay the minter program per token and collateral type, then sum per token."""
        minter = self._config.minter
        if not minter.enabled or not minter.rewards:
            logger.info("Minter rewards disabled")
            return {}

        c_types = sorted({c for per_c_type in minter.rewards.values() for c in per_c_type})
        owners = await self._minter_lending.get_safe_owner_mapping(minter.end_block)
        window = await self._window(minter.start_block, minter.end_block)

        prepared = dict(
            zip(
                c_types,
                await asyncio.gather(
                    *(self._prepare_minter_run(c, owners) for c in c_types)
                ),
            )
        )
        bridge_data = self._get_bridge_data() if minter.with_bridge else None

        table: PayoutTable = {}
        for token, per_c_type in minter.rewards.items():
            per_c_type_payouts = {}
            for c_type, amount in per_c_type.items():
                store, events, rates = prepared[c_type]
                per_c_type_payouts[c_type] = self._replay(
                    store,
                    events,
                    Program.MINTER_REWARDS,
                    f"{token}/{c_type}",
                    amount,
                    window,
                    rates,
                    with_bridge=minter.with_bridge,
                    bridge_data=bridge_data,
                )
            table[token] = aggregate_collateral_types(per_c_type_payouts)
        return table

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    async def run(self, command: str = "all") -> PayoutTable:
        """Run one program (``lp``/``minter``) or both and combine the tables."""
        if command == "lp":
            return await self.calculate_lp_rewards()
        if command == "minter":
            return await self.calculate_minter_rewards()
        if command != "all":
            raise ValueError(f"Unknown command: {command}")

        lp_table, minter_table = await asyncio.gather(
            self.calculate_lp_rewards(), self.calculate_minter_rewards()
        )
        table = combine_rewards(lp_table, minter_table)
        logger.info("Combined rewards for %d tokens", len(table))
        return table
