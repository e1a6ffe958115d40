"""Account store: address → Account, with an LP token ownership index."""
from __future__ import annotations

import dataclasses
import logging
from collections.abc import Iterable, Iterator

from ..errors import ValidationError
from ..models import Account, LpPosition

logger = logging.getLogger(__name__)


class AccountStore:
    """Owns every account of one reward run.

    Accounts are created on first reference and never removed during a
    replay. LP positions must be changed through :meth:`upsert_position` and
    :meth:`remove_position` so the ``token_id -> owner`` index stays in sync.
    """

    def __init__(self, accounts: Iterable[Account] = ()) -> None:
        self._accounts: dict[str, Account] = {}
        self._position_owner: dict[int, str] = {}
        for account in accounts:
            self._accounts[account.address] = account
            for position in account.lp_positions:
                self._index_position(account.address, position.token_id)

    def __len__(self) -> int:
        return len(self._accounts)

    def __contains__(self, address: object) -> bool:
        return address in self._accounts

    def __iter__(self) -> Iterator[Account]:
        return iter(self._accounts.values())

    def get(self, address: str) -> Account | None:
        return self._accounts.get(address)

    def get_or_create(self, address: str) -> Account:
        account = self._accounts.get(address)
        if account is None:
            account = Account(address=address)
            self._accounts[address] = account
        return account

    def discard(self, address: str) -> None:
        """Drop an account entirely. Only used while building initial state."""
        account = self._accounts.pop(address, None)
        if account is None:
            return
        for position in account.lp_positions:
            if self._position_owner.get(position.token_id) == address:
                del self._position_owner[position.token_id]

    def total_staking_weight(self) -> int:
        return sum(a.staking_weight for a in self._accounts.values())

    def total_earned(self) -> int:
        return sum(a.earned for a in self._accounts.values())

    # ------------------------------------------------------------------
    # LP positions
    # ------------------------------------------------------------------

    def owner_of(self, token_id: int) -> str | None:
        return self._position_owner.get(token_id)

    def upsert_position(self, address: str, position: LpPosition) -> None:
        """Insert a new position or update the liquidity of an existing one.

        Ticks are immutable once a position exists.
        """
        account = self.get_or_create(address)
        for i, existing in enumerate(account.lp_positions):
            if existing.token_id != position.token_id:
                continue
            if (
                existing.lower_tick != position.lower_tick
                or existing.upper_tick != position.upper_tick
            ):
                raise ValidationError(
                    f"Tick value can't be updated for position {position.token_id}: "
                    f"stored ({existing.lower_tick}, {existing.upper_tick}), "
                    f"got ({position.lower_tick}, {position.upper_tick})"
                )
            account.lp_positions[i] = dataclasses.replace(
                existing, liquidity=position.liquidity
            )
            return

        account.lp_positions.append(position)
        self._index_position(address, position.token_id)

    def remove_position(self, address: str, token_id: int) -> None:
        account = self._accounts.get(address)
        if account is None:
            return
        account.lp_positions = [
            p for p in account.lp_positions if p.token_id != token_id
        ]
        if self._position_owner.get(token_id) == address:
            del self._position_owner[token_id]

    def _index_position(self, address: str, token_id: int) -> None:
        previous = self._position_owner.get(token_id)
        if previous is not None and previous != address:
            logger.warning(
                "Position %d listed under both %s and %s", token_id, previous, address
            )
        self._position_owner[token_id] = address
