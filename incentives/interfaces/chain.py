"""Chain client protocol: block number to timestamp lookups."""
from typing import Protocol


class ChainClient(Protocol):
    """Abstract interface for EVM RPC interactions."""

    async def get_block_timestamp(self, block: int) -> int: ...
