"""Bridge data protocol: cumulative bridged collateral per address."""
from typing import Protocol


class BridgeDataSource(Protocol):
    """Pre-loaded bridge transactions, queried during replay without I/O."""

    def bridged_tokens_at_block(self, address: str, c_type: str, block: int) -> int: ...
