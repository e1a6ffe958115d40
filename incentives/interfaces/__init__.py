"""Protocol interfaces for the external collaborators of a reward run."""
from .bridge import BridgeDataSource
from .chain import ChainClient
from .payout_sink import PayoutSink
from .sources import LendingSource, PoolSource

__all__ = ["BridgeDataSource", "ChainClient", "LendingSource", "PayoutSink", "PoolSource"]
