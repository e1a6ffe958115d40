"""Payout sink protocol: consumer of the final payout table."""
from typing import Protocol

from ..models import PayoutTable


class PayoutSink(Protocol):
    """Abstract interface for publishing a finished payout table."""

    def write(self, table: PayoutTable) -> None: ...
