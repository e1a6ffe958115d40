"""Error taxonomy for reward runs: every error here is fatal to the run."""
from __future__ import annotations

from typing import Any


class RewardError(Exception):
    """Base class for failures that abort a reward run."""


class ValidationError(RewardError):
    """Malformed input: inconsistent event, bad initial state, tick mutation."""


class InvariantViolation(RewardError):
    """An account left the valid state space during replay."""

    def __init__(self, message: str, account: Any = None, event: Any = None) -> None:
        super().__init__(message)
        self.account = account
        self.event = event

    def __str__(self) -> str:
        base = super().__str__()
        parts = [base]
        if self.account is not None:
            parts.append(f"account: {self.account!r}")
        if self.event is not None:
            parts.append(f"event: {self.event!r}")
        return "\n".join(parts)


class AdapterError(RewardError):
    """An external query (subgraph, RPC, bridge data) failed."""
