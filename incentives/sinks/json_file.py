"""JSON payout sink: one list of payouts per reward token."""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from ..models import PayoutTable

logger = logging.getLogger(__name__)


def serialize_table(table: PayoutTable) -> dict[str, list[dict[str, Any]]]:
    """Decimal amounts for humans, base units for the distributor contract."""
    return {
        token: [
            {
                "address": payout.address,
                "amount": format(payout.amount.normalize(), "f"),
                "earned": str(payout.earned),
            }
            for payout in payouts
        ]
        for token, payouts in table.items()
    }


class JsonPayoutSink:
    """Write the payout table to a JSON file."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def write(self, table: PayoutTable) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(serialize_table(table), indent=2) + "\n")
        logger.info(
            "Wrote payouts for %d tokens (%d entries) to %s",
            len(table), sum(len(p) for p in table.values()), self.path,
        )
