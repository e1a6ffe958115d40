"""Bridge data: bridged collateral per address, from a pre-scanned JSON file.

The file is produced by the bridge scanner and looks like::

    [
      {
        "address": "0xabc...",
        "bridgeTransactions": [
          {"token": "WSTETH", "amount": "1500000000000000000", "blockHeight": 120}
        ]
      }
    ]

Amounts are 18-decimal base units, which is already WAD.
"""
from __future__ import annotations

import json
import logging
from collections import defaultdict
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from .errors import AdapterError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BridgeTransaction:
    token: str
    amount: int
    block_height: int


class FileBridgeData:
    """In-memory bridge transactions, queried by address, token and block."""

    def __init__(self, transactions: dict[str, list[BridgeTransaction]]) -> None:
        self._transactions = {
            address.lower(): txs for address, txs in transactions.items()
        }

    @classmethod
    def from_records(cls, records: list[dict[str, Any]]) -> "FileBridgeData":
        transactions: dict[str, list[BridgeTransaction]] = defaultdict(list)
        for record in records:
            address = (record.get("address") or "").lower()
            if not address:
                continue
            for tx in record.get("bridgeTransactions", []):
                transactions[address].append(
                    BridgeTransaction(
                        token=str(tx["token"]).lower(),
                        amount=int(tx["amount"]),
                        block_height=int(tx["blockHeight"]),
                    )
                )
        return cls(dict(transactions))

    @classmethod
    def from_file(cls, path: str | Path) -> "FileBridgeData":
        path = Path(path)
        try:
            records = json.loads(path.read_text())
        except (OSError, ValueError) as e:
            raise AdapterError(f"Could not load bridge data from {path}: {e}") from e
        data = cls.from_records(records)
        logger.info("Loaded bridge data for %d addresses", len(data._transactions))
        return data

    def bridged_tokens_at_block(self, address: str, c_type: str, block: int) -> int:
        """Total bridged ``c_type`` by ``address`` up to and including ``block``."""
        token = c_type.lower()
        return sum(
            tx.amount
            for tx in self._transactions.get(address.lower(), ())
            if tx.token == token and tx.block_height <= block
        )
