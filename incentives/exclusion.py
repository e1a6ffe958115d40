"""Exclusion list: addresses permanently ineligible for rewards."""
from __future__ import annotations

import logging
from pathlib import Path

logger = logging.getLogger(__name__)


def load_exclusion_list(path: str | Path | None) -> list[str]:
    """Read one address per line; blank lines are ignored.

    Addresses are lower-cased to match subgraph output. A missing or empty
    path means nothing is excluded.
    """
    if not path:
        return []
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Exclusion list not found: {path}")

    addresses = [
        line.strip().lower()
        for line in path.read_text().splitlines()
        if line.strip()
    ]
    logger.info("Loaded %d excluded addresses from %s", len(addresses), path)
    return addresses
