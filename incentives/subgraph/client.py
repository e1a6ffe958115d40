"""Subgraph GraphQL client with ``[[skip]]`` pagination."""
import logging
import ssl
from typing import Any

import aiohttp
import certifi

from ..errors import AdapterError

logger = logging.getLogger(__name__)

SKIP_PLACEHOLDER = "[[skip]]"


class SubgraphClient:
    """POST GraphQL queries to one subgraph endpoint."""

    def __init__(self, url: str, timeout: int = 30, page_size: int = 1000) -> None:
        if not url:
            raise ValueError("Subgraph URL not configured")
        self.url = url
        self.timeout = timeout
        self.page_size = page_size

    async def query(self, query: str) -> dict[str, Any]:
        """Run a query and return its ``data`` object."""
        ssl_context = ssl.create_default_context(cafile=certifi.where())
        connector = aiohttp.TCPConnector(ssl=ssl_context)

        try:
            async with aiohttp.ClientSession(connector=connector) as session:
                async with session.post(
                    self.url,
                    json={"query": query},
                    timeout=aiohttp.ClientTimeout(total=self.timeout),
                ) as response:
                    if response.status != 200:
                        raise AdapterError(
                            f"Subgraph {self.url} returned HTTP {response.status}"
                        )
                    result = await response.json()
        except AdapterError:
            raise
        except Exception as e:
            raise AdapterError(f"Error with subgraph query: {e}") from e

        if not result or not result.get("data"):
            if result and result.get("errors"):
                logger.error("Subgraph errors: %s", result["errors"])
            raise AdapterError(f"No data returned by subgraph {self.url}")

        return result["data"]

    async def query_paginated(self, query: str, field: str) -> list[dict[str, Any]]:
        """Follow ``skip`` pagination until a short page is returned."""
        rows: list[dict[str, Any]] = []
        skip = 0
        while True:
            data = await self.query(query.replace(SKIP_PLACEHOLDER, str(skip)))
            page = data.get(field)
            if page is None:
                raise AdapterError(f"Field '{field}' missing from subgraph response")
            rows.extend(page)
            if len(page) < self.page_size:
                break
            skip += self.page_size
        logger.debug("Fetched %d %s", len(rows), field)
        return rows
