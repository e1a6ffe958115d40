"""GraphQL subgraph transport."""
from .client import SubgraphClient

__all__ = ["SubgraphClient"]
