"""GEB lending protocol integration."""
from .adapter import GebAdapter

__all__ = ["GebAdapter"]
