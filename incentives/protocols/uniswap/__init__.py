"""Uniswap v3 pool integration."""
from .adapter import UniswapAdapter

__all__ = ["UniswapAdapter"]
