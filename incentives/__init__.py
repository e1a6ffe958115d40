"""Reward accrual for lending and liquidity incentive campaigns."""

__version__ = "0.1.0"
