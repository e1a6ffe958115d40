"""Payout sinks."""
from .json_file import JsonPayoutSink

__all__ = ["JsonPayoutSink"]
