"""Service modules"""
from .distributor import RewardDistributor

__all__ = ["RewardDistributor"]
