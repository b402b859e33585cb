"""Periodic jobs besides matching."""

from .broadcast import DailyBroadcast
from .statistics import StatisticsCollector

__all__ = ["DailyBroadcast", "StatisticsCollector"]
