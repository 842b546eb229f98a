"""Earning subsystem — reward accrual and watch-time deduplication."""

from attention.earning.accrual import AccrualEngine
from attention.earning.progress import WatchProgressLedger

__all__ = [
    "AccrualEngine",
    "WatchProgressLedger",
]
