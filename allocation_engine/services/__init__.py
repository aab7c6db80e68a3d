"""
Services package initialization.

This module imports all services to make them available from a single import point.
"""

from allocation_engine.services.allocation import AllocationManager
from allocation_engine.services.line_store import AllocationLineStore
from allocation_engine.services.locks import AllocationLockRegistry, allocation_locks
from allocation_engine.services.utilization import UtilizationTracker
from allocation_engine.services.waterfall import WaterfallAggregator

__all__ = [
    "AllocationManager",
    "AllocationLineStore",
    "AllocationLockRegistry",
    "allocation_locks",
    "UtilizationTracker",
    "WaterfallAggregator",
]
