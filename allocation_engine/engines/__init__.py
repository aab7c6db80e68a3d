"""
Pure computation used by the allocation services.
"""

from allocation_engine.engines.distribution import (
    DistributionEngine,
    DistributionEntity,
    DistributionResult,
    LineDraft,
)
from allocation_engine.engines.lifecycle import AllocationState

__all__ = [
    "DistributionEngine",
    "DistributionEntity",
    "DistributionResult",
    "LineDraft",
    "AllocationState",
]
