"""
Error taxonomy for the allocation engine.

Every error raised by the services is caller-recoverable. Each class carries
the HTTP status the API layer answers with, so routers never need to map
individual exception types.
"""

from typing import Any, Dict, Optional

from fastapi import status


class AllocationError(Exception):
    """Base class for all allocation engine errors."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    error_code: str = "allocation_error"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"error": self.error_code, "detail": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class ValidationError(AllocationError, ValueError):
    """A required field is missing or a value is out of range."""

    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    error_code = "validation_error"


class InvalidMethodError(ValidationError):
    """The allocation method is not one the engine knows."""

    error_code = "invalid_method"


class NotFoundError(AllocationError):
    status_code = status.HTTP_404_NOT_FOUND
    error_code = "not_found"


class LockedError(AllocationError):
    """A mutation was attempted on a locked allocation."""

    status_code = status.HTTP_423_LOCKED
    error_code = "allocation_locked"


class InvalidStateError(AllocationError):
    """The lifecycle status does not permit the requested operation."""

    status_code = status.HTTP_409_CONFLICT
    error_code = "invalid_state"


class NoEntitiesError(AllocationError):
    status_code = status.HTTP_400_BAD_REQUEST
    error_code = "no_entities"


class WeightSumZeroError(AllocationError):
    """Weights are all zero, or at least one weight is negative."""

    status_code = status.HTTP_400_BAD_REQUEST
    error_code = "weight_sum_zero"


class LedgerUnavailableError(AllocationError):
    """The spend ledger could not be queried; utilization was left as it was."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    error_code = "ledger_unavailable"


class ReferenceDataError(AllocationError):
    """A budget or entity reference lookup failed."""

    status_code = status.HTTP_502_BAD_GATEWAY
    error_code = "reference_data_unavailable"
