"""Precondition failures raised by the dispatch and task services."""
from typing import Any, Dict, Optional


class DispatchError(Exception):
    """Base class for rejected dispatch operations."""

    code = "DISPATCH_ERROR"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class DispatchNotFoundError(DispatchError):
    """Dispatch does not exist or belongs to another user."""

    code = "NOT_FOUND"


class DispatchFinalizedError(DispatchError):
    """Dispatch is finalized and can no longer change."""

    code = "CONFLICT"


class TaskNotFoundError(DispatchError):
    """Task does not exist, belongs to another user, or is soft-deleted."""

    code = "NOT_FOUND"
