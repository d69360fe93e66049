"""Error handling utilities."""

from typing import Any, Optional


class AllocationError(Exception):
    """Base exception for the allocation engine."""
    pass


class EmptyPoolError(AllocationError):
    """No eligible applicants for the listing."""
    pass


class ConflictError(AllocationError):
    """Concurrent offer creation or a uniqueness constraint violation."""

    def __init__(self, message: str, existing_offer: Optional[Any] = None):
        super().__init__(message)
        self.existing_offer = existing_offer


class InvalidStateError(AllocationError):
    """Operation not allowed in the current offer, applicant or listing state."""
    pass


class EligibilityDataUnavailable(AllocationError):
    """Application profile provider failed."""
    pass


class NotFoundError(AllocationError):
    """Listing, applicant or offer does not exist."""
    pass


class SupabaseError(AllocationError):
    """Supabase operation error."""
    pass
