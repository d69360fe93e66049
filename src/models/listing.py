"""Listing models."""

from enum import Enum
from typing import Optional
from datetime import date, datetime
from pydantic import BaseModel, Field


class ListingStatus(str, Enum):
    """Listing lifecycle status."""
    ACTIVE = "ACTIVE"
    ASSIGNED = "ASSIGNED"
    CLOSED = "CLOSED"
    EXPIRED = "EXPIRED"


class WaitingListType(str, Enum):
    """Which applicant pool a listing is offered to."""
    HOUSING = "HOUSING"
    PARKING_SPACE_INTERNAL = "PARKING_SPACE_INTERNAL"
    PARKING_SPACE_EXTERNAL = "PARKING_SPACE_EXTERNAL"
    STORAGE = "STORAGE"

    @property
    def requires_housing_profile(self) -> bool:
        return self is WaitingListType.HOUSING


# Statuses from which an offer round may be started
OFFERABLE_LISTING_STATUSES = frozenset({ListingStatus.ACTIVE, ListingStatus.EXPIRED})


class Listing(BaseModel):
    """Vacant rental unit advertised for a time window."""
    id: int = Field(..., description="Listing ID")
    rental_object_code: str = Field(..., description="External unit reference")
    monthly_rent: Optional[float] = Field(None, ge=0, description="Monthly rent")
    published_from: datetime = Field(..., description="Start of publication window")
    published_to: datetime = Field(..., description="End of publication window")
    vacant_from: Optional[date] = Field(None, description="Date the unit becomes vacant")
    status: ListingStatus = Field(default=ListingStatus.ACTIVE, description="Listing status")
    waiting_list_type: WaitingListType = Field(..., description="Waiting list the listing draws from")

    def model_post_init(self, __context: object) -> None:
        """Validate that the publication window is not inverted."""
        if self.published_to < self.published_from:
            raise ValueError("published_to must not be before published_from")
