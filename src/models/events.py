"""Offer transition events for downstream subscribers."""

from enum import Enum
from datetime import datetime, timezone
from pydantic import BaseModel, Field
from ulid import ULID


class OfferEventType(str, Enum):
    """Transitions a notifier may subscribe to."""
    OFFER_CREATED = "OFFER_CREATED"
    OFFER_ACCEPTED = "OFFER_ACCEPTED"
    OFFER_DECLINED = "OFFER_DECLINED"
    OFFER_EXPIRED = "OFFER_EXPIRED"


class OfferEvent(BaseModel):
    """Offer transition event."""
    event_id: str = Field(default_factory=lambda: str(ULID()), description="Event ID (ULID)")
    event_type: OfferEventType
    offer_id: int
    listing_id: int
    applicant_id: int
    occurred_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
