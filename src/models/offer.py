"""Offer and ranked snapshot models."""

from enum import Enum
from typing import Optional
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field

from src.models.applicant import ApplicantStatus, ApplicationType, HousingLeaseStatus
from src.models.listing import ListingStatus


class OfferStatus(str, Enum):
    """Offer lifecycle status."""
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    DECLINED = "DECLINED"
    EXPIRED = "EXPIRED"


class OfferOutcome(str, Enum):
    """Answers an applicant can give to an offer."""
    ACCEPTED = "ACCEPTED"
    DECLINED = "DECLINED"


class Offer(BaseModel):
    """One round of a listing being offered to one applicant."""
    id: int = Field(..., description="Offer ID")
    listing_id: int = Field(..., description="Offered listing")
    applicant_id: int = Field(..., description="Applicant the listing is offered to")
    sent_at: datetime = Field(..., description="When the offer was issued")
    expires_at: datetime = Field(..., description="Response deadline")
    answered_at: Optional[datetime] = None
    status: OfferStatus = Field(default=OfferStatus.PENDING)

    def model_post_init(self, __context: object) -> None:
        """Validate that the deadline is not before the send time."""
        if self.expires_at < self.sent_at:
            raise ValueError("expires_at must not be before sent_at")


class SnapshotEntry(BaseModel):
    """Ranking inputs and rank of one applicant, before it is stored."""
    model_config = ConfigDict(frozen=True)

    listing_id: int
    applicant_id: int
    applicant_status: ApplicantStatus
    application_type: ApplicationType
    application_date: datetime
    queue_points: int = Field(..., ge=0)
    address: Optional[str] = None
    has_parking_space: bool = False
    housing_lease_status: Optional[HousingLeaseStatus] = None
    priority: Optional[int] = None
    sort_order: int = Field(..., ge=0, description="Dense zero-based rank")


class OfferApplicant(SnapshotEntry):
    """Stored snapshot row, owned by the offer it was created with."""
    id: int
    offer_id: int
    created_at: Optional[datetime] = None


class OfferDraft(BaseModel):
    """Everything written atomically when an offer is opened."""
    listing_id: int
    applicant_id: int
    sent_at: datetime
    expires_at: datetime
    snapshot: list[SnapshotEntry] = Field(..., min_length=1)


class OfferClosure(BaseModel):
    """Everything written atomically when a pending offer is closed."""
    offer_id: int
    offer_status: OfferStatus
    applicant_status: ApplicantStatus
    answered_at: datetime
    listing_status: Optional[ListingStatus] = None
    next_offer: Optional[OfferDraft] = None

    def model_post_init(self, __context: object) -> None:
        """Validate that a closure moves the offer to a terminal status."""
        if self.offer_status == OfferStatus.PENDING:
            raise ValueError("offer_status must be terminal")


class OfferDetails(BaseModel):
    """Offer together with its ordered snapshot."""
    offer: Offer
    snapshot: list[OfferApplicant] = Field(default_factory=list)


class OfferResponse(BaseModel):
    """Result of answering an offer."""
    offer: Offer
    next_offer: Optional[Offer] = None
