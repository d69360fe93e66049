"""Application profile and housing reference models."""

from enum import Enum
from typing import Optional
from datetime import datetime
from pydantic import BaseModel, Field


class ReviewStatus(str, Enum):
    """Housing reference review outcome."""
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    CONTACTED_UNREACHABLE = "CONTACTED_UNREACHABLE"
    PENDING = "PENDING"
    REFERENCE_NOT_REQUIRED = "REFERENCE_NOT_REQUIRED"


class HousingType(str, Enum):
    """Applicant's current housing situation."""
    LIVES_WITH_FAMILY = "LIVES_WITH_FAMILY"
    LODGER = "LODGER"
    RENTAL = "RENTAL"
    SUB_RENTAL = "SUB_RENTAL"
    OWNS_HOUSE = "OWNS_HOUSE"
    OWNS_FLAT = "OWNS_FLAT"
    OWNS_ROW_HOUSE = "OWNS_ROW_HOUSE"
    OTHER = "OTHER"


class HousingReference(BaseModel):
    """Landlord reference attached to an application profile."""
    review_status: ReviewStatus = Field(default=ReviewStatus.PENDING)
    reviewed_at: Optional[datetime] = None
    expires_at: Optional[datetime] = Field(None, description="Null means the review does not expire")

    def is_approved_at(self, now: datetime) -> bool:
        if self.review_status != ReviewStatus.APPROVED:
            return False
        return self.expires_at is None or self.expires_at > now


class ApplicationProfile(BaseModel):
    """Household and housing data supplied by the applicant."""
    contact_code: str = Field(..., description="Contact code the profile belongs to")
    num_adults: int = Field(default=1, ge=0)
    num_children: int = Field(default=0, ge=0)
    housing_type: Optional[HousingType] = None
    housing_reference: HousingReference = Field(default_factory=HousingReference)
    expires_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    def is_valid_at(self, now: datetime) -> bool:
        return self.expires_at is None or self.expires_at > now
