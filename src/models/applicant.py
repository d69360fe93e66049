"""Applicant models."""

from enum import Enum
from typing import Optional
from datetime import datetime
from pydantic import BaseModel, Field


class ApplicantStatus(str, Enum):
    """Applicant status values relevant to offering."""
    ACTIVE = "ACTIVE"
    OFFERED = "OFFERED"
    ASSIGNED = "ASSIGNED"
    OFFER_DECLINED = "OFFER_DECLINED"
    OFFER_EXPIRED = "OFFER_EXPIRED"
    DENIED = "DENIED"
    WITHDRAWN_BY_USER = "WITHDRAWN_BY_USER"
    WITHDRAWN_BY_MANAGER = "WITHDRAWN_BY_MANAGER"


class ApplicationType(str, Enum):
    """Kind of application."""
    ORDINARY = "ORDINARY"
    ADDITIONAL = "ADDITIONAL"
    REPLACE = "REPLACE"


class HousingLeaseStatus(str, Enum):
    """Status of the applicant's current housing lease."""
    CURRENT = "CURRENT"
    UPCOMING = "UPCOMING"
    ABOUT_TO_END = "ABOUT_TO_END"
    ENDED = "ENDED"


class Applicant(BaseModel):
    """One person's application to one listing."""
    id: int = Field(..., description="Applicant ID")
    listing_id: int = Field(..., description="Owning listing ID")
    contact_code: str = Field(..., description="Contact code in the tenant registry")
    name: Optional[str] = Field(None, description="Applicant name")
    national_registration_number: Optional[str] = Field(
        None,
        description="Personal identity number, missing for some applicant types"
    )
    application_date: datetime = Field(..., description="When the application was made")
    application_type: ApplicationType = Field(default=ApplicationType.ORDINARY)
    status: ApplicantStatus = Field(default=ApplicantStatus.ACTIVE)

    # Ranking inputs supplied by the detailed applicant projection
    queue_points: int = Field(default=0, ge=0, description="Accumulated waiting time credit")
    address: Optional[str] = Field(None, description="Current address")
    has_parking_space: bool = Field(default=False)
    housing_lease_status: Optional[HousingLeaseStatus] = None
    priority: Optional[int] = Field(
        None,
        ge=1,
        description="Priority tier, lower is better, null ranks last"
    )
