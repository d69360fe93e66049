"""Eligibility filter - decide which applicants enter a ranking round."""

from datetime import datetime
from typing import Iterable, Mapping, Optional, Protocol

from src.models.applicant import Applicant, ApplicantStatus
from src.models.application_profile import ApplicationProfile, HousingReference
from src.models.listing import WaitingListType
from src.services.supabase_client import SupabaseClient
from src.utils.errors import EligibilityDataUnavailable
from src.utils.logging import get_structured_logger, mask_contact_code, timed

logger = get_structured_logger(__name__)


class EligibilityProvider(Protocol):
    """Source of application profiles, read-only for the engine."""

    async def get_profiles(self, contact_codes: Iterable[str]) -> dict[str, ApplicationProfile]:
        ...


def is_eligible(
    applicant: Applicant,
    profile: Optional[ApplicationProfile],
    waiting_list_type: WaitingListType,
    now: datetime,
) -> bool:
    """Check a single applicant against status and housing profile rules."""
    if applicant.status != ApplicantStatus.ACTIVE:
        return False

    if not waiting_list_type.requires_housing_profile:
        return True

    if profile is None or not profile.is_valid_at(now):
        return False

    return profile.housing_reference.is_approved_at(now)


def filter_eligible(
    applicants: Iterable[Applicant],
    profiles: Mapping[str, ApplicationProfile],
    waiting_list_type: WaitingListType,
    now: datetime,
) -> list[Applicant]:
    """Return the eligible subset, preserving input order."""
    eligible = []
    for applicant in applicants:
        if is_eligible(applicant, profiles.get(applicant.contact_code), waiting_list_type, now):
            eligible.append(applicant)
        else:
            logger.debug(
                "Applicant excluded from pool",
                applicant_id=applicant.id,
                listing_id=applicant.listing_id,
                contact_code=mask_contact_code(applicant.contact_code),
                applicant_status=applicant.status.value,
            )
    return eligible


class SupabaseEligibilityProvider:
    """Reads application profiles and housing references from Supabase."""

    @timed("load_application_profiles")
    async def get_profiles(self, contact_codes: Iterable[str]) -> dict[str, ApplicationProfile]:
        codes = sorted(set(contact_codes))
        if not codes:
            return {}

        try:
            async with SupabaseClient() as client:
                result = (
                    client.table("application_profile")
                    .select("*, application_profile_housing_reference(*)")
                    .in_("contact_code", codes)
                    .execute()
                )
        except Exception as e:
            logger.error(
                "Failed to load application profiles",
                contact_code_count=len(codes),
                error=str(e),
            )
            raise EligibilityDataUnavailable(f"Failed to load application profiles: {e}") from e

        profiles = {}
        for row in result.data or []:
            profile = _profile_from_row(row)
            profiles[profile.contact_code] = profile
        return profiles


def _profile_from_row(row: dict) -> ApplicationProfile:
    reference_row = row.get("application_profile_housing_reference") or {}
    # one-to-one embeds come back as a list from some PostgREST versions
    if isinstance(reference_row, list):
        reference_row = reference_row[0] if reference_row else {}

    reference = HousingReference(
        review_status=reference_row.get("review_status", "PENDING"),
        reviewed_at=reference_row.get("reviewed_at"),
        expires_at=reference_row.get("expires_at"),
    )
    return ApplicationProfile(
        contact_code=row["contact_code"],
        num_adults=row.get("num_adults", 1),
        num_children=row.get("num_children", 0),
        housing_type=row.get("housing_type"),
        housing_reference=reference,
        expires_at=row.get("expires_at"),
        created_at=row.get("created_at"),
    )
