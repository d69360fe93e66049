"""Stable integer codes for persisted status columns.

The database and external consumers see integers, the engine sees enums. The
codes below are a published contract: never renumber an existing entry. Retired
codes stay reserved (applicant 3 and 7). Bump STATUS_CODE_TABLE_VERSION when an
entry is added.
"""

from enum import Enum
from typing import Dict, Type, TypeVar

from src.models.applicant import ApplicantStatus, HousingLeaseStatus
from src.models.listing import ListingStatus
from src.models.offer import OfferStatus

STATUS_CODE_TABLE_VERSION = 1

E = TypeVar("E", bound=Enum)

LISTING_STATUS_CODES: Dict[ListingStatus, int] = {
    ListingStatus.ACTIVE: 1,
    ListingStatus.ASSIGNED: 2,
    ListingStatus.CLOSED: 3,
    ListingStatus.EXPIRED: 4,
}

APPLICANT_STATUS_CODES: Dict[ApplicantStatus, int] = {
    ApplicantStatus.ACTIVE: 1,
    ApplicantStatus.ASSIGNED: 2,
    ApplicantStatus.WITHDRAWN_BY_USER: 4,
    ApplicantStatus.WITHDRAWN_BY_MANAGER: 5,
    ApplicantStatus.OFFERED: 6,
    ApplicantStatus.OFFER_DECLINED: 8,
    ApplicantStatus.OFFER_EXPIRED: 9,
    ApplicantStatus.DENIED: 10,
}

OFFER_STATUS_CODES: Dict[OfferStatus, int] = {
    OfferStatus.PENDING: 0,
    OfferStatus.ACCEPTED: 1,
    OfferStatus.DECLINED: 2,
    OfferStatus.EXPIRED: 3,
}

HOUSING_LEASE_STATUS_CODES: Dict[HousingLeaseStatus, int] = {
    HousingLeaseStatus.CURRENT: 0,
    HousingLeaseStatus.UPCOMING: 1,
    HousingLeaseStatus.ABOUT_TO_END: 2,
    HousingLeaseStatus.ENDED: 3,
}

_TABLES: Dict[Type[Enum], Dict] = {
    ListingStatus: LISTING_STATUS_CODES,
    ApplicantStatus: APPLICANT_STATUS_CODES,
    OfferStatus: OFFER_STATUS_CODES,
    HousingLeaseStatus: HOUSING_LEASE_STATUS_CODES,
}

_REVERSE: Dict[Type[Enum], Dict[int, Enum]] = {
    enum_type: {code: member for member, code in table.items()}
    for enum_type, table in _TABLES.items()
}


def encode_status(value: Enum) -> int:
    """Map an enum member to its persisted code."""
    return _TABLES[type(value)][value]


def decode_status(enum_type: Type[E], code: int) -> E:
    """Map a persisted code back to its enum member."""
    try:
        return _REVERSE[enum_type][int(code)]
    except (KeyError, TypeError, ValueError):
        raise ValueError(f"Unknown {enum_type.__name__} code: {code}") from None
