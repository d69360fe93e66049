"""Offer and applicant state machines."""

from datetime import datetime, timedelta

from src.models.applicant import Applicant, ApplicantStatus
from src.models.offer import Offer, OfferOutcome, OfferStatus
from src.utils.errors import InvalidStateError

OFFER_TRANSITIONS: dict[OfferStatus, frozenset[OfferStatus]] = {
    OfferStatus.PENDING: frozenset({OfferStatus.ACCEPTED, OfferStatus.DECLINED, OfferStatus.EXPIRED}),
    OfferStatus.ACCEPTED: frozenset(),
    OfferStatus.DECLINED: frozenset(),
    OfferStatus.EXPIRED: frozenset(),
}

_TERMINAL_APPLICANT = frozenset({
    ApplicantStatus.DENIED,
    ApplicantStatus.WITHDRAWN_BY_USER,
    ApplicantStatus.WITHDRAWN_BY_MANAGER,
})

APPLICANT_TRANSITIONS: dict[ApplicantStatus, frozenset[ApplicantStatus]] = {
    ApplicantStatus.ACTIVE: frozenset({ApplicantStatus.OFFERED}) | _TERMINAL_APPLICANT,
    ApplicantStatus.OFFERED: frozenset({
        ApplicantStatus.ASSIGNED,
        ApplicantStatus.OFFER_DECLINED,
        ApplicantStatus.OFFER_EXPIRED,
    }),
    ApplicantStatus.OFFER_DECLINED: frozenset({ApplicantStatus.ACTIVE}) | _TERMINAL_APPLICANT,
    ApplicantStatus.OFFER_EXPIRED: frozenset({ApplicantStatus.ACTIVE}) | _TERMINAL_APPLICANT,
    ApplicantStatus.ASSIGNED: frozenset(),
    ApplicantStatus.DENIED: frozenset(),
    ApplicantStatus.WITHDRAWN_BY_USER: frozenset(),
    ApplicantStatus.WITHDRAWN_BY_MANAGER: frozenset(),
}

# Statuses each outcome moves the offer and the applicant to
OUTCOME_STATUSES: dict[OfferOutcome, tuple[OfferStatus, ApplicantStatus]] = {
    OfferOutcome.ACCEPTED: (OfferStatus.ACCEPTED, ApplicantStatus.ASSIGNED),
    OfferOutcome.DECLINED: (OfferStatus.DECLINED, ApplicantStatus.OFFER_DECLINED),
}
EXPIRY_STATUSES = (OfferStatus.EXPIRED, ApplicantStatus.OFFER_EXPIRED)


def check_offer_transition(current: OfferStatus, target: OfferStatus) -> None:
    if target not in OFFER_TRANSITIONS[current]:
        raise InvalidStateError(f"Offer cannot move from {current.value} to {target.value}")


def check_applicant_transition(current: ApplicantStatus, target: ApplicantStatus) -> None:
    if target not in APPLICANT_TRANSITIONS[current]:
        raise InvalidStateError(f"Applicant cannot move from {current.value} to {target.value}")


def offer_deadline(now: datetime, ttl: timedelta) -> datetime:
    """Expiry deadline for an offer created at now."""
    return now + ttl


def is_response_window_open(offer: Offer, now: datetime) -> bool:
    """An answer counts only while the offer is pending and not past its deadline."""
    return offer.status == OfferStatus.PENDING and now <= offer.expires_at


def ensure_can_respond(offer: Offer, now: datetime) -> None:
    """Raise InvalidStateError when an answer to the offer must be rejected."""
    if offer.status != OfferStatus.PENDING:
        raise InvalidStateError(f"Offer {offer.id} is {offer.status.value}, not PENDING")
    if not is_response_window_open(offer, now):
        raise InvalidStateError(f"Offer {offer.id} expired at {offer.expires_at.isoformat()}")


def ensure_can_be_offered(applicant: Applicant) -> None:
    check_applicant_transition(applicant.status, ApplicantStatus.OFFERED)
