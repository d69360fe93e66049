"""Tests for offer and applicant state machines."""

import pytest
from datetime import timedelta
from src.models.applicant import ApplicantStatus
from src.models.offer import Offer, OfferStatus
from src.services.offer_state import (
    check_applicant_transition,
    check_offer_transition,
    ensure_can_be_offered,
    ensure_can_respond,
    is_response_window_open,
    offer_deadline,
)
from src.utils.errors import InvalidStateError
from tests.utils.factories import NOW, create_applicant


def make_offer(status=OfferStatus.PENDING) -> Offer:
    return Offer(id=1, listing_id=10, applicant_id=100, sent_at=NOW, expires_at=NOW + timedelta(hours=72), status=status)


@pytest.mark.unit
@pytest.mark.parametrize("target", [OfferStatus.ACCEPTED, OfferStatus.DECLINED, OfferStatus.EXPIRED])
def test_pending_offer_can_close(target):
    """Test every terminal status is reachable from PENDING."""
    check_offer_transition(OfferStatus.PENDING, target)


@pytest.mark.unit
@pytest.mark.parametrize("current", [OfferStatus.ACCEPTED, OfferStatus.DECLINED, OfferStatus.EXPIRED])
def test_terminal_offer_cannot_move(current):
    """Test terminal offer statuses are final."""
    for target in OfferStatus:
        with pytest.raises(InvalidStateError):
            check_offer_transition(current, target)


@pytest.mark.unit
def test_applicant_transitions():
    """Test allowed and refused applicant transitions."""
    check_applicant_transition(ApplicantStatus.ACTIVE, ApplicantStatus.OFFERED)
    check_applicant_transition(ApplicantStatus.OFFERED, ApplicantStatus.ASSIGNED)
    check_applicant_transition(ApplicantStatus.OFFER_DECLINED, ApplicantStatus.ACTIVE)
    check_applicant_transition(ApplicantStatus.ACTIVE, ApplicantStatus.WITHDRAWN_BY_MANAGER)

    with pytest.raises(InvalidStateError):
        check_applicant_transition(ApplicantStatus.OFFERED, ApplicantStatus.WITHDRAWN_BY_USER)
    with pytest.raises(InvalidStateError):
        check_applicant_transition(ApplicantStatus.ASSIGNED, ApplicantStatus.ACTIVE)
    with pytest.raises(InvalidStateError):
        check_applicant_transition(ApplicantStatus.DENIED, ApplicantStatus.ACTIVE)


@pytest.mark.unit
def test_offer_deadline():
    """Test deadline is send time plus TTL."""
    assert offer_deadline(NOW, timedelta(hours=72)) == NOW + timedelta(days=3)


@pytest.mark.unit
def test_response_window_closes_after_deadline():
    """Test an answer exactly at the deadline still counts, one after does not."""
    offer = make_offer()

    assert is_response_window_open(offer, offer.expires_at)
    assert not is_response_window_open(offer, offer.expires_at + timedelta(microseconds=1))
    ensure_can_respond(offer, offer.expires_at)

    with pytest.raises(InvalidStateError):
        ensure_can_respond(offer, offer.expires_at + timedelta(seconds=1))


@pytest.mark.unit
def test_closed_offer_cannot_be_answered():
    """Test answering a closed offer is refused."""
    with pytest.raises(InvalidStateError):
        ensure_can_respond(make_offer(OfferStatus.DECLINED), NOW)


@pytest.mark.unit
def test_ensure_can_be_offered():
    """Test only ACTIVE applicants can be offered."""
    ensure_can_be_offered(create_applicant(10))

    with pytest.raises(InvalidStateError):
        ensure_can_be_offered(create_applicant(10, status=ApplicantStatus.OFFERED))
