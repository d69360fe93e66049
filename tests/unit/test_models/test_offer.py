"""Tests for Offer and snapshot models."""

import pytest
from datetime import timedelta
from freezegun import freeze_time
from pydantic import ValidationError
from src.models.applicant import ApplicantStatus, ApplicationType
from src.models.events import OfferEvent, OfferEventType
from src.models.offer import Offer, OfferClosure, OfferDraft, OfferStatus, SnapshotEntry
from tests.utils.factories import NOW


def make_entry(**overrides) -> SnapshotEntry:
    data = {
        "listing_id": 10,
        "applicant_id": 100,
        "applicant_status": ApplicantStatus.ACTIVE,
        "application_type": ApplicationType.ORDINARY,
        "application_date": NOW,
        "queue_points": 12,
        "sort_order": 0,
    }
    data.update(overrides)
    return SnapshotEntry(**data)


@pytest.mark.unit
def test_offer_defaults():
    """Test a new offer is pending and unanswered."""
    offer = Offer(id=1, listing_id=10, applicant_id=100, sent_at=NOW, expires_at=NOW + timedelta(hours=72))

    assert offer.status == OfferStatus.PENDING
    assert offer.answered_at is None


@pytest.mark.unit
def test_offer_deadline_before_send_time():
    """Test that expires_at before sent_at is rejected."""
    with pytest.raises(ValueError):
        Offer(id=1, listing_id=10, applicant_id=100, sent_at=NOW, expires_at=NOW - timedelta(seconds=1))


@pytest.mark.unit
def test_snapshot_entry_is_immutable():
    """Test that snapshot entries cannot be changed after creation."""
    entry = make_entry()

    with pytest.raises(ValidationError):
        entry.queue_points = 99


@pytest.mark.unit
def test_snapshot_entry_negative_sort_order():
    """Test that sort order is zero-based."""
    with pytest.raises(ValidationError):
        make_entry(sort_order=-1)


@pytest.mark.unit
def test_offer_draft_requires_snapshot():
    """Test that an offer cannot be opened without a snapshot."""
    with pytest.raises(ValidationError):
        OfferDraft(listing_id=10, applicant_id=100, sent_at=NOW, expires_at=NOW, snapshot=[])


@pytest.mark.unit
def test_offer_closure_must_be_terminal():
    """Test that closing an offer to PENDING is rejected."""
    with pytest.raises(ValueError):
        OfferClosure(
            offer_id=1,
            offer_status=OfferStatus.PENDING,
            applicant_status=ApplicantStatus.OFFER_DECLINED,
            answered_at=NOW,
        )


@pytest.mark.unit
def test_offer_event_defaults():
    """Test event id and timestamp are generated."""
    first = OfferEvent(event_type=OfferEventType.OFFER_CREATED, offer_id=1, listing_id=10, applicant_id=100)
    second = OfferEvent(event_type=OfferEventType.OFFER_CREATED, offer_id=1, listing_id=10, applicant_id=100)

    assert len(first.event_id) == 26  # ULID length
    assert first.event_id != second.event_id
    assert first.occurred_at.tzinfo is not None


@pytest.mark.unit
@freeze_time("2024-12-09 12:00:00")
def test_offer_event_timestamp_is_utc_now():
    """Test events are stamped with the current UTC time."""
    event = OfferEvent(event_type=OfferEventType.OFFER_DECLINED, offer_id=1, listing_id=10, applicant_id=100)

    assert event.occurred_at == NOW
