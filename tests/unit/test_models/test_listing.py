"""Tests for Listing model."""

import pytest
from datetime import timedelta
from pydantic import ValidationError
from src.models.listing import Listing, ListingStatus, WaitingListType, OFFERABLE_LISTING_STATUSES
from tests.utils.factories import NOW


@pytest.mark.unit
def test_listing_valid():
    """Test valid listing creation."""
    listing = Listing(
        id=1,
        rental_object_code="705-025-03-0205",
        monthly_rent=8500.0,
        published_from=NOW,
        published_to=NOW + timedelta(days=14),
        waiting_list_type=WaitingListType.HOUSING,
    )

    assert listing.status == ListingStatus.ACTIVE  # Default value
    assert listing.vacant_from is None


@pytest.mark.unit
def test_listing_inverted_publication_window():
    """Test that published_to before published_from is rejected."""
    with pytest.raises(ValueError):
        Listing(
            id=1,
            rental_object_code="705-025-03-0205",
            published_from=NOW,
            published_to=NOW - timedelta(seconds=1),
            waiting_list_type=WaitingListType.STORAGE,
        )


@pytest.mark.unit
def test_listing_invalid_waiting_list_type():
    """Test that unknown waiting list types are rejected."""
    with pytest.raises(ValidationError):
        Listing(
            id=1,
            rental_object_code="705-025-03-0205",
            published_from=NOW,
            published_to=NOW,
            waiting_list_type="BOAT",
        )


@pytest.mark.unit
def test_only_housing_requires_profile():
    """Test which waiting lists check application profiles."""
    assert WaitingListType.HOUSING.requires_housing_profile
    assert not WaitingListType.PARKING_SPACE_INTERNAL.requires_housing_profile
    assert not WaitingListType.PARKING_SPACE_EXTERNAL.requires_housing_profile
    assert not WaitingListType.STORAGE.requires_housing_profile


@pytest.mark.unit
def test_offerable_statuses():
    """Test that only ACTIVE and EXPIRED listings accept offers."""
    assert OFFERABLE_LISTING_STATUSES == {ListingStatus.ACTIVE, ListingStatus.EXPIRED}
