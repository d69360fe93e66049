"""Persistence for listings, applicants, offers and snapshots on Supabase.

Reads go through PostgREST table queries. Every multi-row write is a single RPC
call into a PL/pgSQL function (see supabase/migrations), so it runs in one
Postgres transaction and the partial unique indexes decide concurrent races.
"""

from datetime import datetime
from typing import Iterable, Optional

from postgrest.exceptions import APIError

from src.models.applicant import Applicant, ApplicantStatus, HousingLeaseStatus
from src.models.listing import Listing, ListingStatus
from src.models.offer import (
    Offer,
    OfferApplicant,
    OfferClosure,
    OfferDraft,
    OfferResponse,
    OfferStatus,
    SnapshotEntry,
)
from src.models.status_codes import decode_status, encode_status
from src.services.supabase_client import SupabaseClient, translate_api_error
from src.utils.logging import get_structured_logger

logger = get_structured_logger(__name__)


# Row mapping helpers
def listing_from_row(row: dict) -> Listing:
    return Listing(
        id=row["id"],
        rental_object_code=row["rental_object_code"],
        monthly_rent=row.get("monthly_rent"),
        published_from=row["published_from"],
        published_to=row["published_to"],
        vacant_from=row.get("vacant_from"),
        status=decode_status(ListingStatus, row["status"]),
        waiting_list_type=row["waiting_list_type"],
    )


def applicant_from_row(row: dict) -> Applicant:
    lease_status = row.get("housing_lease_status")
    return Applicant(
        id=row["id"],
        listing_id=row["listing_id"],
        contact_code=row["contact_code"],
        name=row.get("name"),
        national_registration_number=row.get("national_registration_number"),
        application_date=row["application_date"],
        application_type=row["application_type"],
        status=decode_status(ApplicantStatus, row["status"]),
        queue_points=row.get("queue_points") or 0,
        address=row.get("address"),
        has_parking_space=bool(row.get("has_parking_space")),
        housing_lease_status=(
            decode_status(HousingLeaseStatus, lease_status) if lease_status is not None else None
        ),
        priority=row.get("priority"),
    )


def offer_from_row(row: dict) -> Offer:
    return Offer(
        id=row["id"],
        listing_id=row["listing_id"],
        applicant_id=row["applicant_id"],
        sent_at=row["sent_at"],
        expires_at=row["expires_at"],
        answered_at=row.get("answered_at"),
        status=decode_status(OfferStatus, row["status"]),
    )


def offer_applicant_from_row(row: dict) -> OfferApplicant:
    lease_status = row.get("housing_lease_status")
    return OfferApplicant(
        id=row["id"],
        offer_id=row["offer_id"],
        listing_id=row["listing_id"],
        applicant_id=row["applicant_id"],
        applicant_status=decode_status(ApplicantStatus, row["applicant_status"]),
        application_type=row["application_type"],
        application_date=row["application_date"],
        queue_points=row["queue_points"],
        address=row.get("address"),
        has_parking_space=bool(row.get("has_parking_space")),
        housing_lease_status=(
            decode_status(HousingLeaseStatus, lease_status) if lease_status is not None else None
        ),
        priority=row.get("priority"),
        sort_order=row["sort_order"],
        created_at=row.get("created_at"),
    )


def snapshot_entry_to_row(entry: SnapshotEntry) -> dict:
    return {
        "listing_id": entry.listing_id,
        "applicant_id": entry.applicant_id,
        "applicant_status": encode_status(entry.applicant_status),
        "application_type": entry.application_type.value,
        "application_date": entry.application_date.isoformat(),
        "queue_points": entry.queue_points,
        "address": entry.address,
        "has_parking_space": entry.has_parking_space,
        "housing_lease_status": (
            encode_status(entry.housing_lease_status) if entry.housing_lease_status else None
        ),
        "priority": entry.priority,
        "sort_order": entry.sort_order,
    }


def offer_draft_to_params(draft: OfferDraft) -> dict:
    return {
        "listing_id": draft.listing_id,
        "applicant_id": draft.applicant_id,
        "sent_at": draft.sent_at.isoformat(),
        "expires_at": draft.expires_at.isoformat(),
        "snapshot": [snapshot_entry_to_row(entry) for entry in draft.snapshot],
    }


class SupabaseOfferStore:
    """Offer engine tables on Supabase."""

    def __init__(self, client=None):
        self._client = client

    def _session(self) -> SupabaseClient:
        return SupabaseClient(self._client)

    async def _select(self, operation: str, build):
        async with self._session() as client:
            try:
                result = build(client).execute()
            except APIError as e:
                raise translate_api_error(e, operation) from e
            return result.data or []

    async def get_listing(self, listing_id: int) -> Optional[Listing]:
        rows = await self._select(
            "get listing",
            lambda c: c.table("listing").select("*").eq("id", listing_id),
        )
        return listing_from_row(rows[0]) if rows else None

    async def get_applicants(self, listing_id: int) -> list[Applicant]:
        rows = await self._select(
            "get applicants",
            lambda c: c.table("applicant").select("*").eq("listing_id", listing_id),
        )
        return [applicant_from_row(row) for row in rows]

    async def get_applicant(self, applicant_id: int) -> Optional[Applicant]:
        rows = await self._select(
            "get applicant",
            lambda c: c.table("applicant").select("*").eq("id", applicant_id),
        )
        return applicant_from_row(rows[0]) if rows else None

    async def get_offer(self, offer_id: int) -> Optional[Offer]:
        rows = await self._select(
            "get offer",
            lambda c: c.table("offer").select("*").eq("id", offer_id),
        )
        return offer_from_row(rows[0]) if rows else None

    async def get_pending_offer(self, listing_id: int) -> Optional[Offer]:
        rows = await self._select(
            "get pending offer",
            lambda c: (
                c.table("offer")
                .select("*")
                .eq("listing_id", listing_id)
                .eq("status", encode_status(OfferStatus.PENDING))
            ),
        )
        return offer_from_row(rows[0]) if rows else None

    async def get_latest_offer(self, listing_id: int) -> Optional[Offer]:
        """Most recently opened offer of a listing, whatever its status."""
        rows = await self._select(
            "get latest offer",
            lambda c: (
                c.table("offer")
                .select("*")
                .eq("listing_id", listing_id)
                .order("id", desc=True)
                .limit(1)
            ),
        )
        return offer_from_row(rows[0]) if rows else None

    async def get_snapshot(self, offer_id: int) -> list[OfferApplicant]:
        rows = await self._select(
            "get offer snapshot",
            lambda c: c.table("offer_applicant").select("*").eq("offer_id", offer_id).order("sort_order"),
        )
        return [offer_applicant_from_row(row) for row in rows]

    async def get_expired_pending_offers(self, now: datetime, limit: int = 100) -> list[Offer]:
        rows = await self._select(
            "get expired offers",
            lambda c: (
                c.table("offer")
                .select("*")
                .eq("status", encode_status(OfferStatus.PENDING))
                .lte("expires_at", now.isoformat())
                .order("expires_at")
                .limit(limit)
            ),
        )
        return [offer_from_row(row) for row in rows]

    async def get_listings_past_publication(self, now: datetime) -> list[Listing]:
        rows = await self._select(
            "get listings past publication",
            lambda c: (
                c.table("listing")
                .select("*")
                .eq("status", encode_status(ListingStatus.ACTIVE))
                .lt("published_to", now.isoformat())
            ),
        )
        return [listing_from_row(row) for row in rows]

    async def open_offer(self, draft: OfferDraft) -> Offer:
        """Insert offer and snapshot and mark the applicant offered, atomically."""
        rows = await self._select(
            "open offer",
            lambda c: c.rpc("open_offer", {"draft": offer_draft_to_params(draft)}),
        )
        row = rows[0] if isinstance(rows, list) else rows
        offer = offer_from_row(row)
        logger.debug("Offer row inserted", offer_id=offer.id, listing_id=offer.listing_id)
        return offer

    async def close_offer(self, closure: OfferClosure) -> Optional[OfferResponse]:
        """
        Close a pending offer and optionally open the follow-up offer.

        Returns None when the offer was no longer pending at write time.
        """
        params = {
            "offer_id": closure.offer_id,
            "offer_status": encode_status(closure.offer_status),
            "applicant_status": encode_status(closure.applicant_status),
            "answered_at": closure.answered_at.isoformat(),
            "listing_status": (
                encode_status(closure.listing_status) if closure.listing_status else None
            ),
            "next_offer": (
                offer_draft_to_params(closure.next_offer) if closure.next_offer else None
            ),
        }
        data = await self._select(
            "close offer",
            lambda c: c.rpc("close_offer", {"closure": params}),
        )
        if isinstance(data, list):
            data = data[0] if data else None
        if not data:
            return None
        next_row = data.get("next_offer")
        return OfferResponse(
            offer=offer_from_row(data["offer"]),
            next_offer=offer_from_row(next_row) if next_row else None,
        )

    async def set_applicant_status(
        self,
        applicant_id: int,
        expected: Iterable[ApplicantStatus],
        target: ApplicantStatus,
    ) -> Optional[Applicant]:
        """Compare-and-set an applicant status. None when the current status was not expected."""
        expected_codes = [encode_status(status) for status in expected]
        rows = await self._select(
            "update applicant status",
            lambda c: (
                c.table("applicant")
                .update({"status": encode_status(target)})
                .eq("id", applicant_id)
                .in_("status", expected_codes)
            ),
        )
        return applicant_from_row(rows[0]) if rows else None

    async def close_listing(self, listing_id: int) -> Optional[Listing]:
        """Close an ACTIVE or EXPIRED listing without a pending offer. None when refused."""
        data = await self._select(
            "close listing",
            lambda c: c.rpc("close_listing", {"target_listing_id": listing_id}),
        )
        if isinstance(data, list):
            data = data[0] if data else None
        return listing_from_row(data) if data else None

    async def set_listing_status(
        self,
        listing_id: int,
        expected: Iterable[ListingStatus],
        target: ListingStatus,
    ) -> Optional[Listing]:
        """Compare-and-set a listing status. None when the current status was not expected."""
        expected_codes = [encode_status(status) for status in expected]
        rows = await self._select(
            "update listing status",
            lambda c: (
                c.table("listing")
                .update({"status": encode_status(target)})
                .eq("id", listing_id)
                .in_("status", expected_codes)
            ),
        )
        return listing_from_row(rows[0]) if rows else None
