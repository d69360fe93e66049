"""Allocation orchestrator - offer rounds, responses and cascading to the next applicant."""

from datetime import datetime, timezone
from typing import Callable, Iterable, Optional

from src.models.applicant import Applicant, ApplicantStatus
from src.models.application_profile import ApplicationProfile
from src.models.events import OfferEventType
from src.models.listing import Listing, ListingStatus, OFFERABLE_LISTING_STATUSES
from src.models.offer import (
    Offer,
    OfferClosure,
    OfferDetails,
    OfferDraft,
    OfferOutcome,
    OfferResponse,
    OfferStatus,
)
from src.services.eligibility import EligibilityProvider, filter_eligible
from src.services.event_publisher import EventPublisher
from src.services.offer_state import (
    EXPIRY_STATUSES,
    OUTCOME_STATUSES,
    check_applicant_transition,
    check_offer_transition,
    ensure_can_be_offered,
    ensure_can_respond,
    offer_deadline,
)
from src.services.ranking import rank
from src.services.snapshot_store import SnapshotStore, build_snapshot, carry_forward, entries_after
from src.utils.engine_config import EngineConfig, get_engine_config
from src.utils.errors import (
    ConflictError,
    EligibilityDataUnavailable,
    EmptyPoolError,
    InvalidStateError,
    NotFoundError,
)
from src.utils.logging import correlation_context, get_structured_logger, log_timing, mask_contact_code

logger = get_structured_logger(__name__)

# Closing an offer and opening the next one can lose a race against a
# concurrent applicant update; the plan is rebuilt from fresh state this often.
MAX_CLOSE_ATTEMPTS = 3


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class AllocationOrchestrator:
    """
    Coordinates eligibility, ranking, snapshots and offers for listings.

    Every state change is one store write, which the store performs in a single
    database transaction. No state is kept on the instance between calls, so
    any number of orchestrators may run against the same database.
    """

    def __init__(
        self,
        store,
        eligibility_provider: EligibilityProvider,
        publisher: Optional[EventPublisher] = None,
        config: Optional[EngineConfig] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.store = store
        self.eligibility_provider = eligibility_provider
        self.publisher = publisher or EventPublisher()
        self.config = config or get_engine_config()
        self.clock = clock
        self.snapshots = SnapshotStore(store)

    async def start_offer_round(self, listing_id: int) -> Offer:
        """
        Rank the eligible pool and offer the listing to the top applicant.

        Raises EmptyPoolError when nobody is eligible and ConflictError (with
        the existing offer attached) when the listing already has a pending offer.
        """
        with correlation_context(prefix="round"), log_timing(
            "start_offer_round", logger=logger, listing_id=listing_id
        ):
            listing = await self._require_listing(listing_id)
            if listing.status not in OFFERABLE_LISTING_STATUSES:
                raise InvalidStateError(
                    f"Listing {listing_id} is {listing.status.value}, no offer round can start"
                )

            existing = await self.store.get_pending_offer(listing_id)
            if existing:
                raise ConflictError(
                    f"Listing {listing_id} already has pending offer {existing.id}",
                    existing_offer=existing,
                )

            now = self.clock()
            applicants = await self.store.get_applicants(listing_id)
            profiles = await self._load_profiles(listing, applicants)
            eligible = filter_eligible(applicants, profiles, listing.waiting_list_type, now)

            if not eligible:
                logger.info(
                    "No eligible applicants for listing",
                    listing_id=listing_id,
                    applicant_count=len(applicants),
                )
                raise EmptyPoolError(f"Listing {listing_id} has no eligible applicants")

            ranked = rank(eligible)
            ensure_can_be_offered(ranked[0].applicant)
            draft = OfferDraft(
                listing_id=listing_id,
                applicant_id=ranked[0].applicant.id,
                sent_at=now,
                expires_at=offer_deadline(now, self.config.offer_ttl),
                snapshot=build_snapshot(listing_id, ranked),
            )
            offer = await self._open_offer(draft)

            logger.info(
                "Offer round started",
                listing_id=listing_id,
                offer_id=offer.id,
                applicant_id=offer.applicant_id,
                pool_size=len(ranked),
                applicants_excluded=len(applicants) - len(ranked),
                expires_at=offer.expires_at.isoformat(),
            )
            await self.publisher.publish_offer(OfferEventType.OFFER_CREATED, offer)
            return offer

    async def respond_to_offer(self, offer_id: int, outcome: OfferOutcome) -> OfferResponse:
        """
        Record the applicant's answer.

        Accepting assigns the listing and ends the round. Declining moves on to
        the next eligible applicant of the same snapshot, if any.
        """
        outcome = OfferOutcome(outcome)
        with correlation_context(prefix="response"), log_timing(
            "respond_to_offer", logger=logger, offer_id=offer_id, outcome=outcome.value
        ):
            offer = await self._require_offer(offer_id)
            now = self.clock()
            ensure_can_respond(offer, now)

            offer_status, applicant_status = OUTCOME_STATUSES[outcome]
            if outcome == OfferOutcome.ACCEPTED:
                response = await self._close(
                    offer, offer_status, applicant_status, now,
                    listing_status=ListingStatus.ASSIGNED, advance=False,
                )
                logger.info(
                    "Offer accepted",
                    offer_id=offer.id,
                    listing_id=offer.listing_id,
                    applicant_id=offer.applicant_id,
                )
                await self.publisher.publish_offer(OfferEventType.OFFER_ACCEPTED, response.offer)
                return response

            response = await self._close(offer, offer_status, applicant_status, now, advance=True)
            logger.info(
                "Offer declined",
                offer_id=offer.id,
                listing_id=offer.listing_id,
                applicant_id=offer.applicant_id,
                next_offer_id=response.next_offer.id if response.next_offer else None,
            )
            await self._publish_closure(OfferEventType.OFFER_DECLINED, response)
            return response

    async def expire_offer(self, offer: Offer, now: Optional[datetime] = None) -> OfferResponse:
        """Close an offer whose deadline has passed and move on to the next applicant."""
        now = now or self.clock()
        if offer.status != OfferStatus.PENDING:
            raise InvalidStateError(f"Offer {offer.id} is {offer.status.value}, not PENDING")
        if offer.expires_at > now:
            raise InvalidStateError(f"Offer {offer.id} does not expire until {offer.expires_at.isoformat()}")

        offer_status, applicant_status = EXPIRY_STATUSES
        response = await self._close(offer, offer_status, applicant_status, now, advance=True)
        logger.info(
            "Offer expired",
            offer_id=offer.id,
            listing_id=offer.listing_id,
            applicant_id=offer.applicant_id,
            next_offer_id=response.next_offer.id if response.next_offer else None,
        )
        await self._publish_closure(OfferEventType.OFFER_EXPIRED, response)
        return response

    async def advance_to_next(self, listing_id: int, exhausted_offer_id: int) -> Optional[Offer]:
        """
        Open an offer for the next still-eligible applicant after an exhausted offer.

        Walks the exhausted offer's snapshot forward from its applicant without
        re-ranking. Returns None when no later entry is eligible.
        """
        with correlation_context(prefix="advance"):
            exhausted = await self._require_offer(exhausted_offer_id)
            if exhausted.listing_id != listing_id:
                raise InvalidStateError(
                    f"Offer {exhausted_offer_id} does not belong to listing {listing_id}"
                )
            if exhausted.status not in (OfferStatus.DECLINED, OfferStatus.EXPIRED):
                raise InvalidStateError(
                    f"Offer {exhausted_offer_id} is {exhausted.status.value}, nothing to advance from"
                )

            existing = await self.store.get_pending_offer(listing_id)
            if existing:
                raise ConflictError(
                    f"Listing {listing_id} already has pending offer {existing.id}",
                    existing_offer=existing,
                )

            # only the newest offer of the listing may be advanced from
            latest = await self.store.get_latest_offer(listing_id)
            if latest is not None and latest.id != exhausted.id:
                raise InvalidStateError(
                    f"Offer {exhausted_offer_id} is superseded by offer {latest.id} on listing {listing_id}"
                )

            draft = await self._plan_next_offer(exhausted, self.clock())
            if draft is None:
                logger.info(
                    "Snapshot exhausted, listing left unfilled",
                    listing_id=listing_id,
                    exhausted_offer_id=exhausted_offer_id,
                )
                return None

            offer = await self._open_offer(draft)
            logger.info(
                "Advanced to next applicant",
                listing_id=listing_id,
                exhausted_offer_id=exhausted_offer_id,
                offer_id=offer.id,
                applicant_id=offer.applicant_id,
            )
            await self.publisher.publish_offer(OfferEventType.OFFER_CREATED, offer)
            return offer

    async def get_offer_details(self, offer_id: int) -> OfferDetails:
        offer = await self._require_offer(offer_id)
        snapshot = await self.snapshots.get_snapshot(offer_id)
        return OfferDetails(offer=offer, snapshot=snapshot)

    async def readmit_applicant(self, applicant_id: int) -> Applicant:
        """Make an applicant whose offer was declined or expired eligible for a fresh round."""
        return await self._set_applicant_status(applicant_id, ApplicantStatus.ACTIVE)

    async def withdraw_applicant(self, applicant_id: int, by_manager: bool = False) -> Applicant:
        target = ApplicantStatus.WITHDRAWN_BY_MANAGER if by_manager else ApplicantStatus.WITHDRAWN_BY_USER
        return await self._set_applicant_status(applicant_id, target)

    async def deny_applicant(self, applicant_id: int) -> Applicant:
        return await self._set_applicant_status(applicant_id, ApplicantStatus.DENIED)

    async def close_listing(self, listing_id: int) -> Listing:
        """Close an unfilled listing. Refused while an offer is pending."""
        listing = await self._require_listing(listing_id)
        if listing.status not in OFFERABLE_LISTING_STATUSES:
            raise InvalidStateError(f"Listing {listing_id} is {listing.status.value} and can not be closed")

        closed = await self.store.close_listing(listing_id)
        if closed is None:
            raise InvalidStateError(f"Listing {listing_id} has a pending offer or changed concurrently")

        logger.info("Listing closed", listing_id=listing_id, previous_status=listing.status.value)
        return closed

    # Internal helpers
    async def _require_listing(self, listing_id: int) -> Listing:
        listing = await self.store.get_listing(listing_id)
        if listing is None:
            raise NotFoundError(f"Listing {listing_id} not found")
        return listing

    async def _require_offer(self, offer_id: int) -> Offer:
        offer = await self.store.get_offer(offer_id)
        if offer is None:
            raise NotFoundError(f"Offer {offer_id} not found")
        return offer

    async def _load_profiles(
        self, listing: Listing, applicants: Iterable[Applicant]
    ) -> dict[str, ApplicationProfile]:
        """Fetch profiles for active applicants when the waiting list needs them."""
        if not listing.waiting_list_type.requires_housing_profile:
            return {}

        contact_codes = [a.contact_code for a in applicants if a.status == ApplicantStatus.ACTIVE]
        if not contact_codes:
            return {}

        try:
            return await self.eligibility_provider.get_profiles(contact_codes)
        except EligibilityDataUnavailable:
            raise
        except Exception as e:
            raise EligibilityDataUnavailable(
                f"Application profiles unavailable for listing {listing.id}: {e}"
            ) from e

    async def _open_offer(self, draft: OfferDraft) -> Offer:
        try:
            return await self.store.open_offer(draft)
        except ConflictError as e:
            existing = await self.store.get_pending_offer(draft.listing_id)
            logger.warning(
                "Concurrent offer creation detected",
                listing_id=draft.listing_id,
                applicant_id=draft.applicant_id,
                existing_offer_id=existing.id if existing else None,
            )
            raise ConflictError(
                f"Listing {draft.listing_id} already has a pending offer",
                existing_offer=existing,
            ) from e

    async def _plan_next_offer(self, exhausted: Offer, now: datetime) -> Optional[OfferDraft]:
        """Pick the next snapshot entry whose applicant is eligible right now."""
        snapshot = await self.snapshots.get_snapshot(exhausted.id)
        remaining = entries_after(snapshot, exhausted.applicant_id)
        if not remaining:
            return None

        listing = await self._require_listing(exhausted.listing_id)
        if listing.status not in OFFERABLE_LISTING_STATUSES:
            return None

        current = {a.id: a for a in await self.store.get_applicants(exhausted.listing_id)}
        candidates = [current[e.applicant_id] for e in remaining if e.applicant_id in current]
        profiles = await self._load_profiles(listing, candidates)
        eligible_ids = {
            a.id for a in filter_eligible(candidates, profiles, listing.waiting_list_type, now)
        }

        for entry in remaining:
            if entry.applicant_id in eligible_ids:
                return OfferDraft(
                    listing_id=exhausted.listing_id,
                    applicant_id=entry.applicant_id,
                    sent_at=now,
                    expires_at=offer_deadline(now, self.config.offer_ttl),
                    snapshot=carry_forward(snapshot),
                )
            logger.debug(
                "Skipping snapshot entry no longer eligible",
                listing_id=exhausted.listing_id,
                applicant_id=entry.applicant_id,
                sort_order=entry.sort_order,
            )
        return None

    async def _close(
        self,
        offer: Offer,
        offer_status: OfferStatus,
        applicant_status: ApplicantStatus,
        now: datetime,
        listing_status: Optional[ListingStatus] = None,
        advance: bool = False,
    ) -> OfferResponse:
        check_offer_transition(offer.status, offer_status)
        for attempt in range(1, MAX_CLOSE_ATTEMPTS + 1):
            next_offer = await self._plan_next_offer(offer, now) if advance else None
            closure = OfferClosure(
                offer_id=offer.id,
                offer_status=offer_status,
                applicant_status=applicant_status,
                answered_at=now,
                listing_status=listing_status,
                next_offer=next_offer,
            )
            try:
                response = await self.store.close_offer(closure)
            except (ConflictError, InvalidStateError) as e:
                if next_offer is None or attempt == MAX_CLOSE_ATTEMPTS:
                    raise
                logger.warning(
                    "Next offer could not be opened, replanning",
                    offer_id=offer.id,
                    planned_applicant_id=next_offer.applicant_id,
                    attempt=attempt,
                    error=str(e),
                )
                continue

            if response is None:
                raise InvalidStateError(f"Offer {offer.id} is no longer pending")
            return response

    async def _publish_closure(self, event_type: OfferEventType, response: OfferResponse) -> None:
        await self.publisher.publish_offer(event_type, response.offer)
        if response.next_offer:
            await self.publisher.publish_offer(OfferEventType.OFFER_CREATED, response.next_offer)

    async def _set_applicant_status(self, applicant_id: int, target: ApplicantStatus) -> Applicant:
        applicant = await self.store.get_applicant(applicant_id)
        if applicant is None:
            raise NotFoundError(f"Applicant {applicant_id} not found")

        check_applicant_transition(applicant.status, target)
        updated = await self.store.set_applicant_status(applicant_id, [applicant.status], target)
        if updated is None:
            raise InvalidStateError(f"Applicant {applicant_id} changed concurrently")

        logger.info(
            "Applicant status changed",
            applicant_id=applicant_id,
            contact_code=mask_contact_code(applicant.contact_code),
            listing_id=applicant.listing_id,
            previous_status=applicant.status.value,
            status=target.value,
        )
        return updated
