"""Expiry sweeper - expire overdue offers and cascade to the next applicant."""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from src.models.listing import ListingStatus
from src.models.offer import Offer, OfferStatus
from src.services.allocation_orchestrator import AllocationOrchestrator, utc_now
from src.utils.errors import InvalidStateError
from src.utils.logging import correlation_context, get_structured_logger, log_timing

logger = get_structured_logger(__name__)


@dataclass
class SweepResult:
    """Outcome of one sweep cycle."""
    expired_offer_ids: list[int] = field(default_factory=list)
    next_offer_ids: list[int] = field(default_factory=list)
    skipped_offer_ids: list[int] = field(default_factory=list)
    failed_listing_ids: list[int] = field(default_factory=list)
    expired_listing_ids: list[int] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.expired_offer_ids or self.expired_listing_ids)


class ExpirySweeper:
    """Runs on a fixed interval, independent of request traffic."""

    def __init__(self, orchestrator: AllocationOrchestrator, interval_seconds: Optional[float] = None):
        self.orchestrator = orchestrator
        self.store = orchestrator.store
        self.interval_seconds = interval_seconds or orchestrator.config.sweep_interval_seconds
        self.batch_size = orchestrator.config.sweep_batch_size
        self._stopped = asyncio.Event()

    async def sweep(self, now: Optional[datetime] = None) -> SweepResult:
        """
        Expire every pending offer with expires_at <= now.

        A failure on one listing is logged and left for the next cycle; it
        never stops the rest of the sweep.
        """
        now = now or utc_now()
        result = SweepResult()

        with correlation_context(prefix="sweep"), log_timing("sweep", logger=logger):
            try:
                result.expired_listing_ids = await self.expire_listings(now)
            except Exception as e:
                logger.error(
                    "Listing expiry pass failed, retrying next cycle",
                    error=str(e),
                    exc_info=True,
                )

            overdue = await self.store.get_expired_pending_offers(now, limit=self.batch_size)
            for offer in overdue:
                try:
                    response = await self.orchestrator.expire_offer(offer, now)
                except InvalidStateError as e:
                    if await self._still_pending(offer):
                        result.failed_listing_ids.append(offer.listing_id)
                        logger.error(
                            "Failed to expire offer, retrying next cycle",
                            offer_id=offer.id,
                            listing_id=offer.listing_id,
                            error=str(e),
                            exc_info=True,
                        )
                    else:
                        # answered or expired by a concurrent sweeper since it was read
                        result.skipped_offer_ids.append(offer.id)
                        logger.info(
                            "Offer already closed, skipping",
                            offer_id=offer.id,
                            listing_id=offer.listing_id,
                            reason=str(e),
                        )
                    continue
                except Exception as e:
                    result.failed_listing_ids.append(offer.listing_id)
                    logger.error(
                        "Failed to expire offer, retrying next cycle",
                        offer_id=offer.id,
                        listing_id=offer.listing_id,
                        error=str(e),
                        exc_info=True,
                    )
                    continue

                result.expired_offer_ids.append(offer.id)
                if response.next_offer:
                    result.next_offer_ids.append(response.next_offer.id)

            logger.info(
                "Sweep completed",
                offers_expired=len(result.expired_offer_ids),
                offers_issued=len(result.next_offer_ids),
                offers_skipped=len(result.skipped_offer_ids),
                listings_failed=len(result.failed_listing_ids),
                listings_expired=len(result.expired_listing_ids),
            )
        return result

    async def expire_listings(self, now: datetime) -> list[int]:
        """Move ACTIVE listings past their publication window to EXPIRED."""
        expired = []
        for listing in await self.store.get_listings_past_publication(now):
            try:
                updated = await self.store.set_listing_status(
                    listing.id, [ListingStatus.ACTIVE], ListingStatus.EXPIRED
                )
            except Exception as e:
                logger.error(
                    "Failed to expire listing, retrying next cycle",
                    listing_id=listing.id,
                    error=str(e),
                    exc_info=True,
                )
                continue
            if updated is not None:
                expired.append(listing.id)
                logger.info(
                    "Listing publication ended",
                    listing_id=listing.id,
                    rental_object_code=listing.rental_object_code,
                    published_to=listing.published_to.isoformat(),
                )
        return expired

    async def _still_pending(self, offer: Offer) -> bool:
        """Re-read an offer whose expiry was refused. A failed read counts as pending."""
        try:
            current = await self.store.get_offer(offer.id)
        except Exception as e:
            logger.warning("Could not re-read offer", offer_id=offer.id, error=str(e))
            return True
        return current is not None and current.status == OfferStatus.PENDING

    async def run(self) -> None:
        """Sweep every interval until stop() is called."""
        logger.info("Expiry sweeper started", sweep_interval_seconds=self.interval_seconds)
        self._stopped.clear()
        while not self._stopped.is_set():
            try:
                await self.sweep()
            except Exception as e:
                logger.exception("Sweep cycle failed", error=str(e))

            try:
                await asyncio.wait_for(self._stopped.wait(), timeout=self.interval_seconds)
            except asyncio.TimeoutError:
                pass
        logger.info("Expiry sweeper stopped")

    def stop(self) -> None:
        self._stopped.set()


async def main() -> None:
    from src.services.eligibility import SupabaseEligibilityProvider
    from src.services.offer_store import SupabaseOfferStore
    from src.services.supabase_client import close_supabase_client
    from src.utils.logging_config import LoggingConfig

    LoggingConfig.setup_logging()
    orchestrator = AllocationOrchestrator(SupabaseOfferStore(), SupabaseEligibilityProvider())
    try:
        await ExpirySweeper(orchestrator).run()
    finally:
        await close_supabase_client()


if __name__ == "__main__":
    asyncio.run(main())
