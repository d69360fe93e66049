"""Fire-and-forget publication of offer transition events."""

import inspect
from typing import Awaitable, Callable, Union

from src.models.events import OfferEvent, OfferEventType
from src.models.offer import Offer
from src.utils.logging import get_structured_logger

logger = get_structured_logger(__name__)

Subscriber = Callable[[OfferEvent], Union[None, Awaitable[None]]]


class EventPublisher:
    """Delivers events to subscribers. Subscriber failures never reach the engine."""

    def __init__(self):
        self.subscribers: list[Subscriber] = []

    def subscribe(self, subscriber: Subscriber) -> None:
        self.subscribers.append(subscriber)

    async def publish(self, event: OfferEvent) -> None:
        for subscriber in list(self.subscribers):
            try:
                result = subscriber(event)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.error(
                    "Offer event subscriber failed",
                    event_id=event.event_id,
                    event_type=event.event_type.value,
                    offer_id=event.offer_id,
                    subscriber=getattr(subscriber, "__name__", repr(subscriber)),
                    error=str(e),
                    exc_info=True,
                )

    async def publish_offer(self, event_type: OfferEventType, offer: Offer) -> None:
        await self.publish(OfferEvent(
            event_type=event_type,
            offer_id=offer.id,
            listing_id=offer.listing_id,
            applicant_id=offer.applicant_id,
        ))
