"""Test helper functions."""

from typing import Iterable, Optional

from src.models.application_profile import ApplicationProfile
from src.models.events import OfferEvent
from src.services.allocation_orchestrator import AllocationOrchestrator
from src.services.event_publisher import EventPublisher
from src.utils.engine_config import EngineConfig
from tests.utils.factories import NOW
from tests.utils.memory_store import InMemoryOfferStore


class FakeEligibilityProvider:
    """Profiles held in a dict, with an optional outage."""

    def __init__(self, profiles: Optional[Iterable[ApplicationProfile]] = None):
        self.profiles = {p.contact_code: p for p in profiles or []}
        self.unavailable = False
        self.calls = 0

    def add(self, profile: ApplicationProfile) -> ApplicationProfile:
        self.profiles[profile.contact_code] = profile
        return profile

    async def get_profiles(self, contact_codes):
        self.calls += 1
        if self.unavailable:
            raise ConnectionError("profile service unreachable")
        return {code: self.profiles[code] for code in contact_codes if code in self.profiles}


class Clock:
    """Settable clock for orchestrator tests."""

    def __init__(self, now=NOW):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, delta):
        self.now = self.now + delta


class EventRecorder:
    """Subscriber collecting published events."""

    def __init__(self):
        self.events: list[OfferEvent] = []

    async def __call__(self, event: OfferEvent) -> None:
        self.events.append(event)

    @property
    def types(self) -> list[str]:
        return [event.event_type.value for event in self.events]


def create_orchestrator(
    store: Optional[InMemoryOfferStore] = None,
    provider: Optional[FakeEligibilityProvider] = None,
    clock: Optional[Clock] = None,
    offer_ttl_hours: int = 72,
) -> AllocationOrchestrator:
    """Orchestrator wired to in-memory collaborators."""
    return AllocationOrchestrator(
        store or InMemoryOfferStore(),
        provider or FakeEligibilityProvider(),
        publisher=EventPublisher(),
        config=EngineConfig(offer_ttl_hours=offer_ttl_hours, sweep_interval_seconds=1, sweep_batch_size=50),
        clock=clock or Clock(),
    )


def seed_pool(store, provider, listing, applicants, approved: bool = True):
    """Add a listing and its applicants, each with an approved profile by default."""
    from tests.utils.factories import create_profile
    from src.models.application_profile import ReviewStatus

    store.add_listing(listing)
    for applicant in applicants:
        store.add_applicant(applicant)
        status = ReviewStatus.APPROVED if approved else ReviewStatus.REJECTED
        provider.add(create_profile(applicant.contact_code, review_status=status))
    return applicants
