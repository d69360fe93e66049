"""Snapshot store - immutable ranked pool captured when an offer round starts.

Rows are append-only and addressed by (offer_id, sort_order). Moving to the next
applicant of a round copies the rows onto the new offer unchanged, so every
offer carries the full ranking its round started with.
"""

from typing import Iterable

from src.models.offer import OfferApplicant, SnapshotEntry
from src.services.ranking import RankedApplicant


def build_snapshot(listing_id: int, ranked: Iterable[RankedApplicant]) -> list[SnapshotEntry]:
    """Capture ranking inputs and rank for every applicant in the pool."""
    entries = []
    for applicant, sort_order in ranked:
        entries.append(SnapshotEntry(
            listing_id=listing_id,
            applicant_id=applicant.id,
            applicant_status=applicant.status,
            application_type=applicant.application_type,
            application_date=applicant.application_date,
            queue_points=applicant.queue_points,
            address=applicant.address,
            has_parking_space=applicant.has_parking_space,
            housing_lease_status=applicant.housing_lease_status,
            priority=applicant.priority,
            sort_order=sort_order,
        ))
    return entries


def carry_forward(snapshot: Iterable[OfferApplicant]) -> list[SnapshotEntry]:
    """Copy a stored snapshot for the next offer of the same round."""
    return [
        SnapshotEntry(**entry.model_dump(include=set(SnapshotEntry.model_fields)))
        for entry in sorted(snapshot, key=lambda e: e.sort_order)
    ]


def entries_after(snapshot: Iterable[OfferApplicant], applicant_id: int) -> list[OfferApplicant]:
    """Entries ranked strictly after the given applicant, in rank order."""
    ordered = sorted(snapshot, key=lambda e: e.sort_order)
    position = next(
        (entry.sort_order for entry in ordered if entry.applicant_id == applicant_id),
        None,
    )
    if position is None:
        return []
    return [entry for entry in ordered if entry.sort_order > position]


class SnapshotStore:
    """Read side of the snapshot table."""

    def __init__(self, store):
        self.store = store

    async def get_snapshot(self, offer_id: int) -> list[OfferApplicant]:
        rows = await self.store.get_snapshot(offer_id)
        return sorted(rows, key=lambda e: e.sort_order)
