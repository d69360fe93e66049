"""Tests for snapshot capture and carry forward."""

import pytest
from src.models.offer import OfferApplicant
from src.services.ranking import rank
from src.services.snapshot_store import SnapshotStore, build_snapshot, carry_forward, entries_after
from tests.utils.assertions import assert_dense_snapshot
from tests.utils.factories import NOW, create_applicant
from tests.utils.memory_store import InMemoryOfferStore


def stored(entries, offer_id=1):
    return [
        OfferApplicant(id=offer_id * 100 + e.sort_order, offer_id=offer_id, created_at=NOW, **e.model_dump())
        for e in entries
    ]


@pytest.mark.unit
def test_build_snapshot_captures_ranking_inputs():
    """Test each entry copies the applicant's ranking inputs and rank."""
    a = create_applicant(10, applicant_id=1, queue_points=30, priority=1)
    b = create_applicant(10, applicant_id=2, queue_points=90)

    snapshot = build_snapshot(10, rank([b, a]))

    assert [(e.applicant_id, e.sort_order) for e in snapshot] == [(1, 0), (2, 1)]
    assert snapshot[0].queue_points == 30
    assert snapshot[0].priority == 1
    assert snapshot[1].address == b.address
    assert_dense_snapshot(snapshot)


@pytest.mark.unit
def test_carry_forward_copies_rows_unchanged():
    """Test the next offer gets the same ranked rows."""
    pool = [create_applicant(10, applicant_id=i, queue_points=i) for i in range(1, 5)]
    rows = stored(build_snapshot(10, rank(pool)))

    copied = carry_forward(reversed(rows))

    assert [e.model_dump() for e in copied] == [
        e.model_dump(exclude={"id", "offer_id", "created_at"}) for e in rows
    ]


@pytest.mark.unit
def test_entries_after_moves_strictly_forward():
    """Test only entries ranked after the given applicant are returned."""
    pool = [create_applicant(10, applicant_id=i, queue_points=10 - i) for i in range(1, 5)]
    rows = stored(build_snapshot(10, rank(pool)))

    assert [e.applicant_id for e in entries_after(rows, 2)] == [3, 4]
    assert entries_after(rows, 4) == []
    assert entries_after(rows, 999) == []


@pytest.mark.unit
@pytest.mark.asyncio
async def test_snapshot_store_reads_in_rank_order():
    """Test snapshot reads are ordered by sort order."""
    store = InMemoryOfferStore()
    rows = stored(build_snapshot(10, rank([create_applicant(10, applicant_id=i) for i in (3, 1, 2)])), offer_id=7)
    store.snapshot_rows.extend(reversed(rows))

    snapshot = await SnapshotStore(store).get_snapshot(7)

    assert [e.sort_order for e in snapshot] == [0, 1, 2]
    assert await SnapshotStore(store).get_snapshot(8) == []
