"""Ranking algorithm - total order over an eligible applicant pool."""

from typing import Iterable, NamedTuple

from src.models.applicant import Applicant


class RankedApplicant(NamedTuple):
    """Applicant with its dense zero-based rank."""
    applicant: Applicant
    sort_order: int


def ranking_key(applicant: Applicant) -> tuple:
    """
    Sort key for one applicant.

    Priority tier ascending with a missing tier last, queue points descending,
    application date ascending, applicant id ascending.
    """
    has_no_priority = applicant.priority is None
    return (
        has_no_priority,
        applicant.priority if not has_no_priority else 0,
        -applicant.queue_points,
        applicant.application_date,
        applicant.id,
    )


def rank(applicants: Iterable[Applicant]) -> list[RankedApplicant]:
    """Rank an eligible pool. Pure: the input order never affects the result."""
    ordered = sorted(applicants, key=ranking_key)
    return [RankedApplicant(applicant, index) for index, applicant in enumerate(ordered)]
