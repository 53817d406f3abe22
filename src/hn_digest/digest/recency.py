"""Exclude candidates that were delivered recently."""

from collections.abc import Collection, Iterable
from datetime import timedelta

from ..models import CandidateItem

DEFAULT_RECENCY_WINDOW = timedelta(days=7)


def filter_recent(
    candidates: Iterable[CandidateItem], sent_ids: Collection[int]
) -> list[CandidateItem]:
    """Drop candidates whose id was sent within the recency window.

    Args:
        candidates: Feed candidates in feed order
        sent_ids: Ids returned by PreferenceStore.recently_sent_ids

    Returns:
        Remaining candidates, in input order
    """
    return [candidate for candidate in candidates if candidate.id not in sent_ids]
