"""Domain services for campsite availability."""

from __future__ import annotations

from django.db import transaction  # type: ignore
from django.db.utils import NotSupportedError  # type: ignore

from shared.domain.value_objects import DateRange


def _lock_queryset_if_possible(queryset):
    """Apply select_for_update when inside transaction.atomic()."""

    if not transaction.get_connection().in_atomic_block:
        return queryset

    try:
        return queryset.select_for_update()
    except NotSupportedError:
        return queryset


def is_available(campsite_id, start_date, end_date) -> bool:
    """False when the campsite is switched off or the range overlaps a reservation."""

    from .repositories import AvailabilityIndexRepository  # Local import to prevent circular dependency

    index = AvailabilityIndexRepository().get(campsite_id)
    if index is None:
        return False
    return index.is_available(DateRange(start_date, end_date))

