"""
Aggregation of time entries.

Responsibilities:
- Group hours by weekly bucket and category (input to the stack builder)
- Flat totals per category, per calendar month, and overall
- A representative client per category

Everything is recomputed from scratch for each entry list.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
import datetime as dt
import logging
from typing import Dict, Iterable, List, Optional, Set, Tuple

from .schema import Entry
from .stacking import CategoryOrder

logger = logging.getLogger(__name__)


def category_of(entry: Entry) -> str:
    return entry.category


def round_to_monday(date: dt.date) -> dt.date:
    """Start of the ISO week containing `date`."""
    if isinstance(date, dt.datetime):
        date = date.date()
    return date - dt.timedelta(days=date.weekday())


def month_key(date: dt.date) -> str:
    return f"{date.year:04d}-{date.month:02d}"


@dataclass
class Aggregates:
    """
    Derived sums over one entry list.

    Mapping insertion orders follow the date-sorted entries: buckets are
    ascending and each bucket's categories appear in first-seen order.
    """

    sum_by_bucket_by_category: Dict[dt.date, Dict[str, float]] = field(
        default_factory=dict
    )
    sum_by_category: Dict[str, float] = field(default_factory=dict)
    total_hours: float = 0.0
    category_to_client: Dict[str, str] = field(default_factory=dict)
    hours_by_month: Dict[str, float] = field(default_factory=dict)
    projects_by_month: Dict[str, int] = field(default_factory=dict)
    category_order: CategoryOrder = field(default_factory=CategoryOrder)
    date_extent: Optional[Tuple[dt.date, dt.date]] = None

    @property
    def total_categories(self) -> int:
        return len(self.sum_by_category)


def sort_entries(entries: Iterable[Entry]) -> List[Entry]:
    # sorted() is stable, so same-day entries keep their file order
    return sorted(entries, key=lambda e: e.date)


def aggregate(entries: Iterable[Entry]) -> Aggregates:
    """
    Compute every aggregate the layout needs in one pass over the
    date-sorted entries.

    An empty input yields empty mappings and zero totals.
    """
    sorted_entries = sort_entries(entries)
    result = Aggregates()

    month_categories: Dict[str, Set[str]] = defaultdict(set)

    for entry in sorted_entries:
        category = category_of(entry)
        bucket = round_to_monday(entry.date)
        month = month_key(entry.date)

        per_bucket = result.sum_by_bucket_by_category.setdefault(bucket, {})
        per_bucket[category] = per_bucket.get(category, 0.0) + entry.hours

        result.sum_by_category[category] = (
            result.sum_by_category.get(category, 0.0) + entry.hours
        )
        result.total_hours += entry.hours

        result.category_to_client.setdefault(category, entry.client)
        result.category_order.add(category)

        result.hours_by_month[month] = (
            result.hours_by_month.get(month, 0.0) + entry.hours
        )
        month_categories[month].add(category)

    result.projects_by_month = {
        month: len(month_categories[month]) for month in result.hours_by_month
    }

    if sorted_entries:
        result.date_extent = (sorted_entries[0].date, sorted_entries[-1].date)

    logger.debug(
        "Aggregated %d entries into %d buckets and %d categories",
        len(sorted_entries),
        len(result.sum_by_bucket_by_category),
        result.total_categories,
    )
    return result


def month_summary(aggregates: Aggregates, key: str) -> Tuple[float, int]:
    """
    Hours and distinct project count for a `YYYY-MM` month.

    Months without entries report (0.0, 0).
    """
    return (
        aggregates.hours_by_month.get(key, 0.0),
        aggregates.projects_by_month.get(key, 0),
    )
