"""
Stack builder.

Turns per-bucket, per-category sums into a Series of (lower, upper) bands.
Stacking order is first appearance in time, with one exception: the
Coordination category is always placed on the inner edge.
"""

from __future__ import annotations

import datetime as dt
from typing import Iterable, Iterator, List, Mapping, Sequence, Set

import numpy as np

from .schema import Series, Stack, StackPoint

# Always stacked first (innermost band), whatever its first appearance
PINNED_CATEGORY = "Coordination"


class CategoryOrder:
    """
    Grow-only record of category names in first-insertion order.
    """

    def __init__(self, keys: Iterable[str] = ()) -> None:
        self._keys: List[str] = []
        self._seen: Set[str] = set()
        for key in keys:
            self.add(key)

    def add(self, key: str) -> bool:
        """Record `key`; returns False if it was already known."""
        if key in self._seen:
            return False
        self._seen.add(key)
        self._keys.append(key)
        return True

    def __contains__(self, key: object) -> bool:
        return key in self._seen

    def __iter__(self) -> Iterator[str]:
        return iter(self._keys)

    def __len__(self) -> int:
        return len(self._keys)

    def __repr__(self) -> str:
        return f"CategoryOrder({self._keys!r})"

    def as_list(self) -> List[str]:
        return list(self._keys)


def stacking_order(order: Iterable[str]) -> List[str]:
    """
    Final stacking order: appearance order, with PINNED_CATEGORY moved to
    index 0 when present.
    """
    keys = list(order)
    # Stable sort: only the pinned key moves
    return sorted(keys, key=lambda k: 0 if k == PINNED_CATEGORY else 1)


def build_series(
    sum_by_bucket_by_category: Mapping[dt.date, Mapping[str, float]],
    keys: Sequence[str],
) -> Series:
    """
    Stack `keys` (bottom to top) over every bucket, in ascending bucket order.

    A category absent from a bucket contributes 0 there. Lower bounds are
    the running sum of the previous categories, so bands never overlap and
    each bucket's bands add up to that bucket's total.
    """
    buckets = sorted(sum_by_bucket_by_category)
    if not buckets or not keys:
        return Series(buckets=buckets, stacks=[])

    values = np.zeros((len(buckets), len(keys)), dtype=float)
    for i, bucket in enumerate(buckets):
        sums = sum_by_bucket_by_category[bucket]
        for j, key in enumerate(keys):
            values[i, j] = sums.get(key, 0.0)

    upper = np.cumsum(values, axis=1)
    lower = np.zeros_like(upper)
    lower[:, 1:] = upper[:, :-1]

    stacks: List[Stack] = []
    for j, key in enumerate(keys):
        points = [
            StackPoint(bucket=bucket, lower=float(lower[i, j]), upper=float(upper[i, j]))
            for i, bucket in enumerate(buckets)
        ]
        stacks.append(Stack(key=key, index=j, points=points))

    return Series(buckets=buckets, stacks=stacks)
