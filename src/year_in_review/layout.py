"""
Pure math for the streamgraph layout.

No I/O, no plotting. Just:
- Linear and time scales (with a safe zero-width domain)
- Time -> angle and value -> radius mappings for the donut
- Smoothed band geometry per category (cubic B-spline)
- Label anchors from the dominant category of each week
- Month ticks

Angles follow the usual chart convention: 0 points up and angles grow
clockwise, so a point at (angle, radius) sits at
(radius * sin(angle), -radius * cos(angle)) around the chart center.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import datetime as dt
import logging
import math
from typing import Callable, Dict, List, Mapping, Optional, Sequence, Tuple, TypeVar

import numpy as np

from .aggregation import Aggregates
from .config import Config
from .schema import LabelAnchor, LayoutMode, Series, Stack

logger = logging.getLogger(__name__)

TAU = 2.0 * math.pi

# Linear layout margins, in pixels
MARGIN_TOP = 10
MARGIN_BOTTOM = 30
MARGIN_RIGHT = 40

# The donut center sits below the middle of the canvas
CENTER_Y_RATIO = 1.6

MONTH_LABELS = (
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
)

T = TypeVar("T")


# --- Scales ------------------------------------------------------------------


class LinearScale:
    """
    Linear map from `domain` onto `range_`.

    A zero-width domain maps every input to the middle of the range rather
    than dividing by zero. With `round_output`, results are rounded to the
    nearest integer (pixel-aligned radii).
    """

    def __init__(
        self,
        domain: Tuple[float, float],
        range_: Tuple[float, float],
        round_output: bool = False,
    ) -> None:
        self.domain = (float(domain[0]), float(domain[1]))
        self.range = (float(range_[0]), float(range_[1]))
        self.round_output = round_output

    @property
    def is_degenerate(self) -> bool:
        return self.domain[1] == self.domain[0]

    def normalize(self, value: float) -> float:
        d0, d1 = self.domain
        if self.is_degenerate:
            return 0.5
        return (float(value) - d0) / (d1 - d0)

    def __call__(self, value: float) -> float:
        r0, r1 = self.range
        out = r0 + self.normalize(value) * (r1 - r0)
        if self.round_output:
            return float(round(out))
        return out

    def __repr__(self) -> str:
        return f"LinearScale(domain={self.domain}, range={self.range})"


class TimeScale:
    """
    Linear map from calendar dates onto a numeric range.

    Dates are measured in days (proleptic ordinal). Without an extent
    (no entries) every date maps to the middle of the range.
    """

    def __init__(
        self,
        extent: Optional[Tuple[dt.date, dt.date]],
        range_: Tuple[float, float],
    ) -> None:
        self.extent = extent
        if extent is None:
            domain = (0.0, 0.0)
        else:
            domain = (float(_day(extent[0])), float(_day(extent[1])))
        self._linear = LinearScale(domain, range_)

    @property
    def range(self) -> Tuple[float, float]:
        return self._linear.range

    def __call__(self, date: dt.date) -> float:
        return self._linear(_day(date))


def _day(date: dt.date) -> int:
    if isinstance(date, dt.datetime):
        date = date.date()
    return date.toordinal()


def angle_scale(
    date_extent: Optional[Tuple[dt.date, dt.date]],
    offset_deg: float = 250.0,
    extent_deg: float = 220.0,
) -> TimeScale:
    """
    Time -> angle (radians) over a sector of `extent_deg` degrees starting
    at `offset_deg`. The rest of the circle is left empty.
    """
    start = TAU * offset_deg / 360.0
    return TimeScale(date_extent, (start, start + TAU * extent_deg / 360.0))


def radius_scale(
    value_extent: Tuple[float, float],
    donut_height: float,
) -> LinearScale:
    """Cumulative hours -> radius, from half the donut height to all of it."""
    return LinearScale(
        value_extent, (donut_height * 0.5, donut_height), round_output=True
    )


def linear_x_scale(
    date_extent: Optional[Tuple[dt.date, dt.date]],
    width: float,
) -> TimeScale:
    return TimeScale(date_extent, (0.0, width - MARGIN_RIGHT))


def linear_y_scale(value_extent: Tuple[float, float], height: float) -> LinearScale:
    # SVG-style y axis: larger values are drawn higher up
    return LinearScale(
        value_extent, (height - MARGIN_BOTTOM, MARGIN_TOP), round_output=True
    )


def point_radial(angle: float, radius: float) -> Tuple[float, float]:
    return radius * math.sin(angle), -radius * math.cos(angle)


# --- Curves and areas --------------------------------------------------------

# Uniform cubic B-spline basis, rows for t^3, t^2, t, 1
_BASIS = np.array(
    [
        [-1.0, 3.0, -3.0, 1.0],
        [3.0, -6.0, 3.0, 0.0],
        [-3.0, 0.0, 3.0, 0.0],
        [1.0, 4.0, 1.0, 0.0],
    ]
) / 6.0


def basis_curve(points: Sequence[Sequence[float]], samples: int = 8) -> np.ndarray:
    """
    Sample a smooth curve through `points` (an (n, 2) array-like).

    The curve starts exactly at the first point and ends exactly at the
    last one; in between it follows the cubic B-spline whose control
    polygon is `points` with both end points doubled. Fewer than three
    points are returned unchanged (a straight segment).
    """
    pts = np.asarray(points, dtype=float).reshape(-1, 2)
    if len(pts) < 3:
        return pts.copy()

    ctrl = np.vstack([pts[:1], pts, pts[-1:]])
    t = np.linspace(0.0, 1.0, samples, endpoint=False)
    weights = np.stack([t**3, t**2, t, np.ones_like(t)], axis=1) @ _BASIS
    end_weights = np.ones(4) @ _BASIS

    sampled = [pts[:1]]
    for i in range(len(ctrl) - 3):
        sampled.append(weights @ ctrl[i : i + 4])
    sampled.append((end_weights @ ctrl[-4:])[None, :])
    sampled.append(pts[-1:])
    return np.vstack(sampled)


@dataclass
class AreaGeometry:
    """
    Drawable band of one category.

    `outer` traces the top of the band and `inner` its bottom, both in
    bucket order, already smoothed. Coordinates are relative to the chart
    origin (the donut center for radial layouts).
    """

    key: str
    outer: np.ndarray
    inner: np.ndarray

    def polygon(self) -> np.ndarray:
        """Closed ring: outer boundary forward, inner boundary backward."""
        if len(self.outer) == 0:
            return np.zeros((0, 2))
        ring = np.vstack([self.outer, self.inner[::-1]])
        return np.vstack([ring, ring[:1]])


def area_geometry(
    stack: Stack,
    position: Callable[[dt.date], float],
    value: Callable[[float], float],
    mode: LayoutMode = LayoutMode.RADIAL,
    samples: int = 8,
) -> AreaGeometry:
    """
    Build the band for one stack.

    In radial mode `position` is the angle scale and `value` the radius
    scale; in linear mode they are the x and y scales.
    """
    outer_pts = []
    inner_pts = []
    for p in stack.points:
        pos = position(p.bucket)
        if mode is LayoutMode.RADIAL:
            outer_pts.append(point_radial(pos, value(p.upper)))
            inner_pts.append(point_radial(pos, value(p.lower)))
        else:
            outer_pts.append((pos, value(p.upper)))
            inner_pts.append((pos, value(p.lower)))

    return AreaGeometry(
        key=stack.key,
        outer=basis_curve(outer_pts, samples) if outer_pts else np.zeros((0, 2)),
        inner=basis_curve(inner_pts, samples) if inner_pts else np.zeros((0, 2)),
    )


# --- Labels ------------------------------------------------------------------


def dominant_buckets(
    sum_by_bucket_by_category: Mapping[dt.date, Mapping[str, float]],
    gap_days: int = 7,
) -> Dict[str, dt.date]:
    """
    First bucket at which each category is picked as the label position.

    Buckets are walked in ascending order. In each, the category with the
    most hours wins (the first one on ties; empty weeks are skipped). A
    winner is selected only if it differs from the previously selected
    category and lies more than `gap_days` after the previous selection.
    Only a category's first selection is kept.
    """
    selected: Dict[str, dt.date] = {}
    current: Optional[Tuple[str, dt.date]] = None

    for bucket in sorted(sum_by_bucket_by_category):
        sums = sum_by_bucket_by_category[bucket]
        if not sums or max(sums.values()) <= 0.0:
            continue

        winner = None
        best = -math.inf
        for category, hours in sums.items():
            if hours > best:
                winner, best = category, hours

        if current is not None and current[0] == winner:
            continue
        if current is not None and (bucket - current[1]).days <= gap_days:
            continue

        current = (winner, bucket)
        selected.setdefault(winner, bucket)

    return selected


def interval_match(
    specs: Sequence[Tuple[Tuple[float, float], T]],
) -> Callable[[float], Optional[T]]:
    """Lookup in half-open [min, max) intervals; None when nothing matches."""

    def match(n: float) -> Optional[T]:
        for (lo, hi), ret in specs:
            if lo <= n < hi:
                return ret
        return None

    return match


_TEXT_ANCHORS = interval_match(
    [
        ((0.0, TAU / 24), "middle"),
        ((TAU / 24, TAU * 11 / 24), "start"),
        ((TAU * 11 / 24, TAU * 13 / 24), "middle"),
        ((TAU * 13 / 24, TAU * 23 / 24), "end"),
        ((TAU * 23 / 24, TAU), "middle"),
    ]
)


def text_anchor_for_angle(angle: Optional[float]) -> str:
    """
    Horizontal text alignment for a label placed at `angle`: labels on the
    right of the donut start at their anchor, labels on the left end there.
    """
    if angle is None:
        return "start"
    return _TEXT_ANCHORS(angle % TAU) or "start"


# --- Ticks -------------------------------------------------------------------


@dataclass(frozen=True)
class MonthTick:
    date: dt.date
    position: float
    label: str


def month_ticks(
    date_extent: Optional[Tuple[dt.date, dt.date]],
    position: Callable[[dt.date], float],
) -> List[MonthTick]:
    """First day of every month inside the extent, with its scale position."""
    if date_extent is None:
        return []
    start, end = date_extent
    year, month = start.year, start.month
    if start.day != 1:
        year, month = (year + 1, 1) if month == 12 else (year, month + 1)

    ticks: List[MonthTick] = []
    day = dt.date(year, month, 1)
    while day <= end:
        ticks.append(MonthTick(day, position(day), MONTH_LABELS[day.month - 1]))
        year, month = (day.year + 1, 1) if day.month == 12 else (day.year, day.month + 1)
        day = dt.date(year, month, 1)
    return ticks


# --- Layout ------------------------------------------------------------------


@dataclass
class Layout:
    """
    Everything the renderer needs besides colors.

    `angle` and `radius` are always available. `x` and `y` are set for
    linear layouts only.
    """

    mode: LayoutMode
    width: float
    height: float
    donut_height: float
    center: Tuple[float, float]
    angle: TimeScale
    radius: LinearScale
    x: Optional[TimeScale] = None
    y: Optional[LinearScale] = None
    areas: Dict[str, AreaGeometry] = field(default_factory=dict)
    anchor_buckets: Dict[str, dt.date] = field(default_factory=dict)
    ticks: List[MonthTick] = field(default_factory=list)
    series: Optional[Series] = None

    def label(self, key: str) -> Optional[LabelAnchor]:
        """
        Label anchor of `key`, or None if the category never dominates a
        week.
        """
        bucket = self.anchor_buckets.get(key)
        if bucket is None:
            return None

        if self.mode is LayoutMode.RADIAL:
            angle = self.angle(bucket)
            x, y = point_radial(angle, self.donut_height)
            return LabelAnchor(x=x, y=y, angle=angle, bucket=bucket)

        if self.x is None or self.y is None:
            raise ValueError("Linear layout is missing its x/y scales")
        mid = 0.0
        stack = self.series.get(key) if self.series is not None else None
        if stack is not None:
            for p in stack.points:
                if p.bucket == bucket:
                    mid = (p.lower + p.upper) / 2.0
                    break
        return LabelAnchor(x=self.x(bucket), y=self.y(mid), angle=None, bucket=bucket)


def build_layout(
    series: Series,
    aggregates: Aggregates,
    config: Config,
    width: Optional[float] = None,
    height: Optional[float] = None,
    mode: Optional[LayoutMode] = None,
) -> Layout:
    """
    Compute scales, band geometry, label anchors and ticks.

    Deterministic for a given series, aggregates and configuration.
    """
    width = float(width if width is not None else config.width)
    height = float(height if height is not None else config.height)
    mode = LayoutMode(mode) if mode is not None else config.layout_mode

    donut_height = height / config.donut_ratio
    value_extent = series.value_extent()

    angle = angle_scale(
        aggregates.date_extent, config.angle_offset_deg, config.angle_extent_deg
    )
    radius = radius_scale(value_extent, donut_height)

    if mode is LayoutMode.RADIAL:
        center = (width / 2.0, height / CENTER_Y_RATIO)
        x = y = None
        position: Callable[[dt.date], float] = angle
        value: Callable[[float], float] = radius
    else:
        center = (0.0, 0.0)
        x = linear_x_scale(aggregates.date_extent, width)
        y = linear_y_scale(value_extent, height)
        position, value = x, y

    areas = {
        stack.key: area_geometry(stack, position, value, mode)
        for stack in series.stacks
    }

    layout = Layout(
        mode=mode,
        width=width,
        height=height,
        donut_height=donut_height,
        center=center,
        angle=angle,
        radius=radius,
        x=x,
        y=y,
        areas=areas,
        anchor_buckets=dominant_buckets(
            aggregates.sum_by_bucket_by_category, config.label_gap_days
        ),
        ticks=month_ticks(aggregates.date_extent, position),
        series=series,
    )
    logger.debug(
        "Layout %s: %d areas, %d labels, value extent %s",
        mode.value,
        len(areas),
        len(layout.anchor_buckets),
        value_extent,
    )
    return layout
