"""Tests for scales, band geometry, label anchors and ticks."""

from __future__ import annotations

import datetime as dt
import math

import numpy as np
import pytest

from year_in_review.aggregation import aggregate
from year_in_review.config import Config
from year_in_review.layout import (
    TAU,
    LinearScale,
    angle_scale,
    area_geometry,
    basis_curve,
    build_layout,
    dominant_buckets,
    month_ticks,
    point_radial,
    radius_scale,
    text_anchor_for_angle,
)
from year_in_review.schema import LayoutMode
from year_in_review.stacking import build_series, stacking_order


def _monday(n: int) -> dt.date:
    return dt.date(2024, 1, 1) + dt.timedelta(weeks=n)


def _layout_for(entries, config: Config, **kwargs):
    agg = aggregate(entries)
    series = build_series(agg.sum_by_bucket_by_category, stacking_order(agg.category_order))
    return build_layout(series, agg, config, **kwargs), series, agg


# ────────────────────────────────────────────────────────────────
# Scales
# ────────────────────────────────────────────────────────────────


class TestLinearScale:
    def test_maps_endpoints(self) -> None:
        scale = LinearScale((0, 10), (100, 200))
        assert scale(0) == 100
        assert scale(5) == 150
        assert scale(10) == 200

    def test_zero_width_domain_is_midpoint(self) -> None:
        scale = LinearScale((3, 3), (100, 200))
        assert scale.is_degenerate
        assert scale(3) == 150
        assert scale(42) == 150
        assert math.isfinite(scale(-1))

    def test_rounding(self) -> None:
        scale = LinearScale((0, 3), (0, 10), round_output=True)
        assert scale(1) == 3.0


class TestAngleScale:
    def test_sector(self) -> None:
        start, end = dt.date(2024, 1, 1), dt.date(2024, 12, 31)
        scale = angle_scale((start, end))
        assert scale(start) == pytest.approx(TAU * 250 / 360)
        assert scale(end) == pytest.approx(TAU * 470 / 360)
        assert scale(end) - scale(start) == pytest.approx(TAU * 220 / 360)

    def test_monotonic(self) -> None:
        start, end = dt.date(2024, 1, 1), dt.date(2024, 6, 30)
        scale = angle_scale((start, end), offset_deg=0, extent_deg=180)
        days = [start + dt.timedelta(days=i) for i in range(0, 181, 3)]
        angles = [scale(d) for d in days]
        assert angles == sorted(angles)

    def test_no_extent(self) -> None:
        scale = angle_scale(None, offset_deg=0, extent_deg=180)
        assert scale(dt.date(2024, 1, 1)) == pytest.approx(math.pi / 2)


class TestRadiusScale:
    def test_annulus(self) -> None:
        scale = radius_scale((0.0, 40.0), 500.0)
        assert scale(0.0) == 250
        assert scale(40.0) == 500

    def test_monotonic(self) -> None:
        scale = radius_scale((0.0, 17.0), 333.0)
        radii = [scale(v) for v in np.linspace(0, 17, 50)]
        assert radii == sorted(radii)

    def test_single_point_domain(self) -> None:
        scale = radius_scale((0.0, 0.0), 500.0)
        value = scale(0.0)
        assert math.isfinite(value)
        assert 250 <= value <= 500


def test_point_radial() -> None:
    assert point_radial(0.0, 10.0) == pytest.approx((0.0, -10.0))
    assert point_radial(math.pi / 2, 10.0) == pytest.approx((10.0, 0.0))
    assert point_radial(math.pi, 10.0) == pytest.approx((0.0, 10.0))


# ────────────────────────────────────────────────────────────────
# Curves and areas
# ────────────────────────────────────────────────────────────────


class TestBasisCurve:
    def test_starts_and_ends_on_points(self) -> None:
        pts = [(0, 0), (1, 2), (2, 0), (3, 3)]
        curve = basis_curve(pts, samples=5)
        assert curve[0] == pytest.approx([0, 0])
        assert curve[-1] == pytest.approx([3, 3])
        # first point + 3 segments of 5 samples + last segment end + last point
        assert curve.shape == (1 + 3 * 5 + 1 + 1, 2)

    def test_first_segment_matches_basis_rule(self) -> None:
        pts = np.array([(0.0, 0.0), (6.0, 6.0), (12.0, 0.0)])
        curve = basis_curve(pts, samples=4)
        # the spline leaves the first point toward (5 * p0 + p1) / 6
        assert curve[1] == pytest.approx((5 * pts[0] + pts[1]) / 6)
        assert curve[-2] == pytest.approx((pts[1] + 5 * pts[2]) / 6)

    def test_collinear_points_stay_on_line(self) -> None:
        pts = [(float(i), 2.0 * i) for i in range(6)]
        curve = basis_curve(pts)
        assert curve[:, 1] == pytest.approx(2.0 * curve[:, 0])

    @pytest.mark.parametrize("n", [0, 1, 2])
    def test_short_input_unchanged(self, n: int) -> None:
        pts = [(float(i), float(i)) for i in range(n)]
        assert basis_curve(pts).shape == (n, 2)


class TestAreaGeometry:
    def test_radial_band(self) -> None:
        sums = {_monday(i): {"a": 1.0 + i, "b": 2.0} for i in range(4)}
        series = build_series(sums, ["a", "b"])
        angle = angle_scale((_monday(0), _monday(3)))
        radius = radius_scale(series.value_extent(), 400.0)

        geometry = area_geometry(series.stacks[1], angle, radius)
        assert geometry.key == "b"
        assert geometry.outer.shape == geometry.inner.shape

        # end points sit exactly on the stacked radii
        outer_r = np.hypot(*geometry.outer[0])
        inner_r = np.hypot(*geometry.inner[0])
        assert outer_r == pytest.approx(radius(3.0))
        assert inner_r == pytest.approx(radius(1.0))

        ring = geometry.polygon()
        assert ring[0] == pytest.approx(ring[-1])
        assert len(ring) == len(geometry.outer) + len(geometry.inner) + 1

    def test_linear_band(self) -> None:
        sums = {_monday(i): {"a": 2.0} for i in range(3)}
        series = build_series(sums, ["a"])
        x = lambda d: float((d - _monday(0)).days)
        y = lambda v: 100.0 - v
        geometry = area_geometry(series.stacks[0], x, y, LayoutMode.LINEAR)
        assert geometry.outer[0] == pytest.approx([0.0, 98.0])
        assert geometry.inner[-1] == pytest.approx([14.0, 100.0])


# ────────────────────────────────────────────────────────────────
# Labels
# ────────────────────────────────────────────────────────────────


class TestDominantBuckets:
    def test_spacing_and_first_selection(self) -> None:
        sums = {
            _monday(0): {"A": 5.0, "B": 1.0},
            _monday(1): {"B": 9.0},  # too close to A's selection
            _monday(2): {"B": 9.0},
            _monday(3): {"A": 9.0},  # too close to B's selection
            _monday(4): {"C": 3.0},
            _monday(6): {"A": 8.0},  # A already has a label
        }
        assert dominant_buckets(sums) == {
            "A": _monday(0),
            "B": _monday(2),
            "C": _monday(4),
        }

    def test_same_category_does_not_retrigger(self) -> None:
        sums = {_monday(i): {"A": 5.0, "B": 1.0} for i in range(5)}
        assert dominant_buckets(sums) == {"A": _monday(0)}

    def test_ties_pick_first_category(self) -> None:
        assert dominant_buckets({_monday(0): {"X": 2.0, "Y": 2.0}}) == {"X": _monday(0)}

    def test_empty_weeks_are_skipped(self) -> None:
        sums = {_monday(0): {"A": 0.0}, _monday(1): {"B": 1.0}}
        assert dominant_buckets(sums) == {"B": _monday(1)}

    def test_gap_is_configurable(self) -> None:
        sums = {_monday(0): {"A": 1.0}, _monday(1): {"B": 1.0}}
        assert dominant_buckets(sums, gap_days=0) == {"A": _monday(0), "B": _monday(1)}


@pytest.mark.parametrize(
    "angle,anchor",
    [
        (0.0, "middle"),
        (math.pi / 2, "start"),
        (math.pi, "middle"),
        (3 * math.pi / 2, "end"),
        (TAU + math.pi / 2, "start"),
        (None, "start"),
    ],
)
def test_text_anchor_for_angle(angle, anchor) -> None:
    assert text_anchor_for_angle(angle) == anchor


class TestMonthTicks:
    def test_first_days_within_extent(self) -> None:
        ticks = month_ticks((dt.date(2023, 11, 15), dt.date(2024, 3, 1)), lambda d: 0.0)
        assert [t.date for t in ticks] == [
            dt.date(2023, 12, 1),
            dt.date(2024, 1, 1),
            dt.date(2024, 2, 1),
            dt.date(2024, 3, 1),
        ]
        assert [t.label for t in ticks] == ["Dec", "Jan", "Feb", "Mar"]

    def test_start_on_first_of_month(self) -> None:
        ticks = month_ticks((dt.date(2024, 1, 1), dt.date(2024, 1, 31)), lambda d: 1.0)
        assert [(t.date, t.position) for t in ticks] == [(dt.date(2024, 1, 1), 1.0)]

    def test_no_extent(self) -> None:
        assert month_ticks(None, lambda d: 0.0) == []


# ────────────────────────────────────────────────────────────────
# Full layout
# ────────────────────────────────────────────────────────────────


class TestBuildLayout:
    def test_radial(self, year_entries, config: Config) -> None:
        layout, series, _ = _layout_for(year_entries, config, width=1000, height=850)

        assert layout.mode is LayoutMode.RADIAL
        assert layout.donut_height == pytest.approx(500.0)
        assert layout.center == (500.0, 850 / 1.6)
        assert set(layout.areas) == set(series.keys)
        assert layout.ticks

        labelled = [k for k in series.keys if layout.label(k) is not None]
        assert labelled
        for key in labelled:
            anchor = layout.label(key)
            assert math.hypot(anchor.x, anchor.y) == pytest.approx(layout.donut_height)
            assert anchor.angle == pytest.approx(layout.angle(anchor.bucket))

    def test_category_without_anchor(self, year_entries, config: Config) -> None:
        layout, _, _ = _layout_for(year_entries, config)
        # Coordination is never the biggest category in any week
        assert layout.label("Coordination") is None
        assert layout.label("not a category") is None

    def test_linear(self, year_entries, config: Config) -> None:
        layout, series, _ = _layout_for(
            year_entries, config, width=800, height=400, mode=LayoutMode.LINEAR
        )
        assert layout.mode is LayoutMode.LINEAR
        assert layout.x is not None and layout.y is not None
        assert layout.x.range == (0.0, 760.0)
        ys = np.concatenate([g.outer[:, 1] for g in layout.areas.values()])
        assert ys.min() >= 10.0 - 1e-9
        assert ys.max() <= 400.0 - 30.0 + 1e-9
        anchor = layout.label(series.keys[1])
        assert anchor is not None and anchor.angle is None

    def test_linear_label_without_scales_raises(self, year_entries, config: Config) -> None:
        layout, series, _ = _layout_for(year_entries, config, mode=LayoutMode.LINEAR)
        layout.x = None
        with pytest.raises(ValueError, match="x/y scales"):
            layout.label(series.keys[1])

    def test_mode_from_config(self, year_entries) -> None:
        layout, _, _ = _layout_for(year_entries, Config(layout_mode=LayoutMode.LINEAR))
        assert layout.mode is LayoutMode.LINEAR

    def test_empty_input(self, config: Config) -> None:
        layout, series, _ = _layout_for([], config)
        assert layout.areas == {}
        assert layout.ticks == []
        assert math.isfinite(layout.radius(0.0))
        assert math.isfinite(layout.angle(dt.date(2024, 1, 1)))
        assert layout.label("anything") is None

    def test_single_week_constant_hours(self, make_entry, config: Config) -> None:
        layout, series, _ = _layout_for([make_entry("2024-01-03", "Alpha", 0.0)], config)
        geometry = layout.areas["Alpha"]
        assert np.isfinite(geometry.polygon()).all()

    def test_deterministic(self, year_entries, config: Config) -> None:
        first, _, _ = _layout_for(year_entries, config)
        second, _, _ = _layout_for(list(year_entries), config)
        for key in first.areas:
            assert np.array_equal(first.areas[key].polygon(), second.areas[key].polygon())
        assert first.anchor_buckets == second.anchor_buckets
