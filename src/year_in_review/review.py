"""
End-to-end pipeline: entries -> aggregates -> series -> layout + colors.

Also provides the JSON payload shared by the CLI and the HTTP API.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Any, Dict, List, Optional, Sequence

from .aggregation import Aggregates, aggregate
from .config import Config, get_config
from .layout import Layout, build_layout, text_anchor_for_angle
from .palette import DEFAULT_OVERRIDES, ColorAssigner, parse_overrides
from .schema import Entry, LayoutMode, Series
from .stacking import build_series, stacking_order

logger = logging.getLogger(__name__)


@dataclass
class YearInReview:
    aggregates: Aggregates
    series: Series
    layout: Layout
    colors: ColorAssigner

    @property
    def total_hours(self) -> float:
        return self.aggregates.total_hours

    @property
    def total_categories(self) -> int:
        return self.aggregates.total_categories


def make_color_assigner(config: Config) -> ColorAssigner:
    """
    Color assigner honoring the configured overrides.

    Overrides that cannot be parsed or that name a color outside the
    palette are ignored in favor of DEFAULT_OVERRIDES.
    """
    try:
        overrides = parse_overrides(config.color_overrides)
        if overrides:
            return ColorAssigner(overrides=overrides)
    except ValueError as e:
        logger.warning("Ignoring color overrides %r: %s", config.color_overrides, e)
    return ColorAssigner(overrides=DEFAULT_OVERRIDES)


def build_review(
    entries: Sequence[Entry],
    config: Optional[Config] = None,
    *,
    width: Optional[float] = None,
    height: Optional[float] = None,
    mode: Optional[LayoutMode] = None,
) -> YearInReview:
    """
    Run the full aggregation and layout pipeline over `entries`.

    Colors are bound in stacking order so that a given file always
    produces the same colors.
    """
    cfg = config or get_config()

    aggregates = aggregate(entries)
    keys = stacking_order(aggregates.category_order)
    series = build_series(aggregates.sum_by_bucket_by_category, keys)
    layout = build_layout(series, aggregates, cfg, width=width, height=height, mode=mode)

    colors = make_color_assigner(cfg)
    for key in keys:
        colors.assign(key)

    logger.info(
        "Built review: %.2f hours, %d categories, %d weeks (%s layout)",
        aggregates.total_hours,
        aggregates.total_categories,
        len(series.buckets),
        layout.mode.value,
    )
    return YearInReview(aggregates=aggregates, series=series, layout=layout, colors=colors)


# --- Serialization -----------------------------------------------------------


def _round_points(points: Any, ndigits: int = 2) -> List[List[float]]:
    return [[round(float(x), ndigits), round(float(y), ndigits)] for x, y in points]


def review_to_dict(review: YearInReview) -> Dict[str, Any]:
    """
    JSON-serializable view of a review.

    Coordinates are relative to `layout.center` and rounded to 2 decimals.
    """
    agg = review.aggregates
    layout = review.layout

    categories = []
    for stack in review.series.stacks:
        anchor = layout.label(stack.key)
        geometry = layout.areas.get(stack.key)
        categories.append(
            {
                "name": stack.key,
                "color": review.colors.assign(stack.key),
                "total_hours": agg.sum_by_category.get(stack.key, 0.0),
                "client": agg.category_to_client.get(stack.key),
                "label": None
                if anchor is None
                else {
                    "x": round(anchor.x, 2),
                    "y": round(anchor.y, 2),
                    "angle": None if anchor.angle is None else round(anchor.angle, 4),
                    "week": anchor.bucket.isoformat(),
                    "text_anchor": text_anchor_for_angle(anchor.angle),
                },
                "stack": [
                    [p.bucket.isoformat(), p.lower, p.upper] for p in stack.points
                ],
                "polygon": [] if geometry is None else _round_points(geometry.polygon()),
            }
        )

    extent = agg.date_extent
    return {
        "summary": {
            "total_hours": agg.total_hours,
            "total_categories": agg.total_categories,
            "first_date": None if extent is None else extent[0].isoformat(),
            "last_date": None if extent is None else extent[1].isoformat(),
            "weeks": len(review.series.buckets),
        },
        "months": [
            {
                "month": month,
                "hours": hours,
                "projects": agg.projects_by_month.get(month, 0),
            }
            for month, hours in agg.hours_by_month.items()
        ],
        "layout": {
            "mode": layout.mode.value,
            "width": layout.width,
            "height": layout.height,
            "center": [layout.center[0], layout.center[1]],
            "donut_height": layout.donut_height,
            "ticks": [
                {
                    "date": tick.date.isoformat(),
                    "position": round(tick.position, 4),
                    "label": tick.label,
                }
                for tick in layout.ticks
            ],
        },
        "categories": categories,
    }
