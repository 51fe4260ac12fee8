"""
Static rendering of a review with matplotlib.

Draws the layout in pixel coordinates (origin top-left, y down, like the
SVG the layout was designed for): one filled band per category, month
ticks, category labels and, for a highlighted category, its name and total
hours in the middle of the donut.
"""

from __future__ import annotations

import logging
from typing import BinaryIO, Optional, Union

import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt
from matplotlib.patches import Polygon

from .layout import point_radial, text_anchor_for_angle
from .palette import gradient_stops
from .review import YearInReview
from .schema import LayoutMode

logger = logging.getLogger(__name__)

BG = "#00273E"
TEXT = "#ffffff"
STROKE = (1.0, 1.0, 1.0, 0.2)
DPI = 100

SUPPORTED_FORMATS = ("png", "svg")

_HA = {"start": "left", "middle": "center", "end": "right"}


def band_opacity(key: str, highlight: Optional[str]) -> float:
    if highlight is None:
        return 0.8
    return 0.9 if key == highlight else 0.5


def render_review(
    review: YearInReview,
    target: Union[str, BinaryIO],
    fmt: str = "png",
    highlight: Optional[str] = None,
    title: Optional[str] = "Your year in review",
) -> None:
    """
    Render `review` to a file path or binary buffer as PNG or SVG.

    `highlight` names a category to emphasize; unknown names are ignored.
    """
    fmt = fmt.lower()
    if fmt not in SUPPORTED_FORMATS:
        raise ValueError(f"Unsupported format {fmt!r}; expected one of {SUPPORTED_FORMATS}")

    layout = review.layout
    if highlight is not None and review.series.get(highlight) is None:
        logger.warning("Highlighted category %r is not in the data", highlight)
        highlight = None

    width, height = layout.width, layout.height
    cx, cy = layout.center

    fig = plt.figure(figsize=(width / DPI, height / DPI), dpi=DPI)
    fig.patch.set_facecolor(BG)
    ax = fig.add_axes((0.0, 0.0, 1.0, 1.0))
    ax.set_facecolor(BG)
    ax.set_xlim(0, width)
    ax.set_ylim(height, 0)
    ax.set_aspect("equal")
    ax.axis("off")

    if title:
        ax.text(16, 16, title, ha="left", va="top", color=TEXT, fontsize=20)

    for stack in review.series.stacks:
        geometry = layout.areas.get(stack.key)
        if geometry is None or len(geometry.outer) == 0:
            continue
        ring = geometry.polygon().copy()
        ring[:, 0] += cx
        ring[:, 1] += cy

        edge, _ = gradient_stops(review.colors.assign(stack.key))
        ax.add_patch(
            Polygon(
                ring,
                closed=True,
                facecolor=review.colors.assign(stack.key),
                edgecolor=STROKE,
                linewidth=2,
                alpha=band_opacity(stack.key, highlight),
            )
        )
        # Thin bright rim, standing in for the band gradient
        ax.plot(
            geometry.outer[:, 0] + cx,
            geometry.outer[:, 1] + cy,
            color=edge,
            linewidth=0.8,
            alpha=0.6,
        )

    _draw_ticks(ax, review)
    _draw_labels(ax, review, highlight)

    if highlight is not None:
        total = review.aggregates.sum_by_category.get(highlight, 0.0)
        ax.text(width / 2, height / 2, highlight, ha="center", va="center",
                color=TEXT, fontsize=28)
        ax.text(width / 2, height / 2 + 100, f"{total:.0f} hours in total",
                ha="center", va="center", color=TEXT, fontsize=18)

    fig.savefig(target, format=fmt, dpi=DPI, facecolor=BG)
    plt.close(fig)
    logger.info("Rendered %s chart (%d categories)", fmt, len(review.series.stacks))


def _draw_ticks(ax, review: YearInReview) -> None:
    layout = review.layout
    cx, cy = layout.center
    for tick in layout.ticks:
        if layout.mode is LayoutMode.RADIAL:
            x, y = point_radial(tick.position, layout.donut_height * 0.5 - 14)
            ax.text(x + cx, y + cy, tick.label, ha="center", va="center",
                    color=TEXT, alpha=0.6, fontsize=9)
        else:
            ax.text(tick.position, layout.height - 12, tick.label, ha="center",
                    va="center", color=TEXT, alpha=0.6, fontsize=9)


def _draw_labels(ax, review: YearInReview, highlight: Optional[str]) -> None:
    layout = review.layout
    cx, cy = layout.center
    for stack in review.series.stacks:
        anchor = layout.label(stack.key)
        if anchor is None:
            continue
        ax.text(
            anchor.x + cx,
            anchor.y + cy,
            stack.key,
            ha=_HA[text_anchor_for_angle(anchor.angle)],
            va="center",
            color=TEXT,
            fontsize=14,
            alpha=0.9 if stack.key == highlight else 0.8,
        )
