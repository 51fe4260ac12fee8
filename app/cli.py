"""
CLI for the year-in-review system.

Usage examples:

    # Print summary statistics for an export
    python -m app.cli summary data/harvest_export.csv

    # Export the full layout (stacks, polygons, labels) as JSON
    python -m app.cli layout data/harvest_export.csv --output layout.json

    # Render the chart
    python -m app.cli render data/harvest_export.csv --output review.png
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

# --- Make src/ importable ----------------------------------------------------

REPO_ROOT = Path(__file__).resolve().parents[1]
SRC_PATH = REPO_ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from year_in_review.config import get_config
from year_in_review.data_io import INTAKE_HINT, EntryParseError, load_entries_from_csv
from year_in_review.render import SUPPORTED_FORMATS, render_review
from year_in_review.review import build_review, review_to_dict
from year_in_review.schema import LayoutMode


# --- Helpers -----------------------------------------------------------------


def _load_entries(csv_path: Path, command: str):
    if not csv_path.exists():
        raise SystemExit(f"[{command}] CSV file not found: {csv_path}")
    try:
        return load_entries_from_csv(str(csv_path))
    except EntryParseError as e:
        raise SystemExit(f"[{command}] {e}\n[{command}] {INTAKE_HINT}")


# --- Commands ----------------------------------------------------------------


def cmd_summary(args: argparse.Namespace) -> None:
    """
    Print total hours, categories and the per-month breakdown.
    """
    csv_path = Path(args.csv_path).resolve()
    entries = _load_entries(csv_path, "summary")
    print(f"[summary] Loaded {len(entries)} entries from {csv_path}")

    review = build_review(entries, get_config())
    agg = review.aggregates

    print(f"[summary] Total hours: {agg.total_hours:.2f}")
    print(f"[summary] Categories: {agg.total_categories}")
    for name, hours in sorted(
        agg.sum_by_category.items(), key=lambda kv: kv[1], reverse=True
    ):
        print(f"  {name:<40} {hours:>10.2f}  {review.colors.assign(name)}")
    print()
    for month, hours in agg.hours_by_month.items():
        print(f"  {month}  {hours:>10.2f} h  {agg.projects_by_month[month]:>3} projects")


def cmd_layout(args: argparse.Namespace) -> None:
    """
    Compute the layout and write it as JSON (stdout if no --output).
    """
    csv_path = Path(args.csv_path).resolve()
    entries = _load_entries(csv_path, "layout")

    review = build_review(
        entries,
        get_config(),
        width=args.width,
        height=args.height,
        mode=args.mode,
    )
    payload = json.dumps(review_to_dict(review), indent=2)

    if args.output is None:
        print(payload)
        return

    output_path = Path(args.output).resolve()
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(payload, encoding="utf-8")
    print(f"[layout] Saved layout to {output_path}")


def cmd_render(args: argparse.Namespace) -> None:
    """
    Render the chart as PNG or SVG.
    """
    csv_path = Path(args.csv_path).resolve()
    output_path = Path(args.output).resolve()
    fmt = args.format or output_path.suffix.lstrip(".").lower() or "png"
    if fmt not in SUPPORTED_FORMATS:
        raise SystemExit(
            f"[render] Unsupported format {fmt!r}; use one of {', '.join(SUPPORTED_FORMATS)}"
        )

    entries = _load_entries(csv_path, "render")
    print(f"[render] Loaded {len(entries)} entries.")

    review = build_review(
        entries,
        get_config(),
        width=args.width,
        height=args.height,
        mode=args.mode,
    )

    output_path.parent.mkdir(parents=True, exist_ok=True)
    render_review(review, str(output_path), fmt=fmt, highlight=args.highlight)
    print(f"[render] Saved chart to {output_path}")


# --- Main --------------------------------------------------------------------


def _add_layout_options(p: argparse.ArgumentParser) -> None:
    p.add_argument(
        "--mode",
        choices=[m.value for m in LayoutMode],
        default=None,
        help="Layout mode (default: YIR_LAYOUT_MODE or radial).",
    )
    p.add_argument("--width", type=int, default=None, help="Chart width in pixels.")
    p.add_argument("--height", type=int, default=None, help="Chart height in pixels.")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Year in Review CLI – summarize, lay out and render a time-tracking export."
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    # summary
    sum_p = subparsers.add_parser(
        "summary",
        help="Print summary statistics for a CSV export.",
    )
    sum_p.add_argument("csv_path", help="Path to the Harvest CSV export.")
    sum_p.set_defaults(func=cmd_summary)

    # layout
    lay_p = subparsers.add_parser(
        "layout",
        help="Write the computed layout as JSON.",
    )
    lay_p.add_argument("csv_path", help="Path to the Harvest CSV export.")
    lay_p.add_argument(
        "--output",
        default=None,
        help="Where to save the layout JSON (default: print to stdout).",
    )
    _add_layout_options(lay_p)
    lay_p.set_defaults(func=cmd_layout)

    # render
    ren_p = subparsers.add_parser(
        "render",
        help="Render the streamgraph to PNG or SVG.",
    )
    ren_p.add_argument("csv_path", help="Path to the Harvest CSV export.")
    ren_p.add_argument(
        "--output",
        default="year_in_review.png",
        help="Output image path (default: year_in_review.png).",
    )
    ren_p.add_argument(
        "--format",
        choices=list(SUPPORTED_FORMATS),
        default=None,
        help="Image format (default: from the output extension).",
    )
    ren_p.add_argument(
        "--highlight",
        default=None,
        help="Category to emphasize, with its total hours in the center.",
    )
    _add_layout_options(ren_p)
    ren_p.set_defaults(func=cmd_render)

    return parser


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=get_config().log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    args.func(args)


if __name__ == "__main__":
    main()
