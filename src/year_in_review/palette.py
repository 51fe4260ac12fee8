"""
Deterministic color assignment for categories.

A fixed palette, optionally with colors reserved for known categories.
Every other category gets the next free color on first request and keeps
it for the lifetime of the assigner.
"""

from __future__ import annotations

import colorsys
import logging
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from matplotlib.colors import to_hex, to_rgb

logger = logging.getLogger(__name__)

PALETTE: Tuple[str, ...] = (
    "#19A3D1",
    "#31DEF3",
    "#3B48B2",
    "#B24F67",
    "#E54F82",
    "#FB993D",
    "#FD89B9",
    "#FEE9A9",
    "#3DFB94",
    "#0F713C",
)

# color -> categories that always use it
DEFAULT_OVERRIDES: Dict[str, Tuple[str, ...]] = {
    "#3B48B2": ("Coordination",),
}

# d3-style brighten step
_BRIGHTER = 1.0 / 0.7


class ColorAssigner:
    """
    Maps category names to palette colors.

    - Categories listed in `overrides` always get their configured color.
    - Colors that carry overrides are never handed out to anyone else.
    - Other categories are bound, on first request, to the next free color
      (round-robin over the remaining palette, wrapping when exhausted).

    Bindings are memoized and never removed.
    """

    def __init__(
        self,
        palette: Sequence[str] = PALETTE,
        overrides: Optional[Mapping[str, Sequence[str]]] = None,
    ) -> None:
        if not palette:
            raise ValueError("palette must contain at least one color")
        self.palette: Tuple[str, ...] = tuple(palette)

        if overrides is None:
            overrides = DEFAULT_OVERRIDES
        known = {c.upper() for c in self.palette}
        self._static: Dict[str, str] = {}
        reserved = set()
        for color, categories in overrides.items():
            if color.upper() not in known:
                raise ValueError(f"Override color {color!r} is not in the palette")
            if not categories:
                continue
            token = self._palette_token(color)
            reserved.add(token)
            for category in categories:
                self._static[category] = token

        self._pool: List[str] = [c for c in self.palette if c not in reserved]
        if not self._pool:
            logger.warning("Every palette color is reserved; sharing the full palette")
            self._pool = list(self.palette)

        self._cursor = 0
        self._assigned: Dict[str, str] = {}

    def _palette_token(self, color: str) -> str:
        for c in self.palette:
            if c.upper() == color.upper():
                return c
        raise ValueError(f"Color {color!r} is not in the palette")

    def assign(self, category: str) -> str:
        """Color token for `category`, binding it on first request."""
        token = self._static.get(category)
        if token is not None:
            return token

        token = self._assigned.get(category)
        if token is None:
            token = self._pool[self._cursor % len(self._pool)]
            self._cursor += 1
            self._assigned[category] = token
        return token

    __call__ = assign

    def assigned(self) -> Dict[str, str]:
        """Round-robin bindings made so far, in binding order."""
        return dict(self._assigned)

    @property
    def reserved(self) -> Dict[str, str]:
        return dict(self._static)


def parse_overrides(text: Optional[str]) -> Dict[str, Tuple[str, ...]]:
    """
    Parse "Category=#hex;Other=#hex" into {color: (categories...)}.

    Empty or missing text yields {}. Malformed items raise ValueError.
    """
    result: Dict[str, List[str]] = {}
    if not text:
        return {}
    for item in text.split(";"):
        item = item.strip()
        if not item:
            continue
        if "=" not in item:
            raise ValueError(f"Malformed color override {item!r}; expected Name=#hex")
        category, color = (part.strip() for part in item.rsplit("=", 1))
        if not category or not color:
            raise ValueError(f"Malformed color override {item!r}; expected Name=#hex")
        result.setdefault(color.upper(), []).append(category)
    return {color: tuple(categories) for color, categories in result.items()}


def gradient_stops(color: str) -> Tuple[str, str]:
    """
    Two-tone gradient for a band: a brightened edge color and a
    hue-shifted (+30 degrees) middle color.
    """
    r, g, b = to_rgb(color)
    k = _BRIGHTER**0.5
    edge = tuple(min(1.0, channel * k) for channel in (r, g, b))

    h, l, s = colorsys.rgb_to_hls(r, g, b)
    middle = colorsys.hls_to_rgb((h + 30.0 / 360.0) % 1.0, l, s)
    return to_hex(edge), to_hex(middle)
