"""
Data schemas for the year-in-review system.

Defines:
- CsvRow: one raw row of a time-tracking export, as validated strings
- Entry: a single typed time entry (one per CSV row)
- LayoutMode: radial (donut) or linear streamgraph layout
- StackPoint / Stack / Series: the stacked weekly time series
- LabelAnchor: where a category's label is drawn
"""

from __future__ import annotations

from dataclasses import dataclass, field
import datetime as dt
from enum import Enum
from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

# Entries booked on this project are categorized by their task instead
TEAM_PROJECT = "Team"


class LayoutMode(str, Enum):
    RADIAL = "radial"
    LINEAR = "linear"


class CsvRow(BaseModel):
    """
    Raw export row. Every column is required and must be a string;
    coercion to numbers and dates happens in data_io.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    date: str = Field(alias="Date")
    client: str = Field(alias="Client")
    project: str = Field(alias="Project")
    project_code: str = Field(alias="Project Code")
    task: str = Field(alias="Task")
    notes: str = Field(alias="Notes")
    hours: str = Field(alias="Hours")
    billable: str = Field(alias="Billable?")
    invoiced: str = Field(alias="Invoiced?")
    first_name: str = Field(alias="First Name")
    last_name: str = Field(alias="Last Name")
    roles: str = Field(alias="Roles")
    employee: str = Field(alias="Employee?")
    billable_rate: str = Field(alias="Billable Rate")
    billable_amount: str = Field(alias="Billable Amount")
    currency: str = Field(alias="Currency")
    external_reference_url: str = Field(alias="External Reference URL")


@dataclass(frozen=True)
class Entry:
    """
    A single validated time entry.

    `hours` is a finite, non-negative float and `date` a calendar date;
    all remaining fields are kept verbatim from the export.
    """

    date: dt.date
    client: str
    project: str
    task: str
    hours: float
    project_code: str = ""
    notes: str = ""
    billable: str = ""
    invoiced: str = ""
    first_name: str = ""
    last_name: str = ""
    roles: str = ""
    employee: str = ""
    billable_rate: str = ""
    billable_amount: str = ""
    currency: str = ""
    external_reference_url: str = ""

    @property
    def category(self) -> str:
        """Team time is broken down by task, everything else by project."""
        return self.task if self.project == TEAM_PROJECT else self.project


@dataclass(frozen=True)
class StackPoint:
    bucket: dt.date
    lower: float
    upper: float

    @property
    def value(self) -> float:
        return self.upper - self.lower


@dataclass
class Stack:
    """One category's (lower, upper) band across all buckets."""

    key: str
    index: int
    points: List[StackPoint] = field(default_factory=list)


@dataclass
class Series:
    """
    All stacks over the same ordered list of weekly buckets.

    stacks[i].points[j].lower == stacks[i - 1].points[j].upper, and the
    first stack starts at 0 in every bucket.
    """

    buckets: List[dt.date] = field(default_factory=list)
    stacks: List[Stack] = field(default_factory=list)

    @property
    def keys(self) -> List[str]:
        return [s.key for s in self.stacks]

    def get(self, key: str) -> Optional[Stack]:
        for stack in self.stacks:
            if stack.key == key:
                return stack
        return None

    def value_extent(self) -> Tuple[float, float]:
        """
        (min, max) over every lower and upper value.

        An empty series has the degenerate extent (0.0, 0.0).
        """
        values = [
            v
            for stack in self.stacks
            for p in stack.points
            for v in (p.lower, p.upper)
        ]
        if not values:
            return 0.0, 0.0
        return min(values), max(values)

    def bucket_totals(self) -> List[float]:
        """Sum of per-category increments for each bucket, in bucket order."""
        totals = [0.0] * len(self.buckets)
        for stack in self.stacks:
            for j, p in enumerate(stack.points):
                totals[j] += p.value
        return totals


@dataclass(frozen=True)
class LabelAnchor:
    """
    Label position relative to the chart center.

    `angle` is the polar angle in radians for radial layouts and None for
    linear ones.
    """

    x: float
    y: float
    angle: Optional[float]
    bucket: dt.date
