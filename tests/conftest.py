"""Shared fixtures: entry and CSV export factories."""

from __future__ import annotations

import csv
import datetime as dt
from io import StringIO
from typing import Any, Callable, Dict, List, Optional, Sequence

import pytest

from year_in_review.config import Config
from year_in_review.data_io import REQUIRED_COLUMNS
from year_in_review.schema import Entry


def _row(**overrides: Any) -> Dict[str, str]:
    row = {col: "" for col in REQUIRED_COLUMNS}
    row.update(
        {
            "Date": "2024-01-01",
            "Client": "Acme",
            "Project": "Alpha",
            "Project Code": "ALP",
            "Task": "Development",
            "Hours": "1.0",
            "Billable?": "Yes",
            "Invoiced?": "No",
            "First Name": "Sam",
            "Last Name": "Doe",
            "Roles": "Engineer",
            "Employee?": "Yes",
            "Billable Rate": "100",
            "Billable Amount": "100",
            "Currency": "US Dollar - USD",
        }
    )
    row.update(overrides)
    return row


@pytest.fixture
def make_row() -> Callable[..., Dict[str, str]]:
    """Factory for one export row; keyword names are CSV column names."""

    def _make(**overrides: Any) -> Dict[str, str]:
        return _row(**overrides)

    return _make


@pytest.fixture
def make_csv() -> Callable[..., str]:
    """Factory rendering rows (dicts keyed by column) as CSV text."""

    def _make(
        rows: Sequence[Dict[str, str]],
        columns: Optional[Sequence[str]] = None,
    ) -> str:
        columns = list(columns or REQUIRED_COLUMNS)
        buffer = StringIO()
        writer = csv.DictWriter(buffer, fieldnames=columns, extrasaction="ignore")
        writer.writeheader()
        for row in rows:
            writer.writerow(row)
        return buffer.getvalue()

    return _make


@pytest.fixture
def make_entry() -> Callable[..., Entry]:
    def _make(
        date: str,
        project: str,
        hours: float,
        task: str = "Development",
        client: str = "Acme",
    ) -> Entry:
        return Entry(
            date=dt.date.fromisoformat(date),
            client=client,
            project=project,
            task=task,
            hours=hours,
        )

    return _make


@pytest.fixture
def scenario_a(make_entry) -> List[Entry]:
    return [
        make_entry("2024-01-01", "Alpha", 5),
        make_entry("2024-01-02", "Alpha", 3),
        make_entry("2024-01-08", "Beta", 2),
    ]


@pytest.fixture
def year_entries(make_entry) -> List[Entry]:
    """A few months of mixed project and Team time."""
    entries = []
    projects = ["Alpha", "Beta", "Gamma"]
    start = dt.date(2024, 1, 3)
    for week in range(20):
        day = start + dt.timedelta(days=7 * week)
        entries.append(make_entry(day.isoformat(), projects[week % 3], 4 + week % 5))
        entries.append(make_entry(day.isoformat(), "Team", 1.5, task="Coordination"))
        if week % 4 == 0:
            entries.append(make_entry(day.isoformat(), "Team", 2, task="Standup"))
    return entries


@pytest.fixture
def config() -> Config:
    return Config()
