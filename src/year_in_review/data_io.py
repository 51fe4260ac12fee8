"""
Data I/O utilities.

Provides thin helpers to:
- Parse a time-tracking CSV export (Harvest "Detailed report") into Entries
- Load such an export from a local file
- Decode an uploaded file

Parsing is all-or-nothing: one bad row rejects the whole file.
"""

from __future__ import annotations

import csv
import datetime as dt
from io import StringIO
import logging
import math
from typing import List, Optional

from pydantic import ValidationError

from .schema import CsvRow, Entry

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = (
    "Date",
    "Client",
    "Project",
    "Project Code",
    "Task",
    "Notes",
    "Hours",
    "Billable?",
    "Invoiced?",
    "First Name",
    "Last Name",
    "Roles",
    "Employee?",
    "Billable Rate",
    "Billable Amount",
    "Currency",
    "External Reference URL",
)

INTAKE_HINT = (
    "Use a Harvest CSV export. You can download one by going to "
    "Harvest > Reports > the user you are interested in > Detailed report "
    "> Export > CSV."
)

_DATE_FORMATS = ("%m/%d/%Y", "%Y/%m/%d")


class EntryParseError(ValueError):
    """
    Raised when an export does not match the expected schema.

    `line` is the 1-based CSV line of the offending row, or None when the
    problem concerns the file as a whole (header, encoding).
    """

    def __init__(self, message: str, line: Optional[int] = None) -> None:
        self.reason = message
        self.line = line
        if line is not None:
            message = f"line {line}: {message}"
        super().__init__(
            "Error parsing the file. Please make sure the file matches the "
            f"specified schema: {message}"
        )


# --- Field coercion ----------------------------------------------------------


def parse_date(value: str) -> dt.date:
    """
    Parse an export date.

    Accepts ISO dates (2024-01-31), US dates (01/31/2024) and
    2024/01/31. A trailing time component on ISO values is ignored, but
    any other trailing text is not.
    """
    text = value.strip()
    if not text:
        raise ValueError("empty date")
    if len(text) == 10 or (len(text) > 10 and text[10] in "T "):
        try:
            return dt.datetime.fromisoformat(text).date()
        except ValueError:
            pass
    for fmt in _DATE_FORMATS:
        try:
            return dt.datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    raise ValueError(f"unparseable date {value!r}")


def parse_hours(value: str) -> float:
    """Parse an hours cell into a finite, non-negative float."""
    text = value.strip()
    if not text:
        raise ValueError("empty hours value")
    try:
        hours = float(text)
    except ValueError:
        raise ValueError(f"non-numeric hours {value!r}") from None
    if not math.isfinite(hours):
        raise ValueError(f"non-finite hours {value!r}")
    if hours < 0.0:
        raise ValueError(f"negative hours {value!r}")
    return hours


def entry_from_row(row: CsvRow) -> Entry:
    return Entry(
        date=parse_date(row.date),
        client=row.client,
        project=row.project,
        project_code=row.project_code,
        task=row.task,
        notes=row.notes,
        hours=parse_hours(row.hours),
        billable=row.billable,
        invoiced=row.invoiced,
        first_name=row.first_name,
        last_name=row.last_name,
        roles=row.roles,
        employee=row.employee,
        billable_rate=row.billable_rate,
        billable_amount=row.billable_amount,
        currency=row.currency,
        external_reference_url=row.external_reference_url,
    )


def _describe_validation_error(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors():
        column = ".".join(str(loc) for loc in err.get("loc", ()))
        parts.append(f"{column}: {err.get('msg')}")
    return "; ".join(parts)


# --- Parsing -----------------------------------------------------------------


def parse_entries(text: str) -> List[Entry]:
    """
    Parse CSV text into Entries, in file order.

    The header row must contain every column in REQUIRED_COLUMNS (extra
    columns are ignored). Blank lines are skipped. Any missing column,
    short row, non-numeric hours or unparseable date raises
    EntryParseError and no entries are returned.
    """
    if text.startswith("\ufeff"):
        text = text[1:]

    reader = csv.DictReader(StringIO(text))
    header = reader.fieldnames
    if not header:
        raise EntryParseError("the file is empty or has no header row")

    present = {name.strip() for name in header if name is not None}
    missing = [col for col in REQUIRED_COLUMNS if col not in present]
    if missing:
        raise EntryParseError(
            "missing required column(s): " + ", ".join(missing)
        )

    entries: List[Entry] = []
    for row in reader:
        if not any((v or "").strip() for k, v in row.items() if k is not None):
            continue

        # Header cells may carry stray whitespace in some exports
        cleaned = {k.strip(): v for k, v in row.items() if k is not None}
        line = reader.line_num
        try:
            entries.append(entry_from_row(CsvRow.model_validate(cleaned)))
        except ValidationError as exc:
            raise EntryParseError(_describe_validation_error(exc), line) from exc
        except ValueError as exc:
            raise EntryParseError(str(exc), line) from exc

    logger.info("Parsed %d entries", len(entries))
    return entries


def load_entries_from_csv(path: str) -> List[Entry]:
    """
    Load entries from a CSV file on disk.

    The file is read as UTF-8; a byte-order mark is tolerated.
    """
    with open(path, mode="r", newline="", encoding="utf-8-sig") as f:
        text = f.read()
    return parse_entries(text)


def read_upload(data: bytes) -> List[Entry]:
    """Decode an uploaded export and parse it."""
    try:
        text = data.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise EntryParseError(f"the file is not valid UTF-8 ({exc.reason})") from exc
    return parse_entries(text)
