# app/core/csv_parser.py

"""
Reference CSV parser.

Reads the payroll attendance export (one row per person per day, one column
per event kind) and flattens it into NormalizedEvents. Exports come out of
Windows tooling in Shift_JIS, sometimes re-saved as UTF-8, with a few lines
of preamble above the header row.
"""

import asyncio
import logging
import re
from typing import Awaitable, Callable, Iterable, Optional

from app.config import get_settings
from app.core.normalizers import normalize_name, parse_calendar_date
from app.models import (
    EventType,
    NormalizedEvent,
    ParseResult,
    FileParseResult,
    BatchParseResult,
)

settings = get_settings()
logger = logging.getLogger(__name__)

# Header keywords (must appear as whole cells)
DATE_KEYWORD = "日付"
REPORTER_KEYWORD = "報告者"

# Event columns are located by substring; cells may carry units, e.g. "遅刻(h)".
# Per-row emission order follows these lists.
LEAVE_COLUMNS = [
    ("有給", EventType.PAID_LEAVE),
    ("代休", EventType.COMP_LEAVE),
]
TIME_COLUMNS = [
    ("遅刻", EventType.LATE),
    ("早退", EventType.EARLY_LEAVE),
    ("中抜け", EventType.OUT_DURING_SHIFT),
]

ABSENT_LEAVE_VALUES = ("", "-", "0")
ABSENT_TIME_VALUES = ("", "-")

EMPTY_FILE_ERROR = "empty file"
HEADER_NOT_FOUND_ERROR = f"header not found (expected '{DATE_KEYWORD}' and '{REPORTER_KEYWORD}')"
READ_FAILED_ERROR = "failed to read file"

_LINE_BREAK = re.compile(r"\r\n|\n")
_LEADING_FLOAT = re.compile(r"^\s*[-+]?(?:\d+(?:\.\d*)?|\.\d+)")


class ColumnMap:
    """Resolved column indices of a header row (-1 when absent)."""

    def __init__(self, headers: list[str]):
        self.date = _index_of(headers, DATE_KEYWORD)
        self.person = _index_of(headers, REPORTER_KEYWORD)
        self.events: dict[EventType, int] = {
            event_type: _find_containing(headers, keyword)
            for keyword, event_type in LEAVE_COLUMNS + TIME_COLUMNS
        }


# ============================================
# Decoding
# ============================================

def decode_csv_bytes(data: bytes) -> str:
    """
    Decode an export, preferring the legacy encoding.

    Falls back to UTF-8 when the legacy decoding shows neither header
    keyword and the UTF-8 decoding shows the date keyword.
    """
    text = data.decode(settings.legacy_encoding, errors="replace")
    if DATE_KEYWORD in text or REPORTER_KEYWORD in text:
        return text

    utf8_text = data.decode("utf-8-sig", errors="replace")
    if DATE_KEYWORD in utf8_text:
        return utf8_text
    return text


def split_cells(line: str) -> list[str]:
    """Split a CSV line on commas, dropping quotes and surrounding whitespace."""
    return [cell.replace('"', "").strip() for cell in line.split(",")]


# ============================================
# Parsing
# ============================================

def parse_reference_csv(content: str) -> ParseResult:
    """
    Parse decoded CSV text into reference events.

    Rows with too few fields or an unparseable date are skipped and
    counted in skipped_rows; they are not errors.
    """
    lines = [line.strip() for line in _LINE_BREAK.split(content)]
    lines = [line for line in lines if line]
    if not lines:
        return ParseResult(error=EMPTY_FILE_ERROR)

    header = find_header(lines)
    if header is None:
        return ParseResult(error=HEADER_NOT_FOUND_ERROR)

    header_index, headers = header
    columns = ColumnMap(headers)

    records: list[NormalizedEvent] = []
    skipped = 0
    for line in lines[header_index + 1:]:
        events = _parse_row(split_cells(line), columns)
        if events is None:
            skipped += 1
            continue
        records.extend(events)

    return ParseResult(records=records, skipped_rows=skipped)


def find_header(lines: list[str]) -> Optional[tuple[int, list[str]]]:
    """Find the header row within the scan window."""
    for i, line in enumerate(lines[:settings.header_scan_lines]):
        cells = split_cells(line)
        if DATE_KEYWORD in cells and REPORTER_KEYWORD in cells:
            return i, cells
    return None


def _parse_row(values: list[str], columns: ColumnMap) -> Optional[list[NormalizedEvent]]:
    """Events of one data row, or None when the row must be skipped."""
    if len(values) <= columns.person or not 0 <= columns.date < len(values):
        return None

    event_date = parse_calendar_date(values[columns.date])
    if event_date is None:
        return None

    person = normalize_name(values[columns.person])
    events: list[NormalizedEvent] = []

    for _, event_type in LEAVE_COLUMNS:
        cell = _cell(values, columns.events[event_type])
        if cell in ABSENT_LEAVE_VALUES:
            continue
        days = _parse_float(cell)
        if days is None:
            days = 1.0
        if days < 0:
            continue
        events.append(NormalizedEvent(
            date=event_date,
            person=person,
            event_type=event_type,
            magnitude=days,
            detail=cell,
        ))

    for _, event_type in TIME_COLUMNS:
        cell = _cell(values, columns.events[event_type])
        if cell in ABSENT_TIME_VALUES:
            continue
        hours = _parse_float(cell)
        if hours is None or hours <= 0:
            continue
        events.append(NormalizedEvent(
            date=event_date,
            person=person,
            event_type=event_type,
            magnitude=hours * 60,
            detail=f"{cell}h",
        ))

    return events


# ============================================
# Multi-file upload
# ============================================

def is_csv_file(file_name: Optional[str]) -> bool:
    return bool(file_name) and file_name.lower().endswith(".csv")


async def read_reference_file(
    file_name: str,
    read: Callable[[], Awaitable[bytes]],
) -> FileParseResult:
    """
    Read and parse one uploaded file.

    Never raises: read and parse failures come back in the error field.
    """
    try:
        data = await read()
    except Exception:
        logger.exception(f"Failed to read {file_name}")
        return FileParseResult(file_name=file_name, error=READ_FAILED_ERROR)

    try:
        result = await asyncio.to_thread(_decode_and_parse, data)
    except Exception as e:
        logger.exception(f"Failed to parse {file_name}")
        return FileParseResult(file_name=file_name, error=str(e) or READ_FAILED_ERROR)

    if result.error:
        logger.warning(f"{file_name}: {result.error}")
    elif result.skipped_rows:
        logger.info(f"{file_name}: skipped {result.skipped_rows} rows")

    return FileParseResult(
        file_name=file_name,
        records=result.records,
        error=result.error,
        skipped_rows=result.skipped_rows,
    )


async def parse_reference_files(
    files: Iterable[tuple[str, Callable[[], Awaitable[bytes]]]],
) -> BatchParseResult:
    """
    Read every .csv file concurrently and concatenate the results.

    Takes (file name, async reader) pairs; non-CSV names are ignored.
    """
    reads = [
        read_reference_file(file_name, read)
        for file_name, read in files
        if is_csv_file(file_name)
    ]
    results = await asyncio.gather(*reads)
    return merge_file_results(results)


def merge_file_results(results: Iterable[FileParseResult]) -> BatchParseResult:
    """Concatenate successful files and collect per-file errors."""
    batch = BatchParseResult()
    for result in results:
        if result.error:
            batch.errors.append(f"{result.file_name}: {result.error}")
            continue
        batch.records.extend(result.records)
        batch.file_count += 1
        batch.skipped_rows += result.skipped_rows
    return batch


# ============================================
# Helpers
# ============================================

def _decode_and_parse(data: bytes) -> ParseResult:
    return parse_reference_csv(decode_csv_bytes(data))


def _index_of(cells: list[str], keyword: str) -> int:
    return cells.index(keyword) if keyword in cells else -1


def _find_containing(cells: list[str], keyword: str) -> int:
    for i, cell in enumerate(cells):
        if keyword in cell:
            return i
    return -1


def _cell(values: list[str], index: int) -> str:
    if 0 <= index < len(values):
        return values[index]
    return ""


def _parse_float(text: str) -> Optional[float]:
    """Leading numeric prefix of text ("1.5h" -> 1.5), or None."""
    match = _LEADING_FLOAT.match(text)
    if not match:
        return None
    return float(match.group(0))
