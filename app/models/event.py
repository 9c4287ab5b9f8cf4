# app/models/event.py

from datetime import datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field


class EventType(str, Enum):
    """Attendance event classification shared by both sources."""

    LATE = "late"
    EARLY_LEAVE = "earlyLeave"
    OUT_DURING_SHIFT = "outDuringShift"
    PAID_LEAVE = "paidLeave"
    COMP_LEAVE = "compLeave"
    OTHER = "other"

    @property
    def is_leave(self) -> bool:
        return self in LEAVE_TYPES


# Magnitude is in minutes for these
TIME_TYPES = frozenset({EventType.LATE, EventType.EARLY_LEAVE, EventType.OUT_DURING_SHIFT})
# ...and in days for these
LEAVE_TYPES = frozenset({EventType.PAID_LEAVE, EventType.COMP_LEAVE})


class NormalizedEvent(BaseModel):
    """A single attendance event from either the reference CSV or a self-report."""

    date: str  # YYYY-MM-DD
    person: str
    event_type: EventType
    magnitude: float = Field(default=0, ge=0, description="Minutes for time types, days for leave types")
    detail: str = ""
    source_id: Optional[str] = None  # self-report events only


class ReferenceDataset(BaseModel):
    """
    Snapshot of parsed reference events.

    Serialized with the cache entry field names
    (timestamp / data / fileCount).
    """

    events: list[NormalizedEvent] = Field(default_factory=list, alias="data")
    fetched_at: Optional[datetime] = Field(default=None, alias="timestamp")
    file_count: int = Field(default=0, ge=0, alias="fileCount")

    class Config:
        populate_by_name = True

    def to_cache(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


# ============================================
# Parse results
# ============================================

class ParseResult(BaseModel):
    """Result of parsing one decoded CSV document."""

    records: list[NormalizedEvent] = Field(default_factory=list)
    error: Optional[str] = None
    skipped_rows: int = 0


class FileParseResult(ParseResult):
    """Parse result tagged with the uploaded file name."""

    file_name: str


class BatchParseResult(BaseModel):
    """Concatenated result of a multi-file upload."""

    records: list[NormalizedEvent] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)
    file_count: int = 0
    skipped_rows: int = 0

    @property
    def failed(self) -> bool:
        """True only when every file in the batch failed."""
        return self.file_count == 0 and bool(self.errors)
