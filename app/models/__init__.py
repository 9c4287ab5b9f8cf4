# app/models/__init__.py

from app.models.event import (
    EventType,
    TIME_TYPES,
    LEAVE_TYPES,
    NormalizedEvent,
    ReferenceDataset,
    ParseResult,
    FileParseResult,
    BatchParseResult,
)
from app.models.record import (
    CATEGORY_ATTENDANCE,
    CATEGORY_LATE_EARLY,
    CATEGORY_PAID_LEAVE,
    CATEGORY_COMP_LEAVE,
    SelfReportRecord,
    LateEarlyReport,
    PaidLeaveReport,
    CompLeaveReport,
    UnclassifiedReport,
    ClassifiedRecord,
)
from app.models.report import (
    MatchedPair,
    MismatchedPair,
    SyncStatus,
    SyncResult,
    SaveOutcome,
    LateArrival,
    StoredRecord,
)

__all__ = [
    # Event
    "EventType",
    "TIME_TYPES",
    "LEAVE_TYPES",
    "NormalizedEvent",
    "ReferenceDataset",
    "ParseResult",
    "FileParseResult",
    "BatchParseResult",
    # Record
    "CATEGORY_ATTENDANCE",
    "CATEGORY_LATE_EARLY",
    "CATEGORY_PAID_LEAVE",
    "CATEGORY_COMP_LEAVE",
    "SelfReportRecord",
    "LateEarlyReport",
    "PaidLeaveReport",
    "CompLeaveReport",
    "UnclassifiedReport",
    "ClassifiedRecord",
    # Report
    "MatchedPair",
    "MismatchedPair",
    "SyncStatus",
    "SyncResult",
    "SaveOutcome",
    "LateArrival",
    "StoredRecord",
]
