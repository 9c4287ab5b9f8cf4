# app/core/adapter.py

"""
Self-report adapter.

Projects locally stored attendance records into NormalizedEvents so they
can be compared with the reference CSV. Records are classified once into
a tagged variant; everything downstream works on the variant.
"""

import re
from typing import Iterable, Optional

from pydantic import BaseModel, ValidationError

from app.core.normalizers import normalize_date, normalize_name
from app.models import (
    CATEGORY_ATTENDANCE,
    CATEGORY_LATE_EARLY,
    CATEGORY_PAID_LEAVE,
    CATEGORY_COMP_LEAVE,
    ClassifiedRecord,
    CompLeaveReport,
    EventType,
    LateEarlyReport,
    NormalizedEvent,
    PaidLeaveReport,
    SelfReportRecord,
    UnclassifiedReport,
)

# Labels used in the type field, matched by substring ("有給(午前)" -> paid leave)
TYPE_LABELS: dict[str, EventType] = {
    "遅刻": EventType.LATE,
    "早退": EventType.EARLY_LEAVE,
    "中抜け": EventType.OUT_DURING_SHIFT,
    "有給": EventType.PAID_LEAVE,
    "代休": EventType.COMP_LEAVE,
}
TYPE_LABELS.update({event_type.value: event_type for event_type in EventType})

_LEADING_INT = re.compile(r"^\s*[-+]?\d+")
_LEADING_FLOAT = re.compile(r"^\s*[-+]?(?:\d+(?:\.\d*)?|\.\d+)")


class ProjectionStats(BaseModel):
    """Counters for records left out of a projection."""

    outside_month: int = 0
    dropped: int = 0


# ============================================
# Classification
# ============================================

def classify_record(raw: dict) -> ClassifiedRecord:
    """
    Classify one stored record into a tagged variant.

    An explicit type label wins; otherwise the category decides. Records
    with the generic attendance category (or none) are classified by the
    fields they carry.
    """
    try:
        record = SelfReportRecord.model_validate(raw)
    except ValidationError:
        return UnclassifiedReport(raw=raw)

    explicit = resolve_type_label(record.type)
    if explicit in (EventType.LATE, EventType.EARLY_LEAVE, EventType.OUT_DURING_SHIFT):
        return LateEarlyReport(record=record)
    if explicit == EventType.PAID_LEAVE:
        return PaidLeaveReport(record=record)
    if explicit == EventType.COMP_LEAVE:
        return CompLeaveReport(record=record)

    category = record.category
    if category == CATEGORY_ATTENDANCE or not category:
        category = _infer_category(record)

    if category == CATEGORY_LATE_EARLY:
        return LateEarlyReport(record=record)
    if category == CATEGORY_PAID_LEAVE:
        return PaidLeaveReport(record=record)
    if category == CATEGORY_COMP_LEAVE:
        return CompLeaveReport(record=record)
    return UnclassifiedReport(record=record, raw=raw)


def _infer_category(record: SelfReportRecord) -> Optional[str]:
    """Guess the form a generic attendance record came from."""
    if record.leave_date:
        return CATEGORY_COMP_LEAVE
    if record.start_date or (record.days and record.reason):
        return CATEGORY_PAID_LEAVE
    if record.type or record.minutes:
        return CATEGORY_LATE_EARLY
    return None


def resolve_type_label(label: Optional[str]) -> Optional[EventType]:
    """Map a free-text type label to an EventType, or None."""
    if not label:
        return None
    if label in TYPE_LABELS:
        return TYPE_LABELS[label]
    for known, event_type in TYPE_LABELS.items():
        if known in label:
            return event_type
    return None


# ============================================
# Projection
# ============================================

def project_self_reports(
    records: Iterable[dict],
    year_month: str,
    stats: Optional[ProjectionStats] = None,
) -> list[NormalizedEvent]:
    """
    Project stored records of one month into NormalizedEvents.

    Late/early reports come first, then paid leave, then comp leave.
    Unclassifiable records are dropped; pass stats to count them.
    """
    if stats is None:
        stats = ProjectionStats()

    late_early: list[NormalizedEvent] = []
    paid_leave: list[NormalizedEvent] = []
    comp_leave: list[NormalizedEvent] = []

    for index, raw in enumerate(records):
        if not isinstance(raw, dict):
            stats.dropped += 1
            continue
        timestamp = raw.get("timestamp")
        if not isinstance(timestamp, str) or not timestamp.startswith(year_month):
            stats.outside_month += 1
            continue

        classified = classify_record(raw)
        if isinstance(classified, LateEarlyReport):
            late_early.append(_to_event(classified, index))
        elif isinstance(classified, PaidLeaveReport):
            paid_leave.append(_to_event(classified, index))
        elif isinstance(classified, CompLeaveReport):
            comp_leave.append(_to_event(classified, index))
        else:
            stats.dropped += 1

    return late_early + paid_leave + comp_leave


def _to_event(classified: ClassifiedRecord, index: int) -> NormalizedEvent:
    record = classified.record
    event_type = _event_type(classified)

    raw_date = record.date
    if not raw_date:
        if isinstance(classified, PaidLeaveReport):
            raw_date = record.start_date
        elif isinstance(classified, CompLeaveReport):
            raw_date = record.leave_date
    if not raw_date and record.timestamp:
        raw_date = record.timestamp.split("T")[0]

    if event_type.is_leave:
        magnitude = _parse_days(record.days)
    else:
        magnitude = _parse_minutes(record.minutes)

    return NormalizedEvent(
        date=normalize_date(raw_date),
        person=normalize_name(record.user_name),
        event_type=event_type,
        magnitude=magnitude,
        detail=record.reason or record.note or "",
        source_id=str(record.id) if record.id is not None else f"local-{index}",
    )


def _event_type(classified: ClassifiedRecord) -> EventType:
    explicit = resolve_type_label(classified.record.type)
    if explicit is not None:
        return explicit
    if isinstance(classified, PaidLeaveReport):
        return EventType.PAID_LEAVE
    if isinstance(classified, CompLeaveReport):
        return EventType.COMP_LEAVE
    if classified.record.type:
        # Late/early form with a type we don't recognize
        return EventType.OTHER
    return EventType.LATE


def _parse_days(value) -> float:
    """Days of a leave record; 1 when absent or unreadable."""
    if value is None or value == "":
        return 1.0
    if isinstance(value, (int, float)):
        days = float(value)
    else:
        match = _LEADING_FLOAT.match(value)
        if not match:
            return 1.0
        days = float(match.group(0))
    if days == 0:
        return 1.0
    return max(days, 0.0)


def _parse_minutes(value) -> float:
    """Whole minutes of a late/early record; 0 when absent or unreadable."""
    if value is None:
        return 0
    if isinstance(value, (int, float)):
        minutes = int(value)
    else:
        match = _LEADING_INT.match(value)
        if not match:
            return 0
        minutes = int(match.group(0))
    return max(minutes, 0)
