# app/core/matching.py

"""
Core attendance reconciliation engine.

Pairs reference CSV events with self-reported events and sorts the result
into exact matches, tolerance mismatches and one-sided events.
"""

from datetime import datetime
from typing import Optional
import math

from app.models import (
    EventType,
    NormalizedEvent,
    MatchedPair,
    MismatchedPair,
)
from app.config import get_settings

settings = get_settings()


class DiffReport:
    """Result of a reconciliation run."""

    def __init__(self):
        self.reference_only: list[NormalizedEvent] = []
        self.self_report_only: list[NormalizedEvent] = []
        self.exact_matches: list[MatchedPair] = []
        self.tolerance_mismatches: list[MismatchedPair] = []
        self.duration_ms: int = 0

    @property
    def is_empty(self) -> bool:
        return not (
            self.reference_only
            or self.self_report_only
            or self.exact_matches
            or self.tolerance_mismatches
        )

    @property
    def summary(self) -> dict:
        return {
            "reference_only": len(self.reference_only),
            "self_report_only": len(self.self_report_only),
            "exact_matches": len(self.exact_matches),
            "tolerance_mismatches": len(self.tolerance_mismatches),
        }

    def to_dict(self) -> dict:
        """Convert to dictionary for API response."""
        return {
            "summary": self.summary,
            "reference_only": [e.model_dump(mode="json") for e in self.reference_only],
            "self_report_only": [e.model_dump(mode="json") for e in self.self_report_only],
            "exact_matches": [m.model_dump(mode="json") for m in self.exact_matches],
            "tolerance_mismatches": [m.model_dump(mode="json") for m in self.tolerance_mismatches],
            "duration_ms": self.duration_ms,
        }


def compare(
    reference_events: list[NormalizedEvent],
    self_report_events: list[NormalizedEvent],
) -> DiffReport:
    """
    Main reconciliation function.

    1. For each reference event take the first compatible self-report
       (same date, same person, compatible type) and compare magnitudes
    2. Self-reports not used by any pair are reported as self-report only

    First match rather than best match: duplicates for the same
    date/person/type are rare and reviewed by hand.
    """
    start_time = datetime.now()
    report = DiffReport()

    # ============================================
    # Pass 1: reference side
    # ============================================
    for reference in reference_events:
        candidate = _find_candidate(reference, self_report_events)

        if candidate is None:
            report.reference_only.append(reference)
            continue

        ref_amount = reference.magnitude or 0
        self_amount = candidate.magnitude or 0
        diff = self_amount - ref_amount

        if is_tolerance_mismatch(reference.event_type, diff):
            report.tolerance_mismatches.append(MismatchedPair(
                reference=reference,
                self_report=candidate,
                diff=diff,
            ))
        else:
            report.exact_matches.append(MatchedPair(
                reference=reference,
                self_report=candidate,
            ))

    # ============================================
    # Pass 2: self-report side
    # ============================================
    matched_ids: set[Optional[str]] = {m.self_report.source_id for m in report.exact_matches}
    matched_ids.update(m.self_report.source_id for m in report.tolerance_mismatches)

    for event in self_report_events:
        if event.source_id not in matched_ids:
            report.self_report_only.append(event)

    report.duration_ms = int((datetime.now() - start_time).total_seconds() * 1000)

    return report


def is_candidate(reference: NormalizedEvent, self_report: NormalizedEvent) -> bool:
    """Same date, same person and compatible event types."""
    return (
        reference.date == self_report.date
        and reference.person == self_report.person
        and types_compatible(reference.event_type, self_report.event_type)
    )


def types_compatible(a: EventType, b: EventType) -> bool:
    """One type label contains the other (coarse vs fine-grained naming)."""
    return a.value in b.value or b.value in a.value


def is_tolerance_mismatch(event_type: EventType, diff: float) -> bool:
    """
    Whether a magnitude difference is outside tolerance.

    Leave types compare days (>= 0.1), time types minutes (>= 5). The
    boundary counts as a mismatch, including values like 1.0 - 0.9 that
    land a hair under it in floating point.
    """
    if event_type.is_leave:
        tolerance = settings.leave_tolerance_days
    else:
        tolerance = settings.time_tolerance_minutes

    gap = abs(diff)
    return gap >= tolerance or math.isclose(gap, tolerance, rel_tol=1e-9, abs_tol=1e-9)


def _find_candidate(
    reference: NormalizedEvent,
    self_report_events: list[NormalizedEvent],
) -> Optional[NormalizedEvent]:
    for event in self_report_events:
        if is_candidate(reference, event):
            return event
    return None
