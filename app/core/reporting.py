# app/core/reporting.py

"""Helpers shaping store data for the reconciliation views."""

from app.core.matching import DiffReport
from app.core.normalizers import normalize_name
from app.models import EventType, LateArrival


def group_late_arrivals(checks: list[LateArrival]) -> dict[str, list[str]]:
    """
    Late-arrival dates per person, de-duplicated and sorted.

    People keep the order in which they first appear.
    """
    grouped: dict[str, set[str]] = {}
    for check in checks:
        grouped.setdefault(check.person, set()).add(check.date)
    return {person: sorted(dates) for person, dates in grouped.items()}


def normalize_leave_balances(balances: dict[str, float]) -> dict[str, float]:
    """Key leave balances by normalized name."""
    return {normalize_name(name): days for name, days in balances.items()}


def leave_balances_for_report(report: DiffReport, balances: dict[str, float]) -> dict[str, float]:
    """Remaining paid leave of everyone with a paid leave row in the report."""
    normalized = normalize_leave_balances(balances)

    people = [e.person for e in report.reference_only + report.self_report_only if e.event_type == EventType.PAID_LEAVE]
    for pair in report.exact_matches + report.tolerance_mismatches:
        if EventType.PAID_LEAVE in (pair.reference.event_type, pair.self_report.event_type):
            people.append(pair.reference.person)

    return {person: normalized[person] for person in people if person in normalized}
