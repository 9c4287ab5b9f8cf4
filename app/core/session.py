# app/core/session.py

"""
Reconciliation session.

Single owner of the in-memory reference dataset. The dataset is only ever
replaced wholesale (new upload or newer remote snapshot) or cleared.
"""

from typing import Iterable, Optional

from app.core.adapter import ProjectionStats, project_self_reports
from app.core.matching import DiffReport, compare
from app.models import NormalizedEvent, ReferenceDataset


class ReconciliationSession:
    """Current reference dataset plus its sync status."""

    def __init__(self):
        self.dataset = ReferenceDataset()
        self.status: Optional[str] = None
        # False until a sync, upload or clear has decided the dataset
        self.loaded = False

    @property
    def events(self) -> list[NormalizedEvent]:
        return self.dataset.events

    @property
    def file_count(self) -> int:
        return self.dataset.file_count

    def replace(self, dataset: ReferenceDataset, status: Optional[str] = None) -> None:
        self.dataset = dataset
        self.status = status
        self.loaded = True

    def clear(self) -> None:
        """Drop the dataset. It stays empty until the next upload or explicit sync."""
        self.dataset = ReferenceDataset()
        self.status = "cleared"
        self.loaded = True

    def events_for_month(self, month: str) -> list[NormalizedEvent]:
        return [e for e in self.dataset.events if e.date.startswith(month)]


def reconcile_month(
    session: ReconciliationSession,
    self_reports: Iterable[dict],
    month: str,
    stats: Optional[ProjectionStats] = None,
) -> DiffReport:
    """Compare the session's reference events of a month with that month's self-reports."""
    reference_events = session.events_for_month(month)
    self_report_events = project_self_reports(self_reports, month, stats)
    return compare(reference_events, self_report_events)
