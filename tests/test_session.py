# tests/test_session.py

"""
Tests for the reconciliation session and reporting helpers.
"""

from app.core.adapter import ProjectionStats
from app.core.matching import compare
from app.core.reporting import group_late_arrivals, leave_balances_for_report, normalize_leave_balances
from app.core.session import reconcile_month
from app.models import EventType, LateArrival, ReferenceDataset

from tests.factories import make_event


class TestReconciliationSession:
    """Dataset is replaced or cleared, never patched."""

    def test_replace_and_clear(self, session):
        dataset = ReferenceDataset(events=[make_event()], file_count=1)

        session.replace(dataset, "synced")

        assert session.events == dataset.events
        assert session.file_count == 1
        assert session.status == "synced"

        session.clear()

        assert session.events == []
        assert session.status == "cleared"
        assert session.loaded

    def test_new_session_not_loaded(self, session):
        assert not session.loaded
        assert session.status is None

    def test_events_for_month(self, session):
        session.replace(ReferenceDataset(events=[
            make_event(date="2024-02-29"),
            make_event(date="2024-03-01"),
        ]))

        assert [e.date for e in session.events_for_month("2024-03")] == ["2024-03-01"]

    def test_reconcile_month(self, session):
        session.replace(ReferenceDataset(events=[
            make_event(date="2024-03-05", magnitude=60),
            make_event(date="2024-04-01", magnitude=60),
        ]))
        self_reports = [
            {
                "id": 1,
                "timestamp": "2024-03-05T10:00:00+09:00",
                "userName": "田中太郎",
                "category": "遅刻早退",
                "type": "遅刻",
                "date": "2024-03-05",
                "minutes": 60,
            },
            {"id": 2, "timestamp": "2024-03-06T10:00:00+09:00", "category": "勤怠"},
        ]
        stats = ProjectionStats()

        report = reconcile_month(session, self_reports, "2024-03", stats)

        assert len(report.exact_matches) == 1
        assert report.reference_only == []
        assert report.self_report_only == []
        assert stats.dropped == 1


class TestReporting:

    def test_group_late_arrivals(self):
        checks = [
            LateArrival(date="2024-03-12", person="田中"),
            LateArrival(date="2024-03-05", person="佐藤"),
            LateArrival(date="2024-03-03", person="田中"),
            LateArrival(date="2024-03-12", person="田中"),
        ]

        assert group_late_arrivals(checks) == {
            "田中": ["2024-03-03", "2024-03-12"],
            "佐藤": ["2024-03-05"],
        }
        assert list(group_late_arrivals(checks)) == ["田中", "佐藤"]

    def test_normalize_leave_balances(self):
        assert normalize_leave_balances({"田中 太郎01": 8.5}) == {"田中太郎": 8.5}

    def test_leave_balances_for_report(self):
        report = compare(
            [
                make_event(person="田中太郎", event_type=EventType.PAID_LEAVE, magnitude=1),
                make_event(person="佐藤花子", event_type=EventType.LATE, magnitude=30),
            ],
            [make_event(person="田中太郎", event_type=EventType.PAID_LEAVE, magnitude=1, source_id="a")],
        )

        balances = leave_balances_for_report(report, {"田中 太郎": 7.0, "佐藤花子": 3.0})

        assert balances == {"田中太郎": 7.0}
