# tests/test_routes.py

"""
Tests for the HTTP API.
"""

from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

from app import database
from app.dependencies import get_local_store, get_session
from app.main import app
from app.models import EventType, LateArrival, NormalizedEvent, ReferenceDataset
from app.routers import reconcile as reconcile_router
from app.storage import ATTENDANCE_KEY

HEADER = "日付,報告者,遅刻,早退,中抜け,有給,代休"


@pytest.fixture
def client(session, local_store):
    app.dependency_overrides[get_session] = lambda: session
    app.dependency_overrides[get_local_store] = lambda: local_store
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def csv_upload(name: str, *lines: str, encoding: str = "cp932"):
    return ("files", (name, "\r\n".join(lines).encode(encoding), "text/csv"))


# ============================================
# Health
# ============================================

class TestHealth:

    def test_health(self, client):
        assert client.get("/health").json()["status"] == "healthy"

    def test_root(self, client):
        assert client.get("/").json()["status"] == "running"


# ============================================
# Reference Upload
# ============================================

class TestReferenceUpload:
    """Multi-file upload of the reference CSV export."""

    def test_good_and_headerless_file(self, client, session, local_store):
        """Only the readable file counts; the broken one is reported."""
        response = client.post("/reference/upload", files=[
            csv_upload(
                "march.csv",
                HEADER,
                "2024-03-05,田中太郎,-,-,-,1,-",
                "2024-03-06,田中太郎,-,-,-,0.5,-",
                "2024-03-07,佐藤花子,-,-,-,-,1",
            ),
            csv_upload("broken.csv", "2024-03-05,田中太郎,1"),
        ])

        assert response.status_code == 200
        body = response.json()
        assert body["record_count"] == 3
        assert body["file_count"] == 1
        assert len(body["errors"]) == 1
        assert body["errors"][0].startswith("broken.csv:")
        assert body["status"] == "sync failed (saved locally)"

        assert len(session.events) == 3
        assert session.file_count == 1
        assert local_store.load_cache().file_count == 1

    def test_all_files_failed(self, client, session):
        response = client.post("/reference/upload", files=[
            csv_upload("a.csv", "no header here"),
            csv_upload("b.csv", ""),
        ])

        assert response.status_code == 422
        assert len(response.json()["detail"]["errors"]) == 2
        assert session.events == []

    def test_no_csv_files(self, client):
        response = client.post("/reference/upload", files=[
            ("files", ("notes.txt", b"hello", "text/plain")),
        ])
        assert response.status_code == 400

    def test_no_files(self, client):
        assert client.post("/reference/upload").status_code == 400

    def test_utf8_upload(self, client):
        response = client.post("/reference/upload", files=[
            csv_upload("march.csv", HEADER, "2024-03-05,田中太郎,1,-,-,-,-", encoding="utf-8"),
        ])

        assert response.json()["record_count"] == 1


class TestReferenceDataset:
    """Cache sync and reset."""

    def test_get_uses_cache_when_offline(self, client, local_store):
        client.post("/reference/upload", files=[
            csv_upload("march.csv", HEADER, "2024-03-05,田中太郎,1,-,-,-,-", "2024-04-01,田中太郎,1,-,-,-,-"),
        ])

        body = client.get("/reference", params={"month": "2024-03"}).json()

        assert body["status"] == "communication error"
        assert body["source"] == "local"
        assert body["event_count"] == 2
        assert [e["date"] for e in body["events"]] == ["2024-03-05"]

    def test_delete(self, client, session, local_store):
        client.post("/reference/upload", files=[
            csv_upload("march.csv", HEADER, "2024-03-05,田中太郎,1,-,-,-,-"),
        ])

        assert client.delete("/reference").json()["success"]
        assert session.events == []
        assert local_store.load_cache() is None


# ============================================
# Reconciliation
# ============================================

class TestReconcile:
    """Month reconciliation over the session dataset."""

    def upload(self, client, *rows):
        client.post("/reference/upload", files=[csv_upload("march.csv", HEADER, *rows)])

    def test_reconcile(self, client, local_store):
        self.upload(
            client,
            "2024-03-05,田中太郎,1,-,-,-,-",
            "2024-03-06,田中太郎,-,-,-,1,-",
            "2024-03-07,佐藤花子,-,0.5,-,-,-",
        )
        local_store._write(ATTENDANCE_KEY, [
            {
                "id": 1,
                "timestamp": "2024-03-05T10:00:00+09:00",
                "userName": "田中 太郎",
                "category": "遅刻早退",
                "type": "遅刻",
                "date": "2024-03-05",
                "minutes": "50",
            },
            {
                "id": 2,
                "timestamp": "2024-03-01T18:00:00+09:00",
                "userName": "田中太郎",
                "category": "有給申請",
                "startDate": "2024-03-06",
                "days": 1,
            },
        ])

        response = client.post("/reconcile", json={"month": "2024-03"})

        assert response.status_code == 200
        body = response.json()
        assert body["summary"] == {
            "reference_only": 1,
            "self_report_only": 0,
            "exact_matches": 1,
            "tolerance_mismatches": 1,
        }
        assert body["tolerance_mismatches"][0]["diff"] == -10
        assert body["reference_only"][0]["person"] == "佐藤花子"
        assert body["file_count"] == 1

    def test_self_reports_only(self, client, local_store, monkeypatch):
        local_store._write(ATTENDANCE_KEY, [{
            "id": 1,
            "timestamp": "2024-03-06T09:00:00+09:00",
            "userName": "田中太郎",
            "category": "有給申請",
            "startDate": "2024-03-06",
            "days": 1,
        }])

        async def balances():
            return {"田中 太郎": 9.5}

        monkeypatch.setattr(reconcile_router, "get_leave_balances", balances)

        body = client.post("/reconcile", json={"month": "2024-03"}).json()

        assert body["summary"]["self_report_only"] == 1
        assert body["self_report_only"][0]["source_id"] == "1"
        assert body["leave_balances"] == {"田中太郎": 9.5}
        assert body["status"] == "communication error"

    def test_clear_survives_reconcile(self, client, session, local_store, monkeypatch):
        """A cleared dataset is not pulled back from the record store by the next run."""
        remote = ReferenceDataset(
            events=[NormalizedEvent(date="2024-03-05", person="田中太郎", event_type=EventType.LATE, magnitude=60)],
            fetched_at=datetime(2030, 1, 1, tzinfo=timezone.utc),
            file_count=1,
        )

        async def fetch():
            return remote

        monkeypatch.setattr(database, "fetch_reference_dataset", fetch)
        self.upload(client, "2024-03-05,田中太郎,1,-,-,-,-")

        client.delete("/reference")
        body = client.post("/reconcile", json={"month": "2024-03"}).json()

        assert body["reference_count"] == 0
        assert body["status"] == "cleared"
        assert session.events == []
        assert local_store.load_cache() is None

    @pytest.mark.parametrize("month", ["2024-3", "2024-13", "March", ""])
    def test_bad_month(self, client, month):
        assert client.post("/reconcile", json={"month": month}).status_code == 400

    def test_late_history(self, client, monkeypatch):
        async def late_arrivals(month):
            return [
                LateArrival(date="2024-03-12", person="田中"),
                LateArrival(date="2024-03-03", person="田中"),
            ]

        monkeypatch.setattr(reconcile_router, "list_late_arrivals", late_arrivals)

        body = client.get("/reconcile/late-history", params={"month": "2024-03"}).json()

        assert body["available"]
        assert body["late_arrivals"] == {"田中": ["2024-03-03", "2024-03-12"]}

    def test_late_history_offline(self, client):
        body = client.get("/reconcile/late-history", params={"month": "2024-03"}).json()
        assert body == {"month": "2024-03", "available": False, "late_arrivals": {}}


# ============================================
# Records
# ============================================

class TestRecords:
    """Self-report CRUD."""

    def test_create_and_list(self, client):
        response = client.post(f"/records/{ATTENDANCE_KEY}", json={"type": "遅刻", "minutes": 10})

        assert response.status_code == 201
        body = response.json()
        assert body["synced"] is False
        assert body["record"]["category"] == "勤怠"

        listed = client.get(f"/records/{ATTENDANCE_KEY}").json()
        assert listed["count"] == 1

    def test_patch(self, client):
        record = client.post(f"/records/{ATTENDANCE_KEY}", json={"minutes": 10}).json()["record"]

        response = client.patch(f"/records/{ATTENDANCE_KEY}/{record['id']}", json={"minutes": 20})

        assert response.status_code == 200
        assert response.json()["record"]["minutes"] == 20

    def test_patch_unknown(self, client):
        assert client.patch(f"/records/{ATTENDANCE_KEY}/123", json={"minutes": 20}).status_code == 404

    def test_remote_records_unavailable(self, client):
        assert client.get(f"/records/{ATTENDANCE_KEY}/remote").status_code == 503

    def test_users_offline(self, client):
        assert client.get("/users").json() == {"available": False, "users": []}
