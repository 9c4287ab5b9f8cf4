# tests/test_cache_sync.py

"""
Tests for reference dataset cache sync.
"""

import asyncio
from datetime import datetime, timedelta, timezone

from app import database
from app.core.cache_sync import load_reference_dataset, resolve, save_reference_dataset
from app.models import EventType, ReferenceDataset
from app.storage import LocalStore

from tests.factories import make_event

T0 = datetime(2024, 3, 5, 0, 0, tzinfo=timezone.utc)


def make_dataset(fetched_at=T0, dates=("2024-03-05",), file_count=1) -> ReferenceDataset:
    return ReferenceDataset(
        events=[make_event(date=d) for d in dates],
        fetched_at=fetched_at,
        file_count=file_count,
    )


# ============================================
# Resolution Tests
# ============================================

class TestResolve:
    """Newer snapshot wins wholesale; ties favor local."""

    def test_remote_newer(self):
        local = make_dataset(dates=("2024-03-01",))
        remote = make_dataset(fetched_at=T0 + timedelta(seconds=1), dates=("2024/03/05", "2024-03-06"), file_count=2)

        result = resolve(local, remote)

        assert result.status == "synced, updated"
        assert result.source == "remote"
        assert [e.date for e in result.dataset.events] == ["2024-03-05", "2024-03-06"]
        assert result.dataset.file_count == 2

    def test_tie_favors_local(self):
        local = make_dataset(dates=("2024-03-01",))
        remote = make_dataset(dates=("2024-03-09",))

        result = resolve(local, remote)

        assert result.status == "synced"
        assert result.source == "local"
        assert result.dataset.events[0].date == "2024-03-01"

    def test_local_newer(self):
        result = resolve(make_dataset(fetched_at=T0 + timedelta(hours=1)), make_dataset())
        assert result.source == "local"

    def test_no_local(self):
        result = resolve(None, make_dataset())

        assert result.source == "remote"
        assert result.status == "synced, updated"

    def test_remote_without_timestamp_never_wins(self):
        result = resolve(None, make_dataset(fetched_at=None))

        assert result.source == "empty"
        assert result.status == "synced"
        assert result.dataset.events == []

    def test_naive_timestamp_read_as_utc(self):
        local = make_dataset(fetched_at=T0)
        remote = make_dataset(fetched_at=datetime(2024, 3, 5, 0, 0, 1))

        assert resolve(local, remote).source == "remote"

    def test_remote_unavailable(self):
        local = make_dataset()

        result = resolve(local, None)

        assert result.status == "communication error"
        assert result.dataset == local

    def test_nothing_anywhere(self):
        result = resolve(None, None)

        assert result.status == "communication error"
        assert result.source == "empty"
        assert result.dataset.events == []


# ============================================
# Load / Save Tests
# ============================================

class TestLoadReferenceDataset:
    """Concurrent cache read and remote fetch."""

    def test_remote_win_rewrites_cache(self, local_store, monkeypatch):
        local_store.save_cache(make_dataset(dates=("2024-03-01",)))
        remote = make_dataset(fetched_at=T0 + timedelta(days=1), dates=("2024-03-20",))

        async def fetch():
            return remote

        monkeypatch.setattr(database, "fetch_reference_dataset", fetch)

        result = asyncio.run(load_reference_dataset(local_store))

        assert result.source == "remote"
        assert [e.date for e in local_store.load_cache().events] == ["2024-03-20"]

    def test_offline_uses_cache(self, local_store):
        local_store.save_cache(make_dataset(dates=("2024-03-01",)))

        result = asyncio.run(load_reference_dataset(local_store))

        assert result.status == "communication error"
        assert result.source == "local"
        assert result.dataset.events[0].date == "2024-03-01"


class TestSaveReferenceDataset:
    """Cache first, then a best-effort push."""

    def test_push_failure_keeps_cache(self, local_store):
        events = [make_event(event_type=EventType.PAID_LEAVE, magnitude=1)]

        outcome = asyncio.run(save_reference_dataset(events, 1, local_store))

        assert outcome.cached
        assert not outcome.synced
        assert outcome.status == "sync failed (saved locally)"
        assert local_store.load_cache().events == events

    def test_push_uses_cache_timestamp(self, local_store, monkeypatch):
        pushed = {}

        async def push(events, file_count, timestamp=None):
            pushed.update(events=events, file_count=file_count, timestamp=timestamp)
            return True

        monkeypatch.setattr(database, "push_reference_dataset", push)

        outcome = asyncio.run(save_reference_dataset([make_event()], 2, local_store))

        assert outcome.status == "synced"
        assert pushed["file_count"] == 2
        assert pushed["timestamp"] == outcome.dataset.fetched_at
        assert local_store.load_cache().fetched_at == outcome.dataset.fetched_at

    def test_cache_failure_does_not_block_push(self, tmp_path, monkeypatch):
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")
        store = LocalStore(blocker)

        async def push(events, file_count, timestamp=None):
            return True

        monkeypatch.setattr(database, "push_reference_dataset", push)

        outcome = asyncio.run(save_reference_dataset([make_event()], 1, store))

        assert not outcome.cached
        assert outcome.synced
