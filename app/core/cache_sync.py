# app/core/cache_sync.py

"""
Reference dataset cache sync.

The reference dataset lives in two places: the local cache and the remote
store. Whichever snapshot is newer wins wholesale; there is no field-level
merge. Remote writes are best effort and never retried.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Optional

from app import database
from app.core.normalizers import normalize_date
from app.models import NormalizedEvent, ReferenceDataset, SaveOutcome, SyncResult
from app.storage import LocalStore

logger = logging.getLogger(__name__)

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def resolve(
    local: Optional[ReferenceDataset],
    remote: Optional[ReferenceDataset],
) -> SyncResult:
    """
    Pick the effective dataset.

    - No remote snapshot: local if present, status "communication error"
    - Remote strictly newer than local: remote, status "synced, updated"
    - Otherwise (ties included): local, status "synced"
    """
    if remote is None:
        if local is not None:
            return SyncResult(dataset=local, status="communication error", source="local")
        return SyncResult(dataset=ReferenceDataset(), status="communication error", source="empty")

    # Remote dates can come back re-serialized by the store
    remote = renormalize_dates(remote)

    if _timestamp(remote) > _timestamp(local):
        return SyncResult(dataset=remote, status="synced, updated", source="remote")

    if local is None:
        return SyncResult(dataset=ReferenceDataset(), status="synced", source="empty")
    return SyncResult(dataset=local, status="synced", source="local")


def renormalize_dates(dataset: ReferenceDataset) -> ReferenceDataset:
    events = [
        event.model_copy(update={"date": normalize_date(event.date)})
        for event in dataset.events
    ]
    return dataset.model_copy(update={"events": events})


def _timestamp(dataset: Optional[ReferenceDataset]) -> datetime:
    """Snapshot time; missing snapshots and timestamps sort first."""
    if dataset is None or dataset.fetched_at is None:
        return _EPOCH
    if dataset.fetched_at.tzinfo is None:
        return dataset.fetched_at.replace(tzinfo=timezone.utc)
    return dataset.fetched_at


# ============================================
# Load / save
# ============================================

async def load_reference_dataset(local_store: LocalStore) -> SyncResult:
    """
    Read the local cache and fetch the remote snapshot concurrently.

    When the remote snapshot wins it replaces the local cache.
    """
    local, remote = await asyncio.gather(
        asyncio.to_thread(local_store.load_cache),
        database.fetch_reference_dataset(),
    )

    result = resolve(local, remote)

    if result.source == "remote":
        logger.info(f"Remote reference dataset is newer ({len(result.dataset.events)} events)")
        await asyncio.to_thread(local_store.save_cache, result.dataset)
    elif result.status == "communication error":
        logger.warning("Remote store unavailable; using local reference dataset")

    return result


async def save_reference_dataset(
    events: list[NormalizedEvent],
    file_count: int,
    local_store: LocalStore,
) -> SaveOutcome:
    """
    Cache a freshly parsed dataset and push it to the remote store.

    A failed cache write does not stop the push, and a failed push leaves
    the cached copy in place.
    """
    dataset = ReferenceDataset(
        events=events,
        fetched_at=datetime.now(timezone.utc),
        file_count=file_count,
    )

    cached = await asyncio.to_thread(local_store.save_cache, dataset)
    if not cached:
        logger.warning("Could not cache reference dataset; continuing in memory")

    synced = await database.push_reference_dataset(events, file_count, timestamp=dataset.fetched_at)

    return SaveOutcome(
        dataset=dataset,
        cached=cached,
        synced=synced,
        status="synced" if synced else "sync failed (saved locally)",
    )
