# app/routers/reference.py

"""
Reference dataset routes.

Upload of the payroll attendance CSV export, cache sync and reset.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile, status

from app.core.cache_sync import load_reference_dataset, save_reference_dataset
from app.core.csv_parser import is_csv_file, parse_reference_files
from app.core.session import ReconciliationSession
from app.dependencies import get_local_store, get_session
from app.storage import LocalStore

logger = logging.getLogger(__name__)
router = APIRouter()


# ============================================
# Upload
# ============================================

@router.post("/upload")
async def upload_reference(
    files: Optional[list[UploadFile]] = File(None),
    session: ReconciliationSession = Depends(get_session),
    local_store: LocalStore = Depends(get_local_store),
):
    """
    Parse one or more reference CSV files and make them the current dataset.

    1. Reads every .csv file concurrently (other files are ignored)
    2. Caches the merged events locally
    3. Pushes them to the record store (best effort)
    4. Replaces the session dataset
    """
    csv_files = [f for f in files or [] if is_csv_file(f.filename)]
    if not csv_files:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No CSV files uploaded.",
        )

    batch = await parse_reference_files((f.filename, f.read) for f in csv_files)

    if batch.failed:
        raise HTTPException(
            status_code=422,
            detail={
                "error": "Could not read any of the uploaded files.",
                "errors": batch.errors,
            },
        )

    outcome = await save_reference_dataset(batch.records, batch.file_count, local_store)
    session.replace(outcome.dataset, outcome.status)

    logger.info(
        f"Loaded {len(batch.records)} reference events from {batch.file_count} files "
        f"({len(batch.errors)} failed, {batch.skipped_rows} rows skipped)"
    )

    return {
        "success": True,
        "record_count": len(batch.records),
        "file_count": batch.file_count,
        "skipped_rows": batch.skipped_rows,
        "errors": batch.errors,
        "cached": outcome.cached,
        "status": outcome.status,
    }


# ============================================
# Current dataset
# ============================================

@router.get("")
async def get_reference(
    month: Optional[str] = Query(None, description="Only events of this month (YYYY-MM)"),
    session: ReconciliationSession = Depends(get_session),
    local_store: LocalStore = Depends(get_local_store),
):
    """
    Sync the local cache with the record store and return the current dataset.
    """
    result = await load_reference_dataset(local_store)
    session.replace(result.dataset, result.status)

    events = session.events_for_month(month) if month else session.events

    return {
        "status": result.status,
        "source": result.source,
        "timestamp": result.dataset.fetched_at.isoformat() if result.dataset.fetched_at else None,
        "file_count": result.dataset.file_count,
        "event_count": len(result.dataset.events),
        "events": [e.model_dump(mode="json") for e in events],
    }


@router.delete("")
async def clear_reference(
    session: ReconciliationSession = Depends(get_session),
    local_store: LocalStore = Depends(get_local_store),
):
    """Drop the cached dataset. The record store copy is left alone."""
    local_store.clear_cache()
    session.clear()
    return {"success": True}
