# app/routers/records.py

"""
Self-report record routes.

Records are stored locally first; the record store copy is best effort.
"""

import asyncio

from fastapi import APIRouter, Body, Depends, HTTPException, Query, status

from app.database import append_record, list_records, list_users, update_record
from app.dependencies import get_local_store
from app.storage import LocalStore

router = APIRouter()


# ============================================
# Records
# ============================================

@router.get("/records/{key}")
async def get_records(
    key: str,
    month: str | None = Query(None, description="Only records submitted in this month (YYYY-MM)"),
    local_store: LocalStore = Depends(get_local_store),
):
    records = await asyncio.to_thread(local_store.get_data, key)
    if month:
        records = [r for r in records if str(r.get("timestamp") or "").startswith(month)]
    return {"key": key, "count": len(records), "records": records}


@router.post("/records/{key}", status_code=status.HTTP_201_CREATED)
async def create_record(
    key: str,
    data: dict = Body(...),
    local_store: LocalStore = Depends(get_local_store),
):
    """
    Save a self-reported record.

    The local write must succeed; the remote append may fail and is
    reported through the synced flag.
    """
    record = await asyncio.to_thread(local_store.save_data, key, data)
    if record is None:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to save record locally.",
        )

    synced = await append_record(key, record)

    return {"success": True, "synced": synced, "record": record}


@router.patch("/records/{key}/{record_id}")
async def patch_record(
    key: str,
    record_id: str,
    updates: dict = Body(...),
    local_store: LocalStore = Depends(get_local_store),
):
    record = await asyncio.to_thread(local_store.update_data, key, record_id, updates)
    if record is None:
        raise HTTPException(status_code=404, detail="Record not found")

    synced = await update_record(key, record_id, updates)

    return {"success": True, "synced": synced, "record": record}


@router.get("/records/{key}/remote")
async def get_remote_records(key: str, user_name: str | None = Query(None)):
    """Records as held by the record store."""
    records = await list_records(key, user_name)
    if records is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Record store unavailable.",
        )
    return {"key": key, "count": len(records), "records": records}


# ============================================
# Users
# ============================================

@router.get("/users")
async def get_users():
    users = await list_users()
    return {"available": users is not None, "users": users or []}
