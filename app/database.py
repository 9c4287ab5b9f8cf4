# app/database.py

"""
Remote record store.

Every call is best effort: failures are logged and come back as None or
False, never as exceptions. An unconfigured store behaves like an
unreachable one, so the app keeps working from local data.
"""

import logging
from datetime import date, datetime, timezone
from functools import lru_cache
from typing import Optional

from pydantic import ValidationError
from supabase import create_client, Client

from app.config import get_settings
from app.core.normalizers import normalize_date
from app.models import LateArrival, NormalizedEvent, ReferenceDataset, StoredRecord

settings = get_settings()
logger = logging.getLogger(__name__)

REFERENCE_DATASET_ID = "current"


@lru_cache()
def get_client() -> Optional[Client]:
    """Admin client, or None when Supabase is not configured."""
    if not settings.supabase_url or not settings.supabase_service_role_key:
        logger.info("Supabase not configured; running local-only")
        return None
    try:
        return create_client(settings.supabase_url, settings.supabase_service_role_key)
    except Exception:
        logger.exception("Failed to create Supabase client; running local-only")
        return None


# ============================================
# Self-report records
# ============================================

async def list_records(key: str, user_name: str = None) -> list[dict] | None:
    """Get stored records for a key, optionally for one user."""
    try:
        client = get_client()
        if client is None:
            return None
        query = client.table("records").select("*").eq("key", key)
        if user_name:
            query = query.eq("user_name", user_name)
        response = query.order("timestamp").execute()
    except Exception:
        logger.exception(f"Failed to list records for {key}")
        return None

    records = []
    for row in response.data:
        try:
            stored = StoredRecord.model_validate(row)
        except ValidationError:
            logger.warning(f"Skipping malformed record row: {row.get('id')}")
            continue
        records.append({
            **(stored.data or {}),
            "id": stored.id,
            "timestamp": stored.timestamp,
            "userName": stored.user_name,
            "category": stored.category,
        })
    return records


async def append_record(key: str, record: dict) -> bool:
    """Append one record."""
    data = {
        "id": str(record.get("id")),
        "key": key,
        "timestamp": record.get("timestamp"),
        "user_name": record.get("userName"),
        "category": record.get("category"),
        "data": record,
    }

    try:
        client = get_client()
        if client is None:
            return False
        response = client.table("records").insert(data).execute()
    except Exception:
        logger.exception(f"Failed to append record to {key}")
        return False

    return bool(response.data)


async def update_record(key: str, record_id: str, updates: dict) -> bool:
    """Shallow-merge updates into a stored record."""
    try:
        client = get_client()
        if client is None:
            return False
        response = client.table("records").select("data").eq("key", key).eq("id", str(record_id)).execute()
        if not response.data:
            return False

        merged = {**(response.data[0].get("data") or {}), **updates}
        response = client.table("records").update({"data": merged}).eq("key", key).eq("id", str(record_id)).execute()
    except Exception:
        logger.exception(f"Failed to update record {record_id} in {key}")
        return False

    return bool(response.data)


# ============================================
# Reference dataset
# ============================================

async def fetch_reference_dataset() -> ReferenceDataset | None:
    """Get the latest reference dataset snapshot."""
    try:
        client = get_client()
        if client is None:
            return None
        response = (
            client.table("reference_datasets")
            .select("*")
            .order("updated_at", desc=True)
            .limit(1)
            .execute()
        )
    except Exception:
        logger.exception("Failed to fetch reference dataset")
        return None

    if not response.data:
        return None

    row = response.data[0]
    try:
        return ReferenceDataset(
            events=row.get("events") or [],
            fetched_at=row.get("updated_at"),
            file_count=row.get("file_count") or 0,
        )
    except ValidationError:
        logger.exception("Remote reference dataset is malformed")
        return None


async def push_reference_dataset(
    events: list[NormalizedEvent],
    file_count: int,
    timestamp: datetime = None,
) -> bool:
    """Replace the remote reference dataset wholesale."""
    if timestamp is None:
        timestamp = datetime.now(timezone.utc)

    data = {
        "id": REFERENCE_DATASET_ID,
        "updated_at": timestamp.isoformat(),
        "file_count": file_count,
        "events": [e.model_dump(mode="json") for e in events],
    }

    try:
        client = get_client()
        if client is None:
            return False
        response = client.table("reference_datasets").upsert(data, on_conflict="id").execute()
    except Exception:
        logger.exception("Failed to push reference dataset")
        return False

    logger.info(f"Pushed {len(events)} reference events ({file_count} files)")
    return bool(response.data)


# ============================================
# Users, late checks, leave balances
# ============================================

async def list_users() -> list[str] | None:
    """Get the registered user names."""
    try:
        client = get_client()
        if client is None:
            return None
        response = client.table("users").select("user_name").order("user_name").execute()
    except Exception:
        logger.exception("Failed to list users")
        return None

    return [row["user_name"] for row in response.data if row.get("user_name")]


async def list_late_arrivals(month: str) -> list[LateArrival] | None:
    """Get late-arrival checks recorded in a month (YYYY-MM)."""
    try:
        start, end = month_bounds(month)
    except ValueError:
        logger.warning(f"Invalid month for late arrivals: {month}")
        return None

    try:
        client = get_client()
        if client is None:
            return None
        response = (
            client.table("late_checks")
            .select("date, employee_name")
            .gte("date", start.isoformat())
            .lt("date", end.isoformat())
            .order("date")
            .execute()
        )
    except Exception:
        logger.exception(f"Failed to list late arrivals for {month}")
        return None

    return [
        LateArrival(date=normalize_date(row["date"]), person=row["employee_name"])
        for row in response.data
        if row.get("date") and row.get("employee_name")
    ]


async def get_leave_balances() -> dict[str, float] | None:
    """Get remaining paid leave days per person."""
    try:
        client = get_client()
        if client is None:
            return None
        response = client.table("leave_balances").select("employee_name, remaining_days").execute()
    except Exception:
        logger.exception("Failed to get leave balances")
        return None

    balances = {}
    for row in response.data:
        name = row.get("employee_name")
        if not name or row.get("remaining_days") is None:
            continue
        try:
            balances[name] = float(row["remaining_days"])
        except (TypeError, ValueError):
            logger.warning(f"Unreadable leave balance for {name}: {row['remaining_days']!r}")
    return balances


def month_bounds(month: str) -> tuple[date, date]:
    """First day of a YYYY-MM month and of the month after."""
    year, mon = (int(part) for part in month.split("-"))
    start = date(year, mon, 1)
    if mon == 12:
        return start, date(year + 1, 1, 1)
    return start, date(year, mon + 1, 1)
