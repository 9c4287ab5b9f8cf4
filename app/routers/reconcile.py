# app/routers/reconcile.py

"""
Reconciliation routes.

The main endpoint that runs the matching engine for one month.
"""

import asyncio
import logging
import re

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel

from app.core.adapter import ProjectionStats
from app.core.cache_sync import load_reference_dataset
from app.core.reporting import group_late_arrivals, leave_balances_for_report
from app.core.session import ReconciliationSession, reconcile_month
from app.database import get_leave_balances, list_late_arrivals
from app.dependencies import get_local_store, get_session
from app.storage import ATTENDANCE_KEY, LocalStore

logger = logging.getLogger(__name__)
router = APIRouter()

MONTH_PATTERN = re.compile(r"[0-9]{4}-(0[1-9]|1[0-2])")


class ReconcileRequest(BaseModel):
    month: str  # YYYY-MM


class ReconcileResponse(BaseModel):
    success: bool
    month: str
    status: str | None
    file_count: int
    reference_count: int
    summary: dict
    reference_only: list
    self_report_only: list
    exact_matches: list
    tolerance_mismatches: list
    leave_balances: dict
    dropped_records: int
    duration_ms: int


def validate_month(month: str) -> str:
    if not MONTH_PATTERN.fullmatch(month or ""):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="month must be formatted as YYYY-MM",
        )
    return month


# ============================================
# Main Reconciliation Endpoint
# ============================================

@router.post("/reconcile", response_model=ReconcileResponse)
async def run_reconciliation(
    request: ReconcileRequest,
    session: ReconciliationSession = Depends(get_session),
    local_store: LocalStore = Depends(get_local_store),
):
    """
    Run reconciliation for one month.

    1. Loads the reference dataset if this process has not synced yet
    2. Projects that month's self-reported records
    3. Runs the matching engine
    4. Adds remaining paid leave for people with paid leave rows
    """
    month = validate_month(request.month)

    if not session.loaded:
        result = await load_reference_dataset(local_store)
        session.replace(result.dataset, result.status)

    self_reports = await asyncio.to_thread(local_store.get_data, ATTENDANCE_KEY)

    stats = ProjectionStats()
    report = reconcile_month(session, self_reports, month, stats)

    if stats.dropped:
        logger.info(f"{month}: {stats.dropped} self-reports could not be classified")

    balances = await get_leave_balances()
    leave_balances = leave_balances_for_report(report, balances) if balances else {}

    return ReconcileResponse(
        success=True,
        month=month,
        status=session.status,
        file_count=session.file_count,
        reference_count=len(session.events_for_month(month)),
        leave_balances=leave_balances,
        dropped_records=stats.dropped,
        **report.to_dict(),
    )


# ============================================
# Late-arrival history
# ============================================

@router.get("/reconcile/late-history")
async def late_history(month: str = Query(..., description="YYYY-MM")):
    """Late-arrival checks of a month, grouped per person."""
    month = validate_month(month)

    checks = await list_late_arrivals(month)
    if checks is None:
        return {"month": month, "available": False, "late_arrivals": {}}

    return {
        "month": month,
        "available": True,
        "late_arrivals": group_late_arrivals(checks),
    }
