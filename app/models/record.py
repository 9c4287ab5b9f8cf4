# app/models/record.py

"""
Self-reported attendance records.

Stored records are loose dicts whose meaning depends on which fields are
present. The classifier in app.core.adapter turns each one into exactly one
of the tagged variants below.
"""

from typing import Annotated, Literal, Optional, Union
from pydantic import BaseModel, Field

# Category labels written by the attendance forms
CATEGORY_ATTENDANCE = "勤怠"
CATEGORY_LATE_EARLY = "遅刻早退"
CATEGORY_PAID_LEAVE = "有給申請"
CATEGORY_COMP_LEAVE = "代休申請"


class SelfReportRecord(BaseModel):
    """A stored self-report as written by the attendance forms."""

    id: Optional[Union[int, str]] = None
    timestamp: Optional[str] = None
    user_name: Optional[str] = Field(default=None, alias="userName")
    category: Optional[str] = None
    type: Optional[str] = None
    date: Optional[str] = None
    start_date: Optional[str] = Field(default=None, alias="startDate")
    leave_date: Optional[str] = Field(default=None, alias="leaveDate")
    days: Optional[Union[float, str]] = None
    minutes: Optional[Union[int, float, str]] = None
    reason: Optional[str] = None
    note: Optional[str] = None

    class Config:
        populate_by_name = True
        extra = "allow"
        # Forms and spreadsheet round-trips can store names or dates as numbers
        coerce_numbers_to_str = True


# ============================================
# Classified variants
# ============================================

class LateEarlyReport(BaseModel):
    """Late arrival, early leave or out-during-shift report."""

    kind: Literal["late_early"] = "late_early"
    record: SelfReportRecord


class PaidLeaveReport(BaseModel):
    """Paid leave request."""

    kind: Literal["paid_leave"] = "paid_leave"
    record: SelfReportRecord


class CompLeaveReport(BaseModel):
    """Compensatory leave request."""

    kind: Literal["comp_leave"] = "comp_leave"
    record: SelfReportRecord


class UnclassifiedReport(BaseModel):
    """A record matching no recognized shape."""

    kind: Literal["unclassified"] = "unclassified"
    record: Optional[SelfReportRecord] = None
    raw: dict = Field(default_factory=dict)


ClassifiedRecord = Annotated[
    Union[LateEarlyReport, PaidLeaveReport, CompLeaveReport, UnclassifiedReport],
    Field(discriminator="kind"),
]
