# app/core/__init__.py

from app.core.matching import compare, DiffReport
from app.core.csv_parser import parse_reference_csv, parse_reference_files
from app.core.adapter import classify_record, project_self_reports, ProjectionStats
from app.core.session import ReconciliationSession, reconcile_month
from app.core.normalizers import (
    normalize_date,
    normalize_name,
    parse_calendar_date,
)

__all__ = [
    "compare",
    "DiffReport",
    "parse_reference_csv",
    "parse_reference_files",
    "classify_record",
    "project_self_reports",
    "ProjectionStats",
    "ReconciliationSession",
    "reconcile_month",
    "normalize_date",
    "normalize_name",
    "parse_calendar_date",
]
