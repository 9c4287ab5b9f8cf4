# app/models/report.py

from typing import Literal, Optional
from pydantic import BaseModel, Field

from app.models.event import NormalizedEvent, ReferenceDataset


# ============================================
# Reconciliation pairs
# ============================================

class MatchedPair(BaseModel):
    """A reference event and the self-report it matched."""

    reference: NormalizedEvent
    self_report: NormalizedEvent


class MismatchedPair(MatchedPair):
    """A candidate pair whose magnitudes differ beyond tolerance."""

    diff: float = Field(description="self_report.magnitude - reference.magnitude")


# ============================================
# Cache sync
# ============================================

SyncStatus = Literal[
    "synced",
    "synced, updated",
    "communication error",
    "sync failed (saved locally)",
]


class SyncResult(BaseModel):
    """Outcome of resolving the local cache against the remote snapshot."""

    dataset: ReferenceDataset
    status: SyncStatus
    source: Literal["local", "remote", "empty"]


class SaveOutcome(BaseModel):
    """Outcome of saving a freshly parsed dataset."""

    dataset: ReferenceDataset
    cached: bool
    synced: bool
    status: SyncStatus


# ============================================
# Store payloads
# ============================================

class LateArrival(BaseModel):
    """A late-arrival check recorded by a supervisor."""

    date: str
    person: str


class StoredRecord(BaseModel):
    """Row shape of the remote records table."""

    id: str
    key: str
    timestamp: Optional[str] = None
    user_name: Optional[str] = None
    category: Optional[str] = None
    data: Optional[dict] = None
