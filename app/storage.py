# app/storage.py

"""
Local JSON storage.

Holds the self-reported attendance records and the cached reference
dataset, one JSON file per key. Reads of missing or corrupt files give
empty results, but a corrupt record file is never overwritten; write
failures are logged and reported as False.
"""

import json
import logging
import os
import threading
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from app.config import get_settings
from app.models import CATEGORY_ATTENDANCE, ReferenceDataset

settings = get_settings()
logger = logging.getLogger(__name__)

# Storage keys
ATTENDANCE_KEY = "attendance_records"
REFERENCE_CACHE_KEY = "reference-dataset-cache"

CATEGORY_BY_KEY = {
    ATTENDANCE_KEY: CATEGORY_ATTENDANCE,
}


def category_for_key(key: str) -> str:
    return CATEGORY_BY_KEY.get(key, "その他")


class LocalStore:
    """
    File-backed key/value store.

    Writes go to a temp file that replaces the target, and read-modify-write
    cycles hold a per-store lock, so concurrent appends from worker threads
    never lose records.
    """

    def __init__(self, base_dir: str | Path):
        self.base_dir = Path(base_dir)
        self._lock = threading.RLock()

    def _path(self, key: str) -> Path:
        return self.base_dir / f"{key}.json"

    def _read(self, key: str):
        """Parsed content of a key, None when missing. Raises on unreadable files."""
        path = self._path(key)
        if not path.exists():
            return None
        return json.loads(path.read_text(encoding="utf-8"))

    def _read_or_none(self, key: str):
        try:
            return self._read(key)
        except (OSError, ValueError):
            logger.exception(f"Failed to read {self._path(key)}")
            return None

    def _write(self, key: str, value) -> bool:
        path = self._path(key)
        tmp = path.with_suffix(path.suffix + ".tmp")
        with self._lock:
            try:
                path.parent.mkdir(parents=True, exist_ok=True)
                tmp.write_text(json.dumps(value, ensure_ascii=False), encoding="utf-8")
                os.replace(tmp, path)
            except OSError:
                logger.exception(f"Failed to write {path}")
                return False
        return True

    def _load_records(self, key: str) -> Optional[list[dict]]:
        """Records of a key for rewriting; None when the file must not be overwritten."""
        try:
            data = self._read(key)
        except (OSError, ValueError):
            logger.exception(f"Refusing to overwrite unreadable {self._path(key)}")
            return None
        if data is None:
            return []
        if not isinstance(data, list):
            logger.error(f"Refusing to overwrite {self._path(key)}: not a record list")
            return None
        return data

    # ============================================
    # Records
    # ============================================

    def get_data(self, key: str) -> list[dict]:
        data = self._read_or_none(key)
        return data if isinstance(data, list) else []

    def save_data(self, key: str, data: dict) -> Optional[dict]:
        """
        Append a record, stamping id, timestamp, user and category.

        Returns the stored record, or None if it could not be written.
        """
        with self._lock:
            records = self._load_records(key)
            if records is None:
                return None

            # Epoch milliseconds, bumped on collision
            record_id = int(time.time() * 1000)
            taken = {r.get("id") for r in records if isinstance(r, dict)}
            while record_id in taken:
                record_id += 1

            record = {
                "category": category_for_key(key),
                **data,
                "userName": data.get("userName") or settings.default_user_name,
                "id": record_id,
                "timestamp": datetime.now().astimezone().isoformat(),
            }
            records.append(record)
            if not self._write(key, records):
                return None
            return record

    def update_data(self, key: str, record_id, updates: dict) -> Optional[dict]:
        """Shallow-merge updates into a record; id and timestamp are kept."""
        with self._lock:
            records = self._load_records(key)
            if records is None:
                return None
            for i, record in enumerate(records):
                if isinstance(record, dict) and str(record.get("id")) == str(record_id):
                    records[i] = {
                        **record,
                        **updates,
                        "id": record.get("id"),
                        "timestamp": record.get("timestamp"),
                    }
                    if not self._write(key, records):
                        return None
                    return records[i]
            return None

    # ============================================
    # Reference dataset cache
    # ============================================

    def load_cache(self) -> Optional[ReferenceDataset]:
        entry = self._read_or_none(REFERENCE_CACHE_KEY)
        if not isinstance(entry, dict):
            return None
        try:
            return ReferenceDataset.model_validate(entry)
        except ValidationError:
            logger.exception("Cached reference dataset is malformed")
            return None

    def save_cache(self, dataset: ReferenceDataset) -> bool:
        if dataset.fetched_at is None:
            dataset = dataset.model_copy(update={"fetched_at": datetime.now(timezone.utc)})
        return self._write(REFERENCE_CACHE_KEY, dataset.to_cache())

    def clear_cache(self) -> None:
        path = self._path(REFERENCE_CACHE_KEY)
        try:
            path.unlink(missing_ok=True)
        except OSError:
            logger.exception(f"Failed to remove {path}")
