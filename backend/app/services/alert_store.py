r"""backend\app\services\alert_store.py

JSON-lines backed storage for alerts.

Each line of ``alerts.jsonl`` is one alert record.  Status changes (read,
dismissed) rewrite the file atomically via a temporary file in the same
directory.
"""

from __future__ import annotations

import json
import logging
import os
import shutil
import tempfile
import threading
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..models.schemas import Alert, NewAlert

LOGGER = logging.getLogger(__name__)

DEFAULT_LIST_LIMIT = 50


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AlertStore:
    """Create, list and update alerts persisted to a JSON-lines file."""

    _lock = threading.Lock()

    def __init__(self, data_root: str = "data", filename: str = "alerts.jsonl") -> None:
        self.path = Path(os.getenv("DATA_DIR", data_root)) / filename

    # ------------------------------------------------------------------
    def _read_records(self) -> List[Dict[str, Any]]:
        if not self.path.exists():
            return []

        records: List[Dict[str, Any]] = []
        with self.path.open("r", encoding="utf-8") as handle:
            for line in handle:
                line = line.strip()
                if not line:
                    continue
                try:
                    records.append(json.loads(line))
                except json.JSONDecodeError:
                    LOGGER.warning("Skipping malformed alert record in %s", self.path)
                    continue
        return records

    def _write_records(self, records: List[Dict[str, Any]]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(prefix=".tmp-", suffix=".jsonl", dir=self.path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                for record in records:
                    handle.write(json.dumps(record, separators=(",", ":")) + "\n")
            shutil.move(tmp_path, self.path)
        finally:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)

    def _alerts(self) -> List[Alert]:
        return [Alert.model_validate(record) for record in self._read_records()]

    # ------------------------------------------------------------------
    def create(self, alert: NewAlert, created_at: Optional[datetime] = None) -> Alert:
        with self._lock:
            existing = self._read_records()
            next_id = max((int(r.get("id", 0)) for r in existing), default=0) + 1
            created_at = created_at or _utcnow()
            if created_at.tzinfo is None:
                created_at = created_at.replace(tzinfo=timezone.utc)
            stored = Alert(
                id=next_id,
                created_at=created_at,
                **alert.model_dump(),
            )
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("a", encoding="utf-8") as handle:
                handle.write(stored.model_dump_json() + "\n")
        LOGGER.info("Created %s alert id=%d for %s", stored.type, stored.id, stored.product_name)
        return stored

    def list(self, unread_only: bool = False) -> List[Alert]:
        """Return alerts newest first.

        ``unread_only`` returns every unread, undismissed alert; otherwise the
        most recent undismissed alerts are returned, capped at 50.
        """

        alerts = sorted(self._alerts(), key=lambda a: (a.created_at, a.id), reverse=True)
        if unread_only:
            return [a for a in alerts if not a.is_read and not a.is_dismissed]
        return [a for a in alerts if not a.is_dismissed][:DEFAULT_LIST_LIMIT]

    def _update(self, alert_id: int, field: str) -> Alert:
        with self._lock:
            records = self._read_records()
            for record in records:
                if int(record.get("id", -1)) == alert_id:
                    record[field] = True
                    self._write_records(records)
                    return Alert.model_validate(record)
        raise KeyError(alert_id)

    def mark_read(self, alert_id: int) -> Alert:
        return self._update(alert_id, "is_read")

    def dismiss(self, alert_id: int) -> Alert:
        return self._update(alert_id, "is_dismissed")

    def has_recent(
        self,
        alert_type: str,
        product_name: str,
        days: int,
        now: Optional[datetime] = None,
    ) -> bool:
        """Whether an alert of ``alert_type`` for ``product_name`` exists within ``days``."""

        now = now or _utcnow()
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        cutoff = now - timedelta(days=days)
        return any(
            a.type == alert_type and a.product_name == product_name and a.created_at > cutoff
            for a in self._alerts()
        )
