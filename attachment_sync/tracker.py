"""JSON-file record of attachments that have already been downloaded."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from datetime import UTC, datetime
from pathlib import Path

from .models import TrackingRecord

logger = logging.getLogger(__name__)

KEY_SEPARATOR = "_"


def tracking_key(message_id: str, attachment_id: str) -> str:
    """Composite key used in the tracking file."""
    return f"{message_id}{KEY_SEPARATOR}{attachment_id}"


class AttachmentTracker:
    """Durable set of ``(message_id, attachment_id)`` pairs already written to disk.

    Records are keyed by the tuple in memory and by ``messageId_attachmentId``
    on disk; the tuple is rebuilt from each record's ``emailId`` on load so ids
    that contain the separator never collide. Every ``mark_processed`` rewrites
    the whole file atomically.
    """

    def __init__(self, path: Path) -> None:
        self.path = path
        self._records: dict[tuple[str, str], TrackingRecord] = self._load()

    def __len__(self) -> int:
        return len(self._records)

    def records(self) -> dict[tuple[str, str], TrackingRecord]:
        return dict(self._records)

    def is_processed(self, message_id: str, attachment_id: str) -> bool:
        return (message_id, attachment_id) in self._records

    def mark_processed(self, message_id: str, attachment_id: str, file_name: str) -> None:
        self._records[(message_id, attachment_id)] = TrackingRecord(
            file_name=file_name,
            downloaded_at=datetime.now(tz=UTC),
            email_id=message_id,
        )
        self._save()

    def _load(self) -> dict[tuple[str, str], TrackingRecord]:
        if not self.path.exists():
            logger.info("No tracking file at %s, starting empty", self.path)
            return {}

        try:
            text = self.path.read_text(encoding="utf-8")
            if not text.strip():
                return {}
            payload = json.loads(text)
            raw_records = payload.get("attachments") or payload.get("Attachments") or {}
        except (OSError, ValueError, AttributeError) as exc:
            logger.warning("Failed to load tracking file %s, using empty state: %s", self.path, exc)
            return {}
        if not isinstance(raw_records, dict):
            logger.warning("Tracking file %s has no attachment mapping, using empty state", self.path)
            return {}

        records: dict[tuple[str, str], TrackingRecord] = {}
        for key, raw in raw_records.items():
            try:
                record = TrackingRecord.from_dict(raw)
            except (KeyError, TypeError, ValueError, AttributeError) as exc:
                logger.warning("Ignoring unreadable tracking record %s: %s", key, exc)
                continue
            prefix = record.email_id + KEY_SEPARATOR
            if not key.startswith(prefix):
                logger.warning("Ignoring tracking record %s: key does not match emailId", key)
                continue
            records[(record.email_id, key[len(prefix):])] = record

        logger.info("Loaded tracking data: %d attachments previously processed", len(records))
        return records

    def _save(self) -> None:
        payload = {
            "attachments": {
                tracking_key(message_id, attachment_id): record.to_dict()
                for (message_id, attachment_id), record in self._records.items()
            }
        }
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    json.dump(payload, handle, indent=2)
                    handle.flush()
                    os.fsync(handle.fileno())
                os.replace(tmp_name, self.path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as exc:
            logger.error("Failed to save tracking file %s: %s", self.path, exc)
            return
        logger.debug("Tracking data saved (%d records)", len(self._records))
