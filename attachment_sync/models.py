"""Typed containers shared across the pipeline."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from .utils import isoformat_utc, parse_graph_datetime


@dataclass(frozen=True)
class MailFolder:
    """A mailbox folder as returned by Graph."""

    folder_id: str
    display_name: str


@dataclass(frozen=True)
class MessageMetadata:
    """Essential metadata about an Outlook message."""

    message_id: str
    subject: str
    sender_email: Optional[str]
    received: datetime
    has_attachments: bool = False
    parent_folder_id: Optional[str] = None


@dataclass(frozen=True)
class AttachmentMetadata:
    """A message attachment. ``content_bytes`` is None for non-file attachments."""

    attachment_id: str
    name: Optional[str]
    content_bytes: Optional[bytes]
    size: int = 0
    content_type: str = "application/octet-stream"
    is_inline: bool = False


@dataclass(frozen=True)
class TrackingRecord:
    """Proof that one attachment of one message has been written to disk."""

    file_name: str
    downloaded_at: datetime
    email_id: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "fileName": self.file_name,
            "downloadedAt": isoformat_utc(self.downloaded_at),
            "emailId": self.email_id,
        }

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> TrackingRecord:
        """Accept both camelCase and the PascalCase of older tracking files."""
        email_id = raw["emailId"] if "emailId" in raw else raw["EmailId"]
        if not isinstance(email_id, str):
            raise TypeError(f"emailId must be a string, got {type(email_id).__name__}")
        downloaded_at = raw["downloadedAt"] if "downloadedAt" in raw else raw["DownloadedAt"]
        return cls(
            file_name=raw.get("fileName") or raw.get("FileName") or "",
            downloaded_at=parse_graph_datetime(downloaded_at),
            email_id=email_id,
        )


@dataclass
class ProcessingResult:
    """Mutable counters accumulated during one run."""

    emails_processed: int = 0
    total_attachments: int = 0
    new_downloads: int = 0
    skipped_attachments: int = 0
