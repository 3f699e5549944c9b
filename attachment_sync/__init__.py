"""Attachment Sync - download allow-listed Outlook attachments exactly once."""

from .models import AttachmentMetadata, MailFolder, MessageMetadata, ProcessingResult
from .processor import AttachmentProcessor

__all__ = [
    "AttachmentMetadata",
    "AttachmentProcessor",
    "MailFolder",
    "MessageMetadata",
    "ProcessingResult",
]
