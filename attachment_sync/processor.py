"""Pipeline orchestrator: resolve folders → list messages → screen → download → track."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Mapping, Optional

from .config import Settings
from .folders import INBOX_DISPLAY_NAME, FolderResolver
from .mailbox import Mailbox
from .models import AttachmentMetadata, MessageMetadata, ProcessingResult
from .policies import ExtensionPolicy, SenderPolicy, extension_of
from .retry import RetryExecutor
from .storage import AttachmentStore, AuditLog, safe_file_name
from .tracker import AttachmentTracker
from .utils import received_since_filter

logger = logging.getLogger(__name__)

# Blocked images are skipped quietly, without a blocked-files audit line.
UNAUDITED_BLOCKED_EXTENSIONS = frozenset({".jpg", ".png"})


class AttachmentProcessor:
    """Download attachments from allow-listed senders, each at most once.

    One ``run`` walks the import folder sequentially. Remote calls go through the
    RetryExecutor; an error that survives its retries aborts the run. Every
    written attachment is recorded in the tracker before it is counted.
    """

    def __init__(
        self,
        mailbox: Mailbox,
        settings: Settings,
        tracker: AttachmentTracker | None = None,
        retry: RetryExecutor | None = None,
    ) -> None:
        self.mailbox = mailbox
        self.settings = settings
        self.retry = retry or RetryExecutor(settings.retry_attempts, settings.retry_delay_ms)
        self.tracker = tracker or AttachmentTracker(settings.tracking_file)
        self.folders = FolderResolver(mailbox, self.retry)
        self.store = AttachmentStore(settings.output_dir)

    def run(
        self, allowed_senders: Mapping[str, str], log_file_path: Optional[Path] = None
    ) -> ProcessingResult:
        """Process the import folder once.

        Args:
            allowed_senders: Mapping of allowed address or ``@domain`` to a label.
            log_file_path: Log file whose directory receives the audit logs
                (defaults to ``settings.log_dir``).

        Returns:
            ProcessingResult with the run's counters.
        """
        result = ProcessingResult()
        logger.info("Starting attachment processing")

        self.settings.ensure_directories()
        log_dir = log_file_path.parent if log_file_path else self.settings.log_dir
        log_dir.mkdir(parents=True, exist_ok=True)

        sender_policy = SenderPolicy(allowed_senders.keys())
        if not sender_policy.allowed_senders:
            logger.warning("No allowed senders configured, aborting run")
            return result
        logger.info("Loaded %d allowed senders/domains", len(sender_policy))

        extension_policy = ExtensionPolicy(self.settings.blocked_extensions)

        import_folder_id = self.folders.resolve(self.settings.inbox_import_subdir)
        if not import_folder_id:
            import_folder_id = self.folders.resolve(INBOX_DISPLAY_NAME)
        if not import_folder_id:
            logger.warning("Could not resolve import folder, aborting run")
            return result

        archive_folder_id = self.folders.resolve(self.settings.inbox_old_subdir) or import_folder_id

        filter_expression = received_since_filter(self.settings.hours_to_fetch)
        messages = self.retry.execute(
            lambda: self.mailbox.list_messages(import_folder_id, filter_expression),
            "list messages",
        )
        logger.info("Found %d messages with attachments in import folder", len(messages))
        result.emails_processed = len(messages)

        attachments_log = AuditLog(log_dir / self.settings.attachments_log_name)
        blocked_log = AuditLog(log_dir / self.settings.blocked_files_log_name)

        processed_ids: list[str] = []
        for message in messages:
            if not sender_policy.is_allowed(message.sender_email):
                logger.debug("Sender %s not allowed, skipping message %s", message.sender_email, message.message_id)
                continue

            sender = (message.sender_email or "").lower()
            logger.info(
                "Processing message: %s From: %s Date: %s",
                message.subject,
                sender,
                message.received.strftime("%Y-%m-%d %H:%M:%S"),
            )

            attachments = self.retry.execute(
                lambda: self.mailbox.list_attachments(message.message_id),
                "list attachments",
            )
            if not attachments:
                logger.info("No attachments found for message %s", message.message_id)
                continue

            for attachment in attachments:
                self._handle_attachment(
                    result,
                    message,
                    attachment,
                    sender,
                    extension_policy,
                    attachments_log,
                    blocked_log,
                )
            processed_ids.append(message.message_id)

        if self.settings.move_processed_messages:
            self._move_processed(processed_ids, import_folder_id, archive_folder_id)

        logger.info(
            "Run complete: emails=%d attachments=%d new=%d skipped=%d",
            result.emails_processed,
            result.total_attachments,
            result.new_downloads,
            result.skipped_attachments,
        )
        return result

    def _handle_attachment(
        self,
        result: ProcessingResult,
        message: MessageMetadata,
        attachment: AttachmentMetadata,
        sender: str,
        extension_policy: ExtensionPolicy,
        attachments_log: AuditLog,
        blocked_log: AuditLog,
    ) -> None:
        if attachment.content_bytes is None or self.tracker.is_processed(
            message.message_id, attachment.attachment_id
        ):
            logger.info(
                "Skipped (already processed, not a file or no content): %s", attachment.name
            )
            result.skipped_attachments += 1
            return

        file_name = safe_file_name(attachment.name)
        if extension_policy.is_blocked(file_name):
            if extension_of(file_name) not in UNAUDITED_BLOCKED_EXTENSIONS:
                blocked_log.append(sender, file_name)
            result.skipped_attachments += 1
            logger.info("Blocked by extension: %s", file_name)
            return

        target = self.store.save(file_name, attachment.content_bytes)
        if self.settings.log_attachments:
            attachments_log.append(sender, file_name)

        self.tracker.mark_processed(message.message_id, attachment.attachment_id, file_name)
        result.total_attachments += 1
        result.new_downloads += 1
        logger.info(
            "Downloaded: %s (%.2f KB) to %s", file_name, len(attachment.content_bytes) / 1024, target
        )

    def _move_processed(
        self, message_ids: list[str], import_folder_id: str, archive_folder_id: str
    ) -> None:
        if archive_folder_id == import_folder_id:
            logger.info("Archive folder not found, leaving %d messages in place", len(message_ids))
            return

        for message_id in message_ids:
            try:
                self.retry.execute(
                    lambda: self.mailbox.move_message(message_id, archive_folder_id),
                    "move message",
                )
                logger.info("Moved message %s to folder %s", message_id, archive_folder_id)
            except Exception as exc:
                logger.error("Failed to move message %s: %s", message_id, exc)
