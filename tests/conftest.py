"""Shared fixtures for Attachment Sync tests."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path

import pytest

from attachment_sync.config import Settings
from attachment_sync.models import AttachmentMetadata, MailFolder, MessageMetadata


@dataclass
class FakeMailbox:
    """In-memory mailbox recording every call made against it."""

    folders: list[MailFolder] = field(default_factory=list)
    child_folders: dict[str, list[MailFolder]] = field(default_factory=dict)
    messages: dict[str, list[MessageMetadata]] = field(default_factory=dict)
    attachments: dict[str, list[AttachmentMetadata]] = field(default_factory=dict)
    calls: list[tuple] = field(default_factory=list)
    moved: list[tuple[str, str]] = field(default_factory=list)
    fail_moves: set[str] = field(default_factory=set)

    def list_folders(self) -> list[MailFolder]:
        self.calls.append(("list_folders",))
        return list(self.folders)

    def list_child_folders(self, folder_id: str) -> list[MailFolder]:
        self.calls.append(("list_child_folders", folder_id))
        return list(self.child_folders.get(folder_id, []))

    def list_messages(self, folder_id: str, filter_expression: str) -> list[MessageMetadata]:
        self.calls.append(("list_messages", folder_id, filter_expression))
        return list(self.messages.get(folder_id, []))

    def list_attachments(self, message_id: str) -> list[AttachmentMetadata]:
        self.calls.append(("list_attachments", message_id))
        return list(self.attachments.get(message_id, []))

    def move_message(self, message_id: str, destination_folder_id: str) -> None:
        self.calls.append(("move_message", message_id, destination_folder_id))
        if message_id in self.fail_moves:
            raise RuntimeError(f"cannot move {message_id}")
        self.moved.append((message_id, destination_folder_id))

    def add_message(
        self,
        folder_id: str,
        message: MessageMetadata,
        attachments: list[AttachmentMetadata] | None = None,
    ) -> None:
        self.messages.setdefault(folder_id, []).append(message)
        self.attachments[message.message_id] = list(attachments or [])

    def call_names(self) -> list[str]:
        return [call[0] for call in self.calls]


def make_message(message_id: str, sender: str | None, subject: str = "Test Email") -> MessageMetadata:
    return MessageMetadata(
        message_id=message_id,
        subject=subject,
        sender_email=sender,
        received=datetime(2024, 1, 15, 10, 30, tzinfo=UTC),
        has_attachments=True,
        parent_folder_id="import-id",
    )


def make_attachment(
    attachment_id: str, name: str | None, content: bytes | None = b"Test PDF content"
) -> AttachmentMetadata:
    return AttachmentMetadata(
        attachment_id=attachment_id,
        name=name,
        content_bytes=content,
        size=len(content or b""),
    )


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Settings pointing to temporary directories, with retries that never sleep."""
    return Settings(
        graph_client_id="client-id",
        graph_client_secret="secret",
        graph_tenant_id="tenant-id",
        graph_mailbox="attachments@contoso.com",
        output_dir=tmp_path / "downloads",
        log_dir=tmp_path / "logs",
        tracking_file=tmp_path / "data" / "processed_attachments.json",
        retry_attempts=3,
        retry_delay_ms=0,
        inbox_import_subdir="Import",
        inbox_old_subdir="Old",
        blocked_files_raw=".exe,.bat,.js,.jpg",
        allowed_senders_raw="",
        allowed_senders_file=None,
        log_file=None,
    )


@pytest.fixture
def mailbox() -> FakeMailbox:
    """Mailbox with an Import folder at the top level and an Old folder under Inbox."""
    return FakeMailbox(
        folders=[
            MailFolder("inbox-id", "Inbox"),
            MailFolder("import-id", "Import"),
            MailFolder("sent-id", "Sent Items"),
        ],
        child_folders={"inbox-id": [MailFolder("old-id", "Old")]},
    )
