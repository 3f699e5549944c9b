"""The remote mailbox capability the pipeline depends on."""

from __future__ import annotations

from typing import Protocol

from .models import AttachmentMetadata, MailFolder, MessageMetadata


class Mailbox(Protocol):
    def list_folders(self) -> list[MailFolder]: ...

    def list_child_folders(self, folder_id: str) -> list[MailFolder]: ...

    def list_messages(self, folder_id: str, filter_expression: str) -> list[MessageMetadata]: ...

    def list_attachments(self, message_id: str) -> list[AttachmentMetadata]: ...

    def move_message(self, message_id: str, destination_folder_id: str) -> None: ...
