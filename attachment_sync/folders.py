"""Resolve mail folder display names to Graph folder ids."""

from __future__ import annotations

import logging
from typing import Iterable, Optional

from .mailbox import Mailbox
from .models import MailFolder
from .retry import RetryExecutor

logger = logging.getLogger(__name__)

INBOX_DISPLAY_NAME = "Inbox"


def _find(folders: Iterable[MailFolder], display_name: str) -> Optional[MailFolder]:
    target = display_name.strip().casefold()
    for folder in folders:
        if (folder.display_name or "").casefold() == target:
            return folder
    return None


class FolderResolver:
    """Look a folder up among the top-level folders, then among the Inbox's children."""

    def __init__(self, mailbox: Mailbox, retry: RetryExecutor | None = None) -> None:
        self.mailbox = mailbox
        self.retry = retry or RetryExecutor()

    def resolve(self, display_name: Optional[str]) -> Optional[str]:
        if not display_name or not display_name.strip():
            return None

        try:
            folders = self.retry.execute(self.mailbox.list_folders, "list mail folders")
            found = _find(folders, display_name)
            if found:
                return found.folder_id

            inbox = _find(folders, INBOX_DISPLAY_NAME)
            if inbox:
                children = self.retry.execute(
                    lambda: self.mailbox.list_child_folders(inbox.folder_id),
                    "list Inbox child folders",
                )
                found = _find(children, display_name)
                if found:
                    return found.folder_id
        except Exception as exc:
            logger.error("Folder lookup failed for '%s': %s", display_name, exc)
            return None

        logger.info("Folder '%s' not found", display_name)
        return None
