"""Sender allow-list and attachment extension blocklist."""

from __future__ import annotations

import logging
import re
from typing import Iterable, Optional

logger = logging.getLogger(__name__)


def _normalize(entries: Iterable[str]) -> frozenset[str]:
    return frozenset(entry.strip().lower() for entry in entries if entry and entry.strip())


def parse_blocked_extensions(raw: str | None) -> frozenset[str]:
    """Turn ``".exe, bat;.JS"`` into ``{".exe", ".bat", ".js"}``."""
    if not raw:
        return frozenset()
    extensions = set()
    for item in re.split(r"[;,]", raw):
        ext = item.strip().lower()
        if not ext:
            continue
        if not ext.startswith("."):
            ext = "." + ext
        extensions.add(ext)
    return frozenset(extensions)


def extension_of(file_name: Optional[str]) -> str:
    """Lower-cased substring from the last dot, or '' when there is none."""
    if not file_name:
        return ""
    index = file_name.rfind(".")
    if index < 0:
        return ""
    return file_name[index:].lower()


def is_sender_allowed(sender: Optional[str], allowed_senders: Iterable[str]) -> bool:
    return SenderPolicy(allowed_senders).is_allowed(sender)


def is_extension_blocked(file_name: Optional[str], blocked_extensions: Iterable[str]) -> bool:
    return ExtensionPolicy(blocked_extensions).is_blocked(file_name)


class SenderPolicy:
    """Allow a sender by exact address or by ``@domain`` entry."""

    def __init__(self, allowed_senders: Iterable[str]) -> None:
        self.allowed_senders = _normalize(allowed_senders)

    def __len__(self) -> int:
        return len(self.allowed_senders)

    def is_allowed(self, sender: Optional[str]) -> bool:
        if not sender or "@" not in sender:
            return False

        address = sender.strip().lower()
        domain = address[address.rfind("@"):]
        if address in self.allowed_senders:
            logger.debug("Sender %s allowed by address", address)
            return True
        if domain in self.allowed_senders:
            logger.debug("Sender %s allowed by domain %s", address, domain)
            return True
        return False


class ExtensionPolicy:
    """Reject attachments whose trailing extension is on the blocklist."""

    def __init__(self, blocked_extensions: Iterable[str]) -> None:
        self.blocked_extensions = _normalize(blocked_extensions)

    @classmethod
    def from_string(cls, raw: str | None) -> ExtensionPolicy:
        return cls(parse_blocked_extensions(raw))

    def is_blocked(self, file_name: Optional[str]) -> bool:
        ext = extension_of(file_name)
        if not ext:
            return False
        return ext in self.blocked_extensions
