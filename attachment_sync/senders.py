"""Assemble the sender allow-list from settings, an XML file and CLI arguments."""

from __future__ import annotations

import logging
import re
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Iterable

from .config import Settings

logger = logging.getLogger(__name__)


def _entries(text: str) -> list[str]:
    return [part.strip().lower() for part in re.split(r"[,;\r\n]", text) if part.strip()]


def read_senders_file(path: Path) -> list[str]:
    """Collect every address or ``@domain`` listed in the text of an XML document.

    Any element may hold entries; several per element may be separated by
    commas, semicolons or newlines.
    """
    if not path.exists():
        logger.warning("Allowed senders file not found at %s", path)
        return []
    try:
        root = ET.parse(path).getroot()
    except (OSError, ET.ParseError) as exc:
        logger.error("Failed to load allowed senders file %s: %s", path, exc)
        return []

    senders: list[str] = []
    for element in root.iter():
        if element.text and element.text.strip():
            senders.extend(_entries(element.text))
    return senders


def load_allowed_senders(settings: Settings, extra: Iterable[str] = ()) -> dict[str, str]:
    """Return ``{entry: source}`` for every configured allow-list entry."""
    allowed: dict[str, str] = {}
    for entry in settings.allowed_senders:
        allowed.setdefault(entry, "settings")
    if settings.allowed_senders_file:
        for entry in read_senders_file(settings.allowed_senders_file):
            allowed.setdefault(entry, str(settings.allowed_senders_file))
    for raw in extra:
        for entry in _entries(raw):
            allowed.setdefault(entry, "command line")
    logger.debug("Collected %d allowed sender entries", len(allowed))
    return allowed
