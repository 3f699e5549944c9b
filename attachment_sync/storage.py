"""Attachment files on disk and the append-only audit logs."""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path, PureWindowsPath
from typing import Optional

logger = logging.getLogger(__name__)

DEFAULT_FILE_NAME = "attachment"


def safe_file_name(name: Optional[str]) -> str:
    """Strip any directory part from an untrusted attachment name."""
    if not name:
        return DEFAULT_FILE_NAME
    # Windows separators are honoured on every platform.
    base = PureWindowsPath(name).name.strip()
    if base in ("", ".", ".."):
        return DEFAULT_FILE_NAME
    return base


def unique_file_path(directory: Path, file_name: str, now: datetime | None = None) -> Path:
    """Return a free path for ``file_name`` in ``directory``.

    A taken name gets a ``yyyyMMddHHmmssfff_`` prefix; if that is taken too
    (same name within one millisecond) a counter follows the timestamp.
    """
    target = directory / file_name
    if not target.exists():
        return target
    now = now or datetime.now()
    stamp = now.strftime("%Y%m%d%H%M%S") + f"{now.microsecond // 1000:03d}"
    target = directory / f"{stamp}_{file_name}"
    counter = 1
    while target.exists():
        target = directory / f"{stamp}_{counter}_{file_name}"
        counter += 1
    return target


class AttachmentStore:
    """Write attachment bytes into the output directory without overwriting."""

    def __init__(self, output_dir: Path) -> None:
        self.output_dir = output_dir

    def save(self, file_name: str, content: bytes) -> Path:
        self.output_dir.mkdir(parents=True, exist_ok=True)
        while True:
            target = unique_file_path(self.output_dir, file_name)
            try:
                with target.open("xb") as handle:
                    handle.write(content)
            except FileExistsError:
                # taken between the existence check and the open
                continue
            break
        logger.debug("Wrote attachment: %s", target)
        return target


class AuditLog:
    """Line-oriented ``sender fileName timestamp`` log."""

    def __init__(self, path: Path) -> None:
        self.path = path

    def append(self, sender: str, file_name: str, when: datetime | None = None) -> None:
        when = when or datetime.now()
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("a", encoding="utf-8") as handle:
            handle.write(f"{sender} {file_name} {when:%Y-%m-%d %H:%M:%S}\n")
