"""Microsoft Graph helper focused on folders, messages and attachments."""

from __future__ import annotations

import base64
import binascii
import logging
from typing import Any, List
from urllib.parse import quote

import requests
from requests import Response

from .auth import TokenProvider
from .config import Settings
from .models import AttachmentMetadata, MailFolder, MessageMetadata
from .utils import parse_graph_datetime

logger = logging.getLogger(__name__)

FILE_ATTACHMENT_TYPE = "#microsoft.graph.fileAttachment"


class GraphClient:
    """Thin wrapper over the Graph mail endpoints used by the pipeline."""

    GRAPH_BASE = "https://graph.microsoft.com/v1.0"
    MESSAGE_FIELDS = "id,subject,from,receivedDateTime,hasAttachments,parentFolderId"
    TIMEOUT = 30

    def __init__(
        self,
        settings: Settings,
        token_provider: TokenProvider,
        session: requests.Session | None = None,
    ) -> None:
        self.settings = settings
        self.token_provider = token_provider
        self.session = session or requests.Session()

    def list_folders(self) -> list[MailFolder]:
        url = f"{self.GRAPH_BASE}{self._mailbox_root()}/mailFolders"
        return [self._to_folder(raw) for raw in self._get_all(url, {"$top": 100})]

    def list_child_folders(self, folder_id: str) -> list[MailFolder]:
        url = f"{self.GRAPH_BASE}{self._mailbox_root()}/mailFolders/{quote(folder_id, safe='')}/childFolders"
        return [self._to_folder(raw) for raw in self._get_all(url, {"$top": 100})]

    def list_messages(self, folder_id: str, filter_expression: str) -> list[MessageMetadata]:
        url = f"{self.GRAPH_BASE}{self._mailbox_root()}/mailFolders/{quote(folder_id, safe='')}/messages"
        params = {
            "$filter": filter_expression,
            "$select": self.MESSAGE_FIELDS,
            "$orderby": "receivedDateTime desc",
            "$top": self.settings.graph_page_size,
        }
        messages = [self._to_message(raw) for raw in self._get_all(url, params)]
        logger.debug("Listed %d messages in folder %s", len(messages), folder_id)
        return messages

    def list_attachments(self, message_id: str) -> list[AttachmentMetadata]:
        url = f"{self.GRAPH_BASE}{self._mailbox_root()}/messages/{quote(message_id, safe='')}/attachments"
        return [self._to_attachment(raw) for raw in self._get_all(url, None)]

    def move_message(self, message_id: str, destination_folder_id: str) -> None:
        url = f"{self.GRAPH_BASE}{self._mailbox_root()}/messages/{quote(message_id, safe='')}/move"
        self._post(url, {"destinationId": destination_folder_id})

    def _get_all(self, url: str, params: dict | None) -> List[dict[str, Any]]:
        items: List[dict[str, Any]] = []
        while url:
            logger.debug("Fetching Graph page %s", url)
            payload = self._get(url, params=params).json()
            items.extend(payload.get("value", []))
            url = payload.get("@odata.nextLink")
            params = None  # only pass params to the first call
        return items

    def _get(self, url: str, params: dict | None = None) -> Response:
        resp = self.session.get(url, headers=self._headers(), params=params, timeout=self.TIMEOUT)
        return self._check(resp)

    def _post(self, url: str, body: dict) -> Response:
        resp = self.session.post(url, headers=self._headers(), json=body, timeout=self.TIMEOUT)
        return self._check(resp)

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.token_provider.get_token()}",
            "Accept": "application/json",
        }

    @staticmethod
    def _check(resp: Response) -> Response:
        if resp.status_code >= 400:
            logger.error("Graph request failed (%s): %s", resp.status_code, resp.text)
            resp.raise_for_status()
        return resp

    def _mailbox_root(self) -> str:
        if self.settings.graph_mailbox:
            mailbox = quote(self.settings.graph_mailbox)
            return f"/users/{mailbox}"
        return "/me"

    @staticmethod
    def _to_folder(raw: dict) -> MailFolder:
        return MailFolder(folder_id=raw["id"], display_name=raw.get("displayName") or "")

    @staticmethod
    def _to_message(raw: dict) -> MessageMetadata:
        sender = (raw.get("from") or {}).get("emailAddress") or {}
        return MessageMetadata(
            message_id=raw["id"],
            subject=raw.get("subject") or "",
            sender_email=sender.get("address"),
            received=parse_graph_datetime(raw["receivedDateTime"]),
            has_attachments=bool(raw.get("hasAttachments")),
            parent_folder_id=raw.get("parentFolderId"),
        )

    @staticmethod
    def _to_attachment(raw: dict) -> AttachmentMetadata:
        content = None
        if raw.get("@odata.type") == FILE_ATTACHMENT_TYPE and raw.get("contentBytes") is not None:
            try:
                content = base64.b64decode(raw["contentBytes"], validate=True)
            except (binascii.Error, ValueError):
                logger.warning("Attachment %s has undecodable content", raw.get("id"))
        return AttachmentMetadata(
            attachment_id=raw["id"],
            name=raw.get("name"),
            content_bytes=content,
            size=raw.get("size", 0),
            content_type=raw.get("contentType") or "application/octet-stream",
            is_inline=raw.get("isInline", False),
        )
