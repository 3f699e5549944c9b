"""Tests for GraphClient with a mocked requests session."""

from __future__ import annotations

import base64
from datetime import UTC, datetime
from typing import Any
from unittest.mock import MagicMock

import pytest
import requests

from attachment_sync.config import Settings
from attachment_sync.graph_client import GraphClient

BASE = "https://graph.microsoft.com/v1.0/users/attachments%40contoso.com"


def _response(payload: dict[str, Any] | None = None, status: int = 200) -> MagicMock:
    resp = MagicMock()
    resp.status_code = status
    resp.json.return_value = payload or {}
    resp.text = str(payload)
    if status >= 400:
        resp.raise_for_status.side_effect = requests.HTTPError(f"{status} error")
    return resp


@pytest.fixture
def session() -> MagicMock:
    return MagicMock()


@pytest.fixture
def token_provider() -> MagicMock:
    provider = MagicMock()
    provider.get_token.return_value = "token-123"
    return provider


@pytest.fixture
def client(settings: Settings, token_provider: MagicMock, session: MagicMock) -> GraphClient:
    return GraphClient(settings, token_provider, session=session)


class TestFolders:
    def test_list_folders_follows_next_link(self, client: GraphClient, session: MagicMock) -> None:
        session.get.side_effect = [
            _response(
                {
                    "value": [{"id": "f1", "displayName": "Inbox"}],
                    "@odata.nextLink": f"{BASE}/mailFolders?$skip=1",
                }
            ),
            _response({"value": [{"id": "f2", "displayName": "Import"}]}),
        ]

        folders = client.list_folders()

        assert [(f.folder_id, f.display_name) for f in folders] == [("f1", "Inbox"), ("f2", "Import")]
        first, second = session.get.call_args_list
        assert first.args[0] == f"{BASE}/mailFolders"
        assert first.kwargs["params"] == {"$top": 100}
        assert second.args[0] == f"{BASE}/mailFolders?$skip=1"
        assert second.kwargs["params"] is None

    def test_list_child_folders_url(self, client: GraphClient, session: MagicMock) -> None:
        session.get.return_value = _response({"value": [{"id": "c1", "displayName": "Old"}]})

        children = client.list_child_folders("inbox-id")

        assert children[0].folder_id == "c1"
        assert session.get.call_args.args[0] == f"{BASE}/mailFolders/inbox-id/childFolders"

    def test_sends_bearer_token(self, client: GraphClient, session: MagicMock) -> None:
        session.get.return_value = _response({"value": []})

        client.list_folders()

        headers = session.get.call_args.kwargs["headers"]
        assert headers["Authorization"] == "Bearer token-123"


class TestMessages:
    def test_list_messages_maps_fields_and_passes_filter(
        self, client: GraphClient, session: MagicMock
    ) -> None:
        session.get.return_value = _response(
            {
                "value": [
                    {
                        "id": "m1",
                        "subject": "Invoice",
                        "from": {"emailAddress": {"address": "Billing@Vendor.com", "name": "Billing"}},
                        "receivedDateTime": "2024-01-15T10:30:00Z",
                        "hasAttachments": True,
                        "parentFolderId": "import-id",
                    },
                    {
                        "id": "m2",
                        "subject": None,
                        "receivedDateTime": "2024-01-15T11:00:00Z",
                    },
                ]
            }
        )

        messages = client.list_messages("import-id", "hasAttachments eq true")

        assert messages[0].message_id == "m1"
        assert messages[0].sender_email == "Billing@Vendor.com"
        assert messages[0].received == datetime(2024, 1, 15, 10, 30, tzinfo=UTC)
        assert messages[0].has_attachments is True
        assert messages[0].parent_folder_id == "import-id"
        assert messages[1].sender_email is None
        assert messages[1].subject == ""

        call = session.get.call_args
        assert call.args[0] == f"{BASE}/mailFolders/import-id/messages"
        assert call.kwargs["params"]["$filter"] == "hasAttachments eq true"
        assert call.kwargs["params"]["$orderby"] == "receivedDateTime desc"
        assert call.kwargs["params"]["$top"] == 100

    def test_http_error_is_raised(self, client: GraphClient, session: MagicMock) -> None:
        session.get.return_value = _response({"error": {"code": "ErrorItemNotFound"}}, status=404)

        with pytest.raises(requests.HTTPError):
            client.list_messages("missing", "hasAttachments eq true")


class TestAttachments:
    def test_file_attachments_are_decoded_and_other_kinds_have_no_content(
        self, client: GraphClient, session: MagicMock
    ) -> None:
        session.get.return_value = _response(
            {
                "value": [
                    {
                        "@odata.type": "#microsoft.graph.fileAttachment",
                        "id": "a1",
                        "name": "report.pdf",
                        "contentType": "application/pdf",
                        "size": 11,
                        "isInline": False,
                        "contentBytes": base64.b64encode(b"PDF content").decode("ascii"),
                    },
                    {
                        "@odata.type": "#microsoft.graph.itemAttachment",
                        "id": "a2",
                        "name": "Forwarded message",
                        "size": 2048,
                    },
                    {
                        "@odata.type": "#microsoft.graph.fileAttachment",
                        "id": "a3",
                        "name": "broken.bin",
                        "contentBytes": "***not base64***",
                    },
                ]
            }
        )

        attachments = client.list_attachments("m1")

        assert attachments[0].content_bytes == b"PDF content"
        assert attachments[0].content_type == "application/pdf"
        assert attachments[1].content_bytes is None
        assert attachments[2].content_bytes is None
        assert session.get.call_args.args[0] == f"{BASE}/messages/m1/attachments"

    def test_ids_are_url_quoted(self, client: GraphClient, session: MagicMock) -> None:
        session.get.return_value = _response({"value": []})

        client.list_attachments("AAMk/abc+def=")

        assert session.get.call_args.args[0] == f"{BASE}/messages/AAMk%2Fabc%2Bdef%3D/attachments"


class TestMove:
    def test_move_posts_destination(self, client: GraphClient, session: MagicMock) -> None:
        session.post.return_value = _response({"id": "m1-new"}, status=201)

        client.move_message("m1", "old-id")

        call = session.post.call_args
        assert call.args[0] == f"{BASE}/messages/m1/move"
        assert call.kwargs["json"] == {"destinationId": "old-id"}


class TestMailboxRoot:
    def test_device_code_mode_uses_me(self, token_provider: MagicMock, session: MagicMock) -> None:
        settings = Settings(graph_client_id="client-id", graph_auth_mode="device_code")
        session.get.return_value = _response({"value": []})

        GraphClient(settings, token_provider, session=session).list_folders()

        assert session.get.call_args.args[0] == "https://graph.microsoft.com/v1.0/me/mailFolders"
