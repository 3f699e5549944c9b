"""MSAL-backed access token provider for Microsoft Graph."""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Protocol

import msal

from .config import Settings
from .exceptions import AuthenticationError

logger = logging.getLogger(__name__)

# Tokens are refreshed this many seconds before they actually expire.
EXPIRY_BUFFER_SECONDS = 5 * 60


class TokenProvider(Protocol):
    def get_token(self) -> str: ...


class MsalTokenProvider:
    """Hand out a currently valid Graph token, acquiring a new one close to expiry."""

    GRAPH_SCOPE = ["https://graph.microsoft.com/.default"]

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self.scopes = settings.graph_scopes
        self.auth_mode = settings.graph_auth_mode
        self.authority = settings.authority_url
        self._token_cache = None
        self._access_token: str | None = None
        self._expires_at = 0.0

        if self.auth_mode == "client_credentials":
            self.app = msal.ConfidentialClientApplication(
                client_id=settings.graph_client_id,
                client_credential=settings.graph_client_secret,
                authority=self.authority,
            )
        else:
            token_cache = msal.SerializableTokenCache()
            cache_path = settings.graph_token_cache
            if cache_path.exists():
                token_cache.deserialize(cache_path.read_text())
            self._token_cache = token_cache
            self.app = msal.PublicClientApplication(
                client_id=settings.graph_client_id,
                authority=self.authority,
                token_cache=token_cache,
            )

    def get_token(self) -> str:
        if self._access_token and time.time() < self._expires_at:
            return self._access_token

        if self.auth_mode == "client_credentials":
            result = self._acquire_token_client_credentials()
        else:
            result = self._acquire_token_device_flow()

        self._access_token = result["access_token"]
        expires_in = int(result.get("expires_in") or 0)
        self._expires_at = time.time() + expires_in - EXPIRY_BUFFER_SECONDS
        logger.debug("Acquired Graph token valid for %ss", expires_in)
        return self._access_token

    def _acquire_token_client_credentials(self) -> dict:
        result = self.app.acquire_token_silent(self.GRAPH_SCOPE, account=None)
        if not result:
            result = self.app.acquire_token_for_client(scopes=self.GRAPH_SCOPE)
        if "access_token" not in result:
            raise AuthenticationError(
                f"Unable to obtain Graph token: {result.get('error_description')}"
            )
        return result

    def _acquire_token_device_flow(self) -> dict:
        accounts = self.app.get_accounts()
        result = None
        if accounts:
            result = self.app.acquire_token_silent(self.scopes, account=accounts[0])
        if not result:
            flow = self.app.initiate_device_flow(scopes=self.scopes)
            if "user_code" not in flow:
                raise AuthenticationError(f"Unable to start device code flow: {flow}")
            logger.info(flow.get("message"))
            result = self.app.acquire_token_by_device_flow(flow)
        if "access_token" not in result:
            raise AuthenticationError(
                f"Unable to obtain Graph token: {result.get('error_description')}"
            )
        self._persist_token_cache()
        return result

    def _persist_token_cache(self) -> None:
        if not self._token_cache or not self._token_cache.has_state_changed:
            return
        cache_path: Path = self.settings.graph_token_cache
        cache_path.parent.mkdir(parents=True, exist_ok=True)
        cache_path.write_text(self._token_cache.serialize())
