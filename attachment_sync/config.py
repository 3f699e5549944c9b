"""Configuration management for the attachment sync service."""

from __future__ import annotations

import re
from pathlib import Path
from typing import Literal, Sequence

from dotenv import load_dotenv
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .policies import parse_blocked_extensions

# Load .env early so BaseSettings can pick values up seamlessly.
load_dotenv()

DEFAULT_BLOCKED_FILES = ".exe,.bat,.cmd,.com,.scr,.pif,.vbs,.js,.jar,.zip,.rar,.7z"

# Application permissions cannot read consumer mailboxes.
PERSONAL_ACCOUNT_DOMAINS = ("@outlook.com", "@hotmail.com", "@live.com")


def _split_list(value: str | Sequence[str] | None, coerce_lower: bool = True) -> list[str]:
    """Turn delimiter-separated env strings into cleaned lists."""
    if value is None:
        return []
    if isinstance(value, str):
        items = re.split(r"[;,]", value)
    else:
        items = list(value)
    cleaned: list[str] = []
    for item in items:
        trimmed = item.strip()
        if not trimmed:
            continue
        cleaned.append(trimmed.lower() if coerce_lower else trimmed)
    return cleaned


class Settings(BaseSettings):
    """App configuration derived from environment variables."""

    graph_tenant_id: str | None = Field(None, alias="GRAPH_TENANT_ID")
    graph_client_id: str = Field(..., alias="GRAPH_CLIENT_ID")
    graph_client_secret: str | None = Field(None, alias="GRAPH_CLIENT_SECRET")
    graph_mailbox: str | None = Field(None, alias="GRAPH_MAILBOX")
    graph_auth_mode: Literal["client_credentials", "device_code"] = Field(
        "client_credentials", alias="GRAPH_AUTH_MODE"
    )
    graph_authority: str | None = Field(None, alias="GRAPH_AUTHORITY")
    graph_scopes_raw: str = Field("Mail.ReadWrite", alias="GRAPH_SCOPES")
    graph_page_size: int = Field(100, alias="GRAPH_PAGE_SIZE")
    graph_token_cache: Path = Field(Path("data/msal_token_cache.bin"), alias="GRAPH_TOKEN_CACHE")

    hours_to_fetch: int = Field(24, alias="HOURS_TO_FETCH")
    output_dir: Path = Field(Path("downloads"), alias="OUTPUT_DIR")
    log_dir: Path = Field(Path("logs"), alias="LOG_DIR")
    tracking_file: Path = Field(Path("data/processed_attachments.json"), alias="TRACKING_FILE")
    retry_attempts: int = Field(3, alias="RETRY_ATTEMPTS")
    retry_delay_ms: int = Field(2000, alias="RETRY_DELAY_MS")

    inbox_import_subdir: str | None = Field("Import", alias="INBOX_IMPORT_SUBDIR")
    inbox_old_subdir: str | None = Field("Old", alias="INBOX_OLD_SUBDIR")
    move_processed_messages: bool = Field(False, alias="MOVE_PROCESSED_MESSAGES")

    log_attachments: bool = Field(True, alias="LOG_ATTACHMENTS")
    attachments_log_name: str = Field("attachments.log", alias="ATTACHMENTS_LOG_NAME")
    blocked_files_log_name: str = Field("blocked_files.log", alias="BLOCKED_FILES_LOG_NAME")
    blocked_files_raw: str = Field(DEFAULT_BLOCKED_FILES, alias="BLOCKED_FILES")

    allowed_senders_raw: str = Field("", alias="ALLOWED_SENDERS")
    allowed_senders_file: Path | None = Field(None, alias="ALLOWED_SENDERS_FILE")

    log_level: str = Field("INFO", alias="LOG_LEVEL")
    log_file: Path | None = Field(None, alias="LOG_FILE")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    @model_validator(mode="after")
    def _validate_authentication(self):
        if self.graph_auth_mode == "client_credentials":
            if not self.graph_client_secret:
                raise ValueError("GRAPH_CLIENT_SECRET is required for client_credentials mode.")
            if not self.graph_mailbox:
                raise ValueError("GRAPH_MAILBOX is required for client_credentials mode.")
            if not (self.graph_tenant_id or self.graph_authority):
                raise ValueError(
                    "GRAPH_TENANT_ID or GRAPH_AUTHORITY must be provided for client_credentials mode."
                )
            if self.graph_mailbox.lower().endswith(PERSONAL_ACCOUNT_DOMAINS):
                raise ValueError(
                    "Personal Microsoft accounts are not supported with application permissions; "
                    "use an organizational mailbox."
                )
        else:
            if self.graph_mailbox:
                raise ValueError(
                    "GRAPH_MAILBOX must be omitted for device_code mode; the signed-in mailbox is used."
                )
        return self

    @model_validator(mode="after")
    def _validate_limits(self):
        if self.retry_attempts < 1:
            raise ValueError("RETRY_ATTEMPTS must be at least 1.")
        if self.retry_delay_ms < 0:
            raise ValueError("RETRY_DELAY_MS must not be negative.")
        if self.hours_to_fetch < 0:
            raise ValueError("HOURS_TO_FETCH must not be negative.")
        return self

    @field_validator(
        "graph_tenant_id",
        "graph_client_secret",
        "graph_mailbox",
        "graph_authority",
        "inbox_import_subdir",
        "inbox_old_subdir",
        "allowed_senders_file",
        "log_file",
        mode="before",
    )
    @classmethod
    def _empty_str_to_none(cls, value):
        if isinstance(value, str) and value.strip() == "":
            return None
        return value

    @property
    def authority_url(self) -> str:
        if self.graph_authority:
            return self.graph_authority.rstrip("/")
        if self.graph_tenant_id:
            return f"https://login.microsoftonline.com/{self.graph_tenant_id}"
        return "https://login.microsoftonline.com/organizations"

    @property
    def graph_scopes(self) -> list[str]:
        """Scopes requested for delegated Graph auth."""
        scopes = _split_list(self.graph_scopes_raw, coerce_lower=False)
        return scopes or ["Mail.ReadWrite"]

    @property
    def blocked_extensions(self) -> frozenset[str]:
        return parse_blocked_extensions(self.blocked_files_raw)

    @property
    def allowed_senders(self) -> list[str]:
        return _split_list(self.allowed_senders_raw, coerce_lower=True)

    def ensure_directories(self) -> None:
        """Create output, log and tracking directories if they don't exist."""
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.log_dir.mkdir(parents=True, exist_ok=True)
        self.tracking_file.parent.mkdir(parents=True, exist_ok=True)
