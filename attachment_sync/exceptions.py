"""Custom exceptions for Attachment Sync."""


class AttachmentSyncError(Exception):
    """Base exception for all Attachment Sync errors."""


class ConfigurationError(AttachmentSyncError):
    """Settings are missing or inconsistent."""


class AuthenticationError(AttachmentSyncError):
    """Failed to obtain a Microsoft Graph access token."""
