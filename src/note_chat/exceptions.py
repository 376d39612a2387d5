"""Domain exception hierarchy for the note chat session core."""

from __future__ import annotations


class NoteChatError(RuntimeError):
    """Base class for all domain-level chat errors."""


class ValidationError(NoteChatError):
    """Raised when the user message is empty after trimming."""


class NoContextError(NoteChatError):
    """Raised when no active document is available to serve as context."""


class ContextReadError(NoteChatError):
    """Raised when the active document cannot be read."""


class BusyError(NoteChatError):
    """Raised when a submission is attempted while another one is in flight."""


class ConfigurationError(NoteChatError):
    """Raised when credentials or configuration cannot be validated safely."""


class RemoteError(NoteChatError):
    """Raised when the completion endpoint fails or cannot be reached."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class DocumentReadError(NoteChatError):
    """Raised by document providers when a document cannot be read."""
