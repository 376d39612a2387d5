"""Document provider and notification interfaces consumed by the session."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Protocol

from .exceptions import DocumentReadError

LOGGER = logging.getLogger(__name__)


class DocumentProvider(Protocol):
    """Source of the active document and its content."""

    def active_document_path(self) -> str | None: ...

    async def read_document_content(self, path: str) -> str: ...


class Notifier(Protocol):
    """User-visible, fire-and-forget message channel."""

    def notify(self, message: str) -> None: ...


class FileDocumentProvider:
    """Serve documents from the local filesystem.

    The active document is whatever path was last opened; reads run in a
    worker thread so the event loop stays free.
    """

    def __init__(self, active_path: str | Path | None = None, encoding: str = "utf-8") -> None:
        self.encoding = encoding
        self._active: str | None = None
        if active_path:
            self.open(active_path)

    def open(self, path: str | Path) -> str:
        """Make ``path`` the active document and return its normalized form."""
        self._active = str(Path(path).expanduser())
        return self._active

    def close(self) -> None:
        self._active = None

    def active_document_path(self) -> str | None:
        return self._active

    async def read_document_content(self, path: str) -> str:
        try:
            return await asyncio.to_thread(Path(path).read_text, encoding=self.encoding)
        except (OSError, UnicodeDecodeError) as exc:
            LOGGER.warning(
                "document.read.failed",
                extra={"event": "document.read.failed", "path": path, "error": str(exc)},
            )
            raise DocumentReadError(f"Unable to read {path}: {exc}") from exc


class LoggingNotifier:
    """Notifier that records messages and forwards them to the log."""

    def __init__(self) -> None:
        self.messages: list[str] = []

    def notify(self, message: str) -> None:
        self.messages.append(message)
        LOGGER.warning("session.notice", extra={"event": "session.notice", "notice": message})
