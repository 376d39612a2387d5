"""Immutable value types shared by the session, completion, and catalog layers."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class TurnRole(str, Enum):
    """Conversation roles that may appear in history (never system)."""

    USER = "user"
    ASSISTANT = "assistant"


class SizeTier(str, Enum):
    """Coarse model size classification, declared in ranking order."""

    SMALL = "small"
    MEDIUM = "medium"
    LARGE = "large"
    EXPERIMENTAL = "experimental"

    @property
    def rank(self) -> int:
        return list(SizeTier).index(self)


@dataclass(frozen=True)
class ChatTurn:
    """One message in a conversation."""

    role: TurnRole
    content: str

    @classmethod
    def user(cls, content: str) -> ChatTurn:
        return cls(role=TurnRole.USER, content=content)

    @classmethod
    def assistant(cls, content: str) -> ChatTurn:
        return cls(role=TurnRole.ASSISTANT, content=content)

    def to_message(self) -> dict[str, str]:
        """Return the wire representation used by chat-completion endpoints."""
        return {"role": self.role.value, "content": self.content}


@dataclass(frozen=True)
class ModelCatalogEntry:
    """A model available for selection, optionally tagged with a size tier."""

    id: str
    size_tier: SizeTier | None = None

    @property
    def label(self) -> str:
        if self.size_tier is None:
            return self.id
        return f"{self.id} ({self.size_tier.value})"


@dataclass(frozen=True)
class CompletionRequest:
    """Everything the completion client needs for a single exchange.

    ``history`` is a point-in-time snapshot; it must not contain the turn
    carried by ``user_message``.
    """

    document_content: str
    user_message: str
    history: tuple[ChatTurn, ...] = ()
    model: str | None = None


@dataclass(frozen=True)
class CompletionResult:
    """Reply text extracted from the endpoint plus the decoded payload."""

    reply_text: str
    raw: Any = field(default=None, compare=False)
