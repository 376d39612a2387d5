"""Top-level package for note-chat."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .catalog import ModelCatalog, ModelSelector
    from .completion import ClientCache, CompletionClient
    from .config import ensure_config_dir, load_config
    from .exceptions import (
        BusyError,
        ConfigurationError,
        ContextReadError,
        DocumentReadError,
        NoContextError,
        NoteChatError,
        RemoteError,
        ValidationError,
    )
    from .models import ChatTurn, ModelCatalogEntry, SizeTier, TurnRole
    from .observers import SessionObserver
    from .session import ChatSession, SubmitOutcome, SubmitStatus

_EXPORTS: dict[str, str] = {
    "ChatSession": "session",
    "SubmitOutcome": "session",
    "SubmitStatus": "session",
    "CompletionClient": "completion",
    "ClientCache": "completion",
    "ModelCatalog": "catalog",
    "ModelSelector": "catalog",
    "ChatTurn": "models",
    "ModelCatalogEntry": "models",
    "SizeTier": "models",
    "TurnRole": "models",
    "SessionObserver": "observers",
    "ensure_config_dir": "config",
    "load_config": "config",
    "NoteChatError": "exceptions",
    "ValidationError": "exceptions",
    "NoContextError": "exceptions",
    "ContextReadError": "exceptions",
    "BusyError": "exceptions",
    "ConfigurationError": "exceptions",
    "RemoteError": "exceptions",
    "DocumentReadError": "exceptions",
}

__all__ = sorted(_EXPORTS)


def __getattr__(name: str) -> Any:
    """Lazily import symbols so importing the package stays cheap."""
    module_name = _EXPORTS.get(name)
    if module_name is None:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
    from importlib import import_module

    return getattr(import_module(f".{module_name}", __name__), name)
