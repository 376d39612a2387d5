"""Observer interfaces through which the session reports changes to the UI.

Usage:
    class Panel(SessionObserver):
        def on_turn_appended(self, turn):
            render_bubble(turn)

    session = ChatSession(..., observers=[Panel()])
"""

from __future__ import annotations

from collections.abc import Iterable
import logging
from typing import Any

from .models import ChatTurn

LOGGER = logging.getLogger(__name__)


class SessionObserver:
    """No-op base for rendering layers; override the callbacks you need."""

    def on_turn_appended(self, turn: ChatTurn) -> None:
        pass

    def on_turn_removed(self, turn: ChatTurn) -> None:
        pass

    def on_conversation_cleared(self) -> None:
        pass

    def on_context_changed(self, path: str | None) -> None:
        pass

    def on_busy_changed(self, busy: bool) -> None:
        pass


class ObserverSet:
    """Fan callbacks out to every subscribed observer.

    A failing observer is logged and skipped so rendering bugs cannot leave
    the conversation half-updated.
    """

    def __init__(self, observers: Iterable[Any] = ()) -> None:
        self._observers: list[Any] = list(observers)

    def __len__(self) -> int:
        return len(self._observers)

    def subscribe(self, observer: Any) -> None:
        if observer not in self._observers:
            self._observers.append(observer)

    def unsubscribe(self, observer: Any) -> None:
        try:
            self._observers.remove(observer)
        except ValueError:
            pass

    def turn_appended(self, turn: ChatTurn) -> None:
        self._emit("on_turn_appended", turn)

    def turn_removed(self, turn: ChatTurn) -> None:
        self._emit("on_turn_removed", turn)

    def conversation_cleared(self) -> None:
        self._emit("on_conversation_cleared")

    def context_changed(self, path: str | None) -> None:
        self._emit("on_context_changed", path)

    def busy_changed(self, busy: bool) -> None:
        self._emit("on_busy_changed", busy)

    def _emit(self, callback_name: str, *args: Any) -> None:
        for observer in list(self._observers):
            callback = getattr(observer, callback_name, None)
            if callback is None:
                continue
            try:
                callback(*args)
            except Exception as exc:  # noqa: BLE001 - observer code is external.
                LOGGER.error(
                    "session.observer.failed",
                    extra={
                        "event": "session.observer.failed",
                        "callback": callback_name,
                        "error_type": type(exc).__name__,
                        "error": str(exc),
                    },
                )
