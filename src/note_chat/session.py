"""Conversational session manager.

Owns the in-memory conversation and the active document context, and runs the
single-flight submission protocol:

    IDLE -> VALIDATING -> AWAITING_CONTEXT -> SENDING -> COMMITTED | ROLLED_BACK -> IDLE

The user turn is appended optimistically before the request goes out and is
removed again if the request fails, so a failed exchange leaves the
conversation exactly as it was.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from enum import Enum
import logging
from typing import Any

from .catalog import ModelCatalog, ModelSelector
from .completion import ClientCache, CompletionClient
from .conversation import Conversation
from .documents import DocumentProvider, LoggingNotifier, Notifier
from .exceptions import (
    BusyError,
    ContextReadError,
    NoContextError,
    NoteChatError,
    RemoteError,
    ValidationError,
)
from .models import ChatTurn, CompletionRequest, CompletionResult
from .observers import ObserverSet
from .state import StateManager, SubmissionState

LOGGER = logging.getLogger(__name__)

FALLBACK_REPLY = "I was not able to produce a response."
EMPTY_MESSAGE_NOTICE = "Enter a question before sending."
NO_CONTEXT_NOTICE = "Open a file to use as context for the chat."
READ_FAILED_NOTICE = "Could not read the active file."
BUSY_NOTICE = "A request is already in progress."
REQUEST_FAILED_NOTICE = "Request failed."


class SubmitStatus(str, Enum):
    """How a submission ended."""

    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"
    REJECTED = "rejected"
    DISCARDED = "discarded"


@dataclass(frozen=True)
class SubmitOutcome:
    """Result of ``ChatSession.submit``.

    ``error`` carries the typed failure for rejected and rolled-back
    submissions. ``DISCARDED`` means the reply arrived after the conversation
    had been cleared underneath it (for example by a model change).
    """

    status: SubmitStatus
    user_turn: ChatTurn | None = None
    reply_turn: ChatTurn | None = None
    context_path: str | None = None
    error: NoteChatError | None = None

    @property
    def ok(self) -> bool:
        return self.status == SubmitStatus.COMMITTED


class ChatSession:
    """Single-flight chat session bound to the active document."""

    def __init__(
        self,
        documents: DocumentProvider,
        client_cache: ClientCache,
        selector: ModelSelector | None = None,
        api_key: str | Callable[[], str] = "",
        notifier: Notifier | None = None,
        observers: Iterable[Any] = (),
    ) -> None:
        self._documents = documents
        self._client_cache = client_cache
        self._selector = selector or ModelSelector(ModelCatalog(), client_cache)
        if self._selector.client_cache is None:
            self._selector.client_cache = client_cache
        self._selector.add_listener(self._on_model_changed)
        self._api_key = api_key
        self._notifier: Notifier = notifier or LoggingNotifier()
        self.observers = ObserverSet(observers)

        self._conversation = Conversation()
        self._state = StateManager()
        self._active_context: str | None = None
        # Bumped on every clear so in-flight exchanges can tell their
        # conversation is gone.
        self._epoch = 0

    @classmethod
    def from_config(
        cls,
        config: Mapping[str, Any],
        documents: DocumentProvider,
        notifier: Notifier | None = None,
        observers: Iterable[Any] = (),
        **client_overrides: Any,
    ) -> ChatSession:
        """Wire a session, model selector, and client cache from loaded config."""

        def _factory(api_key: str, model: str) -> CompletionClient:
            return CompletionClient.from_config(
                config, api_key=api_key, model=model or None, **client_overrides
            )

        cache = ClientCache(_factory)
        selector = ModelSelector(ModelCatalog.from_config(config), client_cache=cache)
        return cls(
            documents=documents,
            client_cache=cache,
            selector=selector,
            api_key=config.get("api", {}).get("api_key", ""),
            notifier=notifier,
            observers=observers,
        )

    @property
    def conversation(self) -> tuple[ChatTurn, ...]:
        """Snapshot of the current conversation."""
        return self._conversation.snapshot()

    @property
    def active_context(self) -> str | None:
        return self._active_context

    @property
    def state(self) -> SubmissionState:
        return self._state.state

    @property
    def is_busy(self) -> bool:
        return not self._state.is_idle

    @property
    def selector(self) -> ModelSelector:
        return self._selector

    def current_context_label(self) -> str:
        if self._active_context:
            return f"Context: {self._active_context}"
        return "Context: No file selected"

    def export_json(self) -> str:
        return self._conversation.export_json()

    def reset(self) -> None:
        """Clear the conversation and the active context."""
        if self._state.is_sending:
            raise BusyError("Cannot reset the conversation while a request is in progress.")
        self._clear()
        LOGGER.info("session.reset", extra={"event": "session.reset"})

    def select_model(self, model_id: str) -> bool:
        """Switch models; a change starts a fresh conversation."""
        if self._state.is_sending:
            raise BusyError("Cannot switch models while a request is in progress.")
        return self._selector.select(model_id)

    async def submit(self, raw_message: str) -> SubmitOutcome:
        """Submit a user message about the active document.

        Domain failures never escape: each one is reported once through the
        notifier and returned on the outcome.
        """
        if not self._state.transition_if(SubmissionState.IDLE, SubmissionState.VALIDATING):
            return self._reject(BusyError(BUSY_NOTICE))
        try:
            return await self._run_submission(raw_message)
        finally:
            self._state.transition_to(SubmissionState.IDLE)

    async def _run_submission(self, raw_message: str) -> SubmitOutcome:
        message = (raw_message or "").strip()
        if not message:
            return self._reject(ValidationError(EMPTY_MESSAGE_NOTICE))

        path = self._documents.active_document_path()
        if not path:
            return self._reject(NoContextError(NO_CONTEXT_NOTICE))

        self._state.transition_to(SubmissionState.AWAITING_CONTEXT)
        try:
            content = await self._documents.read_document_content(path)
        except Exception as exc:  # noqa: BLE001 - providers are host code.
            return self._read_failed(path, exc)

        self._state.transition_to(SubmissionState.SENDING)
        self.observers.busy_changed(True)
        try:
            return await self._exchange(path, content, message)
        finally:
            self.observers.busy_changed(False)

    async def _exchange(self, path: str, content: str, message: str) -> SubmitOutcome:
        epoch = self._epoch
        switching = self._active_context is not None and path != self._active_context
        # A new document starts a new history; the old one stays visible
        # until the exchange commits.
        history = () if switching else self._conversation.snapshot()

        user_turn = self._conversation.append(ChatTurn.user(message))
        self.observers.turn_appended(user_turn)

        model = self._selector.selected_model
        try:
            client = self._client_cache.get(self._current_api_key(), model)
            result = await client.send(
                CompletionRequest(
                    document_content=content,
                    user_message=message,
                    history=history,
                    model=model or None,
                )
            )
        except asyncio.CancelledError:
            self._rollback(user_turn, epoch)
            raise
        except NoteChatError as exc:
            return self._rolled_back(user_turn, epoch, exc)
        except Exception as exc:  # noqa: BLE001 - client failures must not escape.
            error = RemoteError(str(exc) or REQUEST_FAILED_NOTICE)
            error.__cause__ = exc
            return self._rolled_back(user_turn, epoch, error)

        return self._commit(user_turn, epoch, path, result, switching)

    def _read_failed(self, path: str, exc: Exception) -> SubmitOutcome:
        LOGGER.warning(
            "session.context.read_failed",
            extra={
                "event": "session.context.read_failed",
                "path": path,
                "error_type": type(exc).__name__,
            },
        )
        error = ContextReadError(READ_FAILED_NOTICE)
        error.__cause__ = exc
        return self._reject(error)

    def _commit(
        self,
        user_turn: ChatTurn,
        epoch: int,
        path: str,
        result: CompletionResult,
        switching: bool,
    ) -> SubmitOutcome:
        if epoch != self._epoch:
            LOGGER.info(
                "session.reply.discarded",
                extra={"event": "session.reply.discarded", "path": path},
            )
            return SubmitOutcome(
                status=SubmitStatus.DISCARDED, user_turn=user_turn, context_path=path
            )

        self._state.transition_to(SubmissionState.COMMITTED)
        if switching:
            self._conversation.clear()
            self._epoch += 1
            self.observers.conversation_cleared()
            self._conversation.append(user_turn)
            self.observers.turn_appended(user_turn)

        reply_turn = self._conversation.append(
            ChatTurn.assistant(result.reply_text or FALLBACK_REPLY)
        )
        self.observers.turn_appended(reply_turn)
        self._set_context(path)
        LOGGER.info(
            "session.exchange.committed",
            extra={
                "event": "session.exchange.committed",
                "path": path,
                "turns": len(self._conversation),
                "empty_reply": not result.reply_text,
            },
        )
        return SubmitOutcome(
            status=SubmitStatus.COMMITTED,
            user_turn=user_turn,
            reply_turn=reply_turn,
            context_path=path,
        )

    def _rolled_back(
        self, user_turn: ChatTurn, epoch: int, error: NoteChatError
    ) -> SubmitOutcome:
        self._state.transition_to(SubmissionState.ROLLED_BACK)
        self._rollback(user_turn, epoch)
        LOGGER.warning(
            "session.exchange.rolled_back",
            extra={
                "event": "session.exchange.rolled_back",
                "error_type": type(error).__name__,
            },
        )
        self._notify(str(error) or REQUEST_FAILED_NOTICE)
        return SubmitOutcome(
            status=SubmitStatus.ROLLED_BACK, user_turn=user_turn, error=error
        )

    def _rollback(self, user_turn: ChatTurn, epoch: int) -> None:
        if epoch != self._epoch:
            return
        if self._conversation.remove(user_turn):
            self.observers.turn_removed(user_turn)

    def _reject(self, error: NoteChatError) -> SubmitOutcome:
        LOGGER.info(
            "session.submit.rejected",
            extra={"event": "session.submit.rejected", "error_type": type(error).__name__},
        )
        self._notify(str(error))
        return SubmitOutcome(status=SubmitStatus.REJECTED, error=error)

    def _clear(self) -> None:
        self._conversation.clear()
        self._epoch += 1
        self.observers.conversation_cleared()
        self._set_context(None)

    def _set_context(self, path: str | None) -> None:
        if path == self._active_context:
            return
        self._active_context = path
        self.observers.context_changed(path)

    def _on_model_changed(self, previous: str, current: str) -> None:
        LOGGER.info(
            "session.model.changed",
            extra={"event": "session.model.changed", "previous": previous, "model": current},
        )
        self._clear()

    def _current_api_key(self) -> str:
        if callable(self._api_key):
            return self._api_key()
        return self._api_key

    def _notify(self, message: str) -> None:
        try:
            self._notifier.notify(message)
        except Exception as exc:  # noqa: BLE001 - notification channel is external.
            LOGGER.error(
                "session.notify.failed",
                extra={"event": "session.notify.failed", "error": str(exc)},
            )
