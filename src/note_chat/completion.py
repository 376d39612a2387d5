"""Async client for OpenAI-compatible chat-completion endpoints."""

from __future__ import annotations

from collections.abc import Callable, Mapping
import logging
from typing import Any

import httpx

from .exceptions import ConfigurationError, RemoteError, ValidationError
from .models import ChatTurn, CompletionRequest, CompletionResult

LOGGER = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.openai.com/v1"
DEFAULT_MODEL = "gpt-4.1-nano"
DEFAULT_SYSTEM_PROMPT = " ".join(
    [
        "You are an expert AI.",
        "Your sole purpose is to review the files given to you as context.",
        "If the user's file content is off, suggest changes; if it's fine you just say that everything is fine for now.",
        "Only dive deeper into the topic if the user specifically asks you to explain something or dive deeper.",
    ]
)
DEFAULT_TIMEOUT_SECONDS = 60.0

CHAT_COMPLETIONS_PATH = "/chat/completions"
MAX_CONTEXT_CHARS = 4000
TRUNCATION_MARKER = "\n...\n[Content truncated]\n"
TEMPERATURE = 0.2


def truncate_content(content: str, max_length: int = MAX_CONTEXT_CHARS) -> str:
    """Cap ``content`` at ``max_length`` characters, appending a visible marker."""
    if len(content) <= max_length:
        return content
    return content[:max_length] + TRUNCATION_MARKER


def format_file_block(content: str | None) -> str:
    """Wrap document content in the fenced block sent with the system prompt."""
    sanitized = truncate_content((content or "").strip())
    return "\n".join(["Active file content:", "```", sanitized, "```"])


class CompletionClient:
    """Stateless request formatter and transport for a chat-completion endpoint.

    The client knows nothing about conversations: callers pass the history
    snapshot with every request.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_BASE_URL,
        model: str = DEFAULT_MODEL,
        system_prompt: str | None = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        normalized_key = (api_key or "").strip()
        if not normalized_key:
            raise ConfigurationError(
                "Missing API key. Add it to the [api] section of the configuration."
            )

        self._api_key = normalized_key
        self.base_url = (base_url or DEFAULT_BASE_URL).strip().rstrip("/")
        self.model = (model or "").strip() or DEFAULT_MODEL
        self.system_prompt = (
            DEFAULT_SYSTEM_PROMPT if system_prompt is None else system_prompt
        )
        self.timeout = timeout
        self._transport = transport

    @classmethod
    def from_config(
        cls, config: Mapping[str, Any], **overrides: Any
    ) -> CompletionClient:
        """Build a client from the ``api`` section of a loaded config."""
        api = config.get("api", {})
        options: dict[str, Any] = {
            "api_key": api.get("api_key", ""),
            "base_url": api.get("base_url", DEFAULT_BASE_URL),
            "model": api.get("model", DEFAULT_MODEL),
            "system_prompt": api.get("system_prompt"),
            "timeout": api.get("timeout", DEFAULT_TIMEOUT_SECONDS),
        }
        options.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**options)

    @property
    def endpoint(self) -> str:
        return self.base_url + CHAT_COMPLETIONS_PATH

    def resolve_model(self, override: str | None) -> str:
        """Return the per-call override when non-empty, else the default."""
        candidate = (override or "").strip()
        return candidate or self.model

    def build_messages(self, request: CompletionRequest) -> list[dict[str, str]]:
        """Compose the role-tagged message sequence for one request."""
        system_content = (
            f"{self.system_prompt}\n\n{format_file_block(request.document_content)}"
        ).strip()
        messages: list[dict[str, str]] = [{"role": "system", "content": system_content}]

        for turn in request.history:
            content = turn.content.strip()
            if not content:
                continue
            messages.append(ChatTurn(role=turn.role, content=content).to_message())

        messages.append({"role": "user", "content": request.user_message.strip()})
        return messages

    async def send(self, request: CompletionRequest) -> CompletionResult:
        """Send one exchange and return the first choice's reply text.

        Non-success statuses raise ``RemoteError``. A success response with an
        unexpected shape yields an empty reply rather than an error.
        """
        if not (request.user_message or "").strip():
            raise ValidationError("User message cannot be empty.")

        model = self.resolve_model(request.model)
        messages = self.build_messages(request)
        payload = {
            "model": model,
            "messages": messages,
            "temperature": TEMPERATURE,
            "response_format": {"type": "text"},
        }

        LOGGER.info(
            "completion.request.start",
            extra={
                "event": "completion.request.start",
                "model": model,
                "message_count": len(messages),
            },
        )
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport
            ) as client:
                response = await client.post(
                    self.endpoint, json=payload, headers=self._headers()
                )
        except httpx.HTTPError as exc:
            raise self._map_exception(exc) from exc

        if not response.is_success:
            message = self._error_message(response)
            LOGGER.warning(
                "completion.request.failed",
                extra={
                    "event": "completion.request.failed",
                    "model": model,
                    "status_code": response.status_code,
                },
            )
            raise RemoteError(message, status_code=response.status_code)

        body = self._safe_parse_json(response)
        reply = self.extract_reply(body)
        LOGGER.info(
            "completion.request.complete",
            extra={
                "event": "completion.request.complete",
                "model": model,
                "status_code": response.status_code,
                "empty_reply": not reply,
            },
        )
        return CompletionResult(reply_text=reply, raw=body)

    @staticmethod
    def extract_reply(payload: Any) -> str:
        """Return ``choices[0].message.content`` or an empty string."""
        if not isinstance(payload, dict):
            return ""
        choices = payload.get("choices")
        if not isinstance(choices, list) or not choices:
            return ""
        first = choices[0]
        message = first.get("message") if isinstance(first, dict) else None
        content = message.get("content") if isinstance(message, dict) else None
        if not isinstance(content, str):
            return ""
        return content.strip()

    def _headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self._api_key}",
        }

    def _error_message(self, response: httpx.Response) -> str:
        payload = self._safe_parse_json(response)
        error = payload.get("error") if isinstance(payload, dict) else None
        message = error.get("message") if isinstance(error, dict) else None
        if isinstance(message, str) and message.strip():
            return message.strip()
        return f"Request failed with status {response.status_code}"

    @staticmethod
    def _safe_parse_json(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as exc:
            LOGGER.warning(
                "completion.response.unparseable",
                extra={
                    "event": "completion.response.unparseable",
                    "status_code": response.status_code,
                    "error": str(exc),
                },
            )
            return None

    def _map_exception(self, exc: httpx.HTTPError) -> RemoteError:
        if isinstance(exc, httpx.TimeoutException):
            return RemoteError(f"Timed out waiting for {self.base_url}.")
        if isinstance(exc, (httpx.ConnectError, httpx.NetworkError)):
            return RemoteError(f"Unable to connect to {self.base_url}.")
        return RemoteError(f"Request to {self.base_url} failed: {exc}")


ClientFactory = Callable[[str, str], CompletionClient]


class ClientCache:
    """Single-slot cache of completion clients keyed by ``(api_key, model)``."""

    def __init__(self, factory: ClientFactory) -> None:
        self._factory = factory
        self._key: tuple[str, str] | None = None
        self._client: CompletionClient | None = None

    @property
    def cached(self) -> CompletionClient | None:
        return self._client

    def get(self, api_key: str, model: str) -> CompletionClient:
        """Return the cached client, rebuilding it when the key changed."""
        key = (api_key, model)
        if self._client is not None and self._key == key:
            return self._client

        self.invalidate()
        client = self._factory(api_key, model)
        self._client = client
        self._key = key
        LOGGER.info(
            "completion.client.created",
            extra={"event": "completion.client.created", "model": client.model},
        )
        return client

    def invalidate(self) -> None:
        """Discard the cached client so the next ``get`` rebuilds it."""
        if self._client is not None:
            LOGGER.debug(
                "completion.client.invalidated",
                extra={"event": "completion.client.invalidated"},
            )
        self._client = None
        self._key = None
