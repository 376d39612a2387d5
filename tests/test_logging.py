"""Tests for structured logging behavior."""

from __future__ import annotations

import json
import logging
import tempfile
from pathlib import Path
import unittest

import httpx
import structlog

from note_chat.completion import CompletionClient
from note_chat.exceptions import RemoteError
from note_chat.logging_utils import build_formatter, configure_logging
from note_chat.models import CompletionRequest


def _record(name: str, msg: str = "ok", level: int = logging.INFO) -> logging.LogRecord:
    return logging.LogRecord(
        name=name,
        level=level,
        pathname="",
        lineno=0,
        msg=msg,
        args=(),
        exc_info=None,
    )


class LoggingTests(unittest.IsolatedAsyncioTestCase):
    """Validate log format and required request event emission."""

    async def test_failed_request_log_event_emitted(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(503, json={"error": {"message": "overloaded"}})

        client = CompletionClient(
            api_key="sk-test",
            base_url="https://api.example.com/v1",
            transport=httpx.MockTransport(handler),
        )

        with self.assertLogs("note_chat.completion", level="WARNING") as logs:
            with self.assertRaises(RemoteError):
                await client.send(CompletionRequest("doc", "hello"))

        self.assertTrue(
            any("completion.request.failed" in line for line in logs.output)
        )

    async def test_structured_formatter_includes_extra_fields(self) -> None:
        formatter = build_formatter(structured=True)
        record = _record("note_chat.state", msg="session.state.transition")
        record.event = "session.state.transition"
        record.from_state = "IDLE"
        record.to_state = "SENDING"

        data = json.loads(formatter.format(record))
        self.assertEqual(data["event"], "session.state.transition")
        self.assertEqual(data["from_state"], "IDLE")
        self.assertEqual(data["to_state"], "SENDING")
        self.assertEqual(data["level"].upper(), "INFO")
        self.assertEqual(data["logger"], "note_chat.state")
        self.assertIn("timestamp", data)


class ConfigureLoggingTests(unittest.TestCase):
    """Validate configure_logging() handler setup behavior."""

    def setUp(self) -> None:
        # Preserve root logger state so tests do not pollute each other.
        root = logging.getLogger()
        self._original_level = root.level
        self._original_handlers = list(root.handlers)

    def tearDown(self) -> None:
        root = logging.getLogger()
        for handler in root.handlers:
            if handler not in self._original_handlers:
                handler.close()
        root.setLevel(self._original_level)
        root.handlers.clear()
        root.handlers.extend(self._original_handlers)

    def _stream_handlers(self) -> list[logging.Handler]:
        return [
            h
            for h in logging.getLogger().handlers
            if isinstance(h, logging.StreamHandler)
            and not isinstance(h, logging.FileHandler)
        ]

    def test_configure_logging_adds_stderr_handler(self) -> None:
        configure_logging({"level": "DEBUG", "structured": False, "log_to_file": False})
        handlers = self._stream_handlers()
        self.assertEqual(len(handlers), 1)
        self.assertEqual(handlers[0].level, logging.WARNING)

    def test_configure_logging_structured_uses_processor_formatter(self) -> None:
        configure_logging({"level": "DEBUG", "structured": True, "log_to_file": False})
        formatters = [h.formatter for h in logging.getLogger().handlers]
        self.assertTrue(
            any(isinstance(f, structlog.stdlib.ProcessorFormatter) for f in formatters)
        )

    def test_configure_logging_plain_formatter_when_not_structured(self) -> None:
        configure_logging({"level": "DEBUG", "structured": False, "log_to_file": False})
        formatters = [h.formatter for h in logging.getLogger().handlers]
        self.assertFalse(
            any(isinstance(f, structlog.stdlib.ProcessorFormatter) for f in formatters)
        )

    def test_configure_logging_sets_root_level(self) -> None:
        configure_logging({"level": "DEBUG", "structured": False, "log_to_file": False})
        self.assertEqual(logging.getLogger().level, logging.DEBUG)

    def test_unknown_level_falls_back_to_info(self) -> None:
        configure_logging({"level": "chatty", "structured": False})
        self.assertEqual(logging.getLogger().level, logging.INFO)

    def test_configure_logging_noisy_loggers_set_to_warning(self) -> None:
        configure_logging({"level": "DEBUG", "structured": False, "log_to_file": False})
        for name in ("httpx", "httpcore"):
            self.assertEqual(logging.getLogger(name).level, logging.WARNING)

    def test_configure_logging_file_handler_created(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            log_path = Path(tmp) / "nested" / "test.log"
            configure_logging(
                {
                    "level": "DEBUG",
                    "structured": True,
                    "log_to_file": True,
                    "log_file_path": str(log_path),
                }
            )
            file_handlers = [
                h for h in logging.getLogger().handlers if isinstance(h, logging.FileHandler)
            ]
            self.assertEqual(len(file_handlers), 1)
            self.assertEqual(file_handlers[0].level, logging.DEBUG)
            self.assertTrue(log_path.exists())

            logging.getLogger("note_chat.session").info(
                "session.reset", extra={"event": "session.reset"}
            )
            file_handlers[0].flush()
            line = log_path.read_text(encoding="utf-8").strip().splitlines()[-1]
            self.assertEqual(json.loads(line)["event"], "session.reset")

    def test_configure_logging_stderr_handler_filters_to_note_chat(self) -> None:
        configure_logging({"level": "DEBUG", "structured": False, "log_to_file": False})
        handler = self._stream_handlers()[0]
        # handler.filter() returns truthy when all filters pass.
        self.assertTrue(handler.filter(_record("note_chat.session")))
        self.assertFalse(handler.filter(_record("httpx", msg="noise")))


if __name__ == "__main__":
    unittest.main()
