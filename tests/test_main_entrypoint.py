"""Tests for CLI entrypoint wiring."""

from __future__ import annotations

import io
from pathlib import Path
import unittest
from unittest.mock import patch

from note_chat.__main__ import main


def _config() -> dict:
    return {
        "api": {"api_key": "", "model": "gpt-4.1-nano"},
        "catalog": [
            {"id": "gpt-large", "size_tier": "large"},
            {"id": "gpt-mini", "size_tier": "small"},
            {"id": "local", "size_tier": None},
        ],
        "logging": {"level": "INFO", "structured": True},
    }


class MainEntrypointTests(unittest.TestCase):
    """Validate top-level main() behavior."""

    def test_main_ensures_config_and_runs_panel(self) -> None:
        with patch("note_chat.__main__.ensure_config_dir") as ensure_mock, patch(
            "note_chat.__main__.load_config", return_value=_config()
        ) as load_mock, patch(
            "note_chat.__main__.configure_logging"
        ) as logging_mock, patch(
            "note_chat.__main__.TerminalPanel"
        ) as panel_cls_mock, patch(
            "note_chat.__main__.asyncio.run"
        ) as run_mock:
            main(["notes.md", "--model", "gpt-large", "--config", "custom.toml"])

            ensure_mock.assert_called_once()
            load_mock.assert_called_once_with(Path("custom.toml"))
            logging_mock.assert_called_once_with(_config()["logging"])
            panel_cls_mock.assert_called_once_with(
                _config(), document="notes.md", model="gpt-large"
            )
            panel_cls_mock.return_value.run.assert_called_once()
            run_mock.assert_called_once_with(panel_cls_mock.return_value.run.return_value)

    def test_list_models_prints_ranked_catalog(self) -> None:
        stdout = io.StringIO()
        with patch("note_chat.__main__.ensure_config_dir"), patch(
            "note_chat.__main__.load_config", return_value=_config()
        ), patch("note_chat.__main__.configure_logging"), patch(
            "note_chat.__main__.TerminalPanel"
        ) as panel_cls_mock, patch("sys.stdout", stdout):
            main(["--list-models"])

        self.assertEqual(
            stdout.getvalue().splitlines(),
            ["gpt-mini (small)", "gpt-large (large)", "local"],
        )
        panel_cls_mock.assert_not_called()

    def test_version_flag_skips_config(self) -> None:
        stdout = io.StringIO()
        with patch("note_chat.__main__.load_config") as load_mock, patch(
            "sys.stdout", stdout
        ):
            main(["--version"])
        self.assertTrue(stdout.getvalue().startswith("note-chat "))
        load_mock.assert_not_called()


if __name__ == "__main__":
    unittest.main()
