"""Tests for configuration loading and validation."""

from __future__ import annotations

import os
import stat
import tempfile
from pathlib import Path
import unittest
from unittest.mock import patch

from note_chat.config import API_KEY_ENV_VAR, DEFAULT_CONFIG, load_config


def _write(temp_dir: str, body: str) -> Path:
    config_path = Path(temp_dir) / "config.toml"
    config_path.write_text(body.strip(), encoding="utf-8")
    return config_path


@patch.dict(os.environ, {API_KEY_ENV_VAR: ""})
class ConfigTests(unittest.TestCase):
    """Validate config merge and fallback behavior."""

    def test_missing_config_uses_defaults(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            config = load_config(config_path=Path(temp_dir) / "config.toml")
            self.assertEqual(config, DEFAULT_CONFIG)
            self.assertEqual(config["api"]["api_key"], "")
            self.assertEqual(config["api"]["base_url"], "https://api.openai.com/v1")
            self.assertEqual(config["catalog"], [])
            self.assertEqual(config["logging"]["level"], "INFO")

    def test_partial_config_overrides_selected_values(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            config_path = _write(
                temp_dir,
                """
[api]
api_key = "  sk-file  "
base_url = "https://llm.internal.test/v1/"
model = "gpt-4.1-mini"
                """,
            )
            config = load_config(config_path=config_path)
            self.assertEqual(config["api"]["api_key"], "sk-file")
            self.assertEqual(config["api"]["base_url"], "https://llm.internal.test/v1")
            self.assertEqual(config["api"]["model"], "gpt-4.1-mini")
            self.assertEqual(config["api"]["timeout"], DEFAULT_CONFIG["api"]["timeout"])
            self.assertEqual(
                config["api"]["system_prompt"], DEFAULT_CONFIG["api"]["system_prompt"]
            )
            self.assertEqual(config["logging"], DEFAULT_CONFIG["logging"])

    def test_catalog_entries_are_parsed(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            config_path = _write(
                temp_dir,
                """
[[catalog]]
id = "gpt-large"
size_tier = "Large"

[[catalog]]
id = "local-model"
size_tier = ""

[[catalog]]
id = "gpt-mini"
size_tier = "small"
                """,
            )
            config = load_config(config_path=config_path)
            self.assertEqual(
                config["catalog"],
                [
                    {"id": "gpt-large", "size_tier": "large"},
                    {"id": "local-model", "size_tier": None},
                    {"id": "gpt-mini", "size_tier": "small"},
                ],
            )

    def test_invalid_values_fallback_to_defaults(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            config_path = _write(
                temp_dir,
                """
[api]
timeout = -1
base_url = "ftp://example.com"

[logging]
level = "LOUD"
                """,
            )
            config = load_config(config_path=config_path)
            self.assertEqual(config, DEFAULT_CONFIG)

    def test_unknown_size_tier_falls_back_to_defaults(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            config_path = _write(
                temp_dir,
                """
[[catalog]]
id = "gpt-huge"
size_tier = "enormous"
                """,
            )
            self.assertEqual(load_config(config_path=config_path)["catalog"], [])

    def test_duplicate_catalog_ids_fall_back_to_defaults(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            config_path = _write(
                temp_dir,
                """
[[catalog]]
id = "gpt-mini"

[[catalog]]
id = "gpt-mini"
size_tier = "small"
                """,
            )
            self.assertEqual(load_config(config_path=config_path)["catalog"], [])

    def test_non_table_section_falls_back_to_defaults(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            config_path = _write(temp_dir, 'api = "sk-inline"')
            self.assertEqual(load_config(config_path=config_path), DEFAULT_CONFIG)

    def test_config_directory_is_created(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            config_path = Path(temp_dir) / "nested" / "config.toml"
            load_config(config_path=config_path)
            self.assertTrue(config_path.parent.is_dir())

    def test_unparseable_toml_uses_defaults(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            config_path = _write(temp_dir, "[api\nmodel = ")
            self.assertEqual(load_config(config_path=config_path), DEFAULT_CONFIG)

    def test_environment_api_key_wins(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            config_path = _write(
                temp_dir,
                """
[api]
api_key = "sk-file"
                """,
            )
            with patch.dict(os.environ, {API_KEY_ENV_VAR: " sk-env "}):
                config = load_config(config_path=config_path)
            self.assertEqual(config["api"]["api_key"], "sk-env")

    @unittest.skipUnless(os.name == "posix", "permission bits are POSIX only")
    def test_config_file_is_made_private(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            config_path = _write(temp_dir, '[api]\napi_key = "sk-file"')
            config_path.chmod(0o644)
            load_config(config_path=config_path)
            self.assertEqual(stat.S_IMODE(config_path.stat().st_mode), 0o600)


if __name__ == "__main__":
    unittest.main()
