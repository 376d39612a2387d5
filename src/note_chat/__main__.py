"""CLI entrypoint for note-chat."""

from __future__ import annotations

import argparse
import asyncio
from collections.abc import Sequence
from importlib import metadata
from pathlib import Path

from .catalog import ModelCatalog
from .config import ensure_config_dir, load_config
from .logging_utils import configure_logging
from .panel import TerminalPanel


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="note-chat",
        description="note-chat - ask a language model about the document you have open",
    )
    parser.add_argument(
        "document",
        nargs="?",
        help="Document to use as chat context",
    )
    parser.add_argument(
        "--config",
        type=Path,
        help="Path to a config.toml (defaults to the user config directory)",
    )
    parser.add_argument(
        "--model",
        help="Model id to select instead of the catalog default",
    )
    parser.add_argument(
        "--list-models",
        action="store_true",
        help="Print the ranked model catalog and exit",
    )
    parser.add_argument(
        "--version",
        action="store_true",
        help="Print version and exit",
    )
    return parser


def main(argv: Sequence[str] | None = None) -> None:
    """Load configuration, handle CLI flags, and run the chat panel."""

    parser = _build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    if args.version:
        try:
            version = metadata.version("note-chat")
        except metadata.PackageNotFoundError:
            version = "0.0.0"
        print(f"note-chat {version}")
        return

    ensure_config_dir()
    config = load_config(args.config)
    configure_logging(config["logging"])

    if args.list_models:
        for entry in ModelCatalog.from_config(config).ranked_catalog():
            print(entry.label)
        return

    panel = TerminalPanel(config, document=args.document, model=args.model)
    asyncio.run(panel.run())


if __name__ == "__main__":
    main()
